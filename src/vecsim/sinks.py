# src/vecsim/sinks.py
from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pandas as pd

from vecsim.common.io import ensure_parent
from vecsim.data.schemas import SIM_SCHEMA
from vecsim.data.validation import validate_similarities_df


class SimilaritySink(Protocol):
    def write(self, similarities: pd.DataFrame) -> Path:
        ...


def to_output_frame(similarities: pd.DataFrame) -> pd.DataFrame:
    """Project to the output column order with the conventional column names."""
    validate_similarities_df(similarities)
    out = similarities[list(SIM_SCHEMA.columns)].sort_values(
        [SIM_SCHEMA.ITEM_A, SIM_SCHEMA.ITEM_B], kind="mergesort"
    )
    return out.rename(columns=SIM_SCHEMA.output_names).reset_index(drop=True)


@dataclass(frozen=True)
class TsvSimilaritySink:
    """
    item <TAB> item2 <TAB> correlation <TAB> regularizedCorrelation <TAB>
    cosineSimilarity <TAB> jaccardSimilarity <TAB> size <TAB> numRatersA <TAB> numRatersB

    Undefined scores are written as the literal NaN.
    """

    path: Path
    header: bool = True
    na_rep: str = "NaN"

    def write(self, similarities: pd.DataFrame) -> Path:
        path = ensure_parent(self.path)
        to_output_frame(similarities).to_csv(
            path,
            sep="\t",
            header=self.header,
            index=False,
            na_rep=self.na_rep,
            quoting=csv.QUOTE_NONE,
            escapechar="\\",
            lineterminator="\n",
        )
        return path


@dataclass(frozen=True)
class ParquetSimilaritySink:
    path: Path
    compression: str = "zstd"

    def write(self, similarities: pd.DataFrame) -> Path:
        path = ensure_parent(self.path)
        to_output_frame(similarities).to_parquet(path, index=False, compression=self.compression)
        return path


def make_sink(path: Path, fmt: str = "tsv") -> SimilaritySink:
    if fmt == "tsv":
        return TsvSimilaritySink(Path(path))
    if fmt == "parquet":
        return ParquetSimilaritySink(Path(path))
    raise ValueError(f"Unsupported output format: {fmt!r} (expected 'tsv' or 'parquet')")
