# src/vecsim/sources/tsv.py
from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from vecsim.common.utils import fmt_count, log_step
from vecsim.data.schemas import SCHEMA


def _ensure_exists(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"Ratings file not found: {path}")


@dataclass(frozen=True)
class TsvRatingSource:
    """
    Tab-separated ratings with three ordered columns and no header:

        user <TAB> item <TAB> rating

    Identifiers are kept as text. Lines with the wrong number of fields are
    skipped by the reader; non-numeric ratings are dropped during normalization.
    A backslash escapes the next character, matching write_ratings_tsv.
    """

    path: Path

    def describe(self) -> str:
        return f"tsv:{self.path}"

    def produce(
        self,
        user_field: str = SCHEMA.USER_ID,
        item_field: str = SCHEMA.ITEM_ID,
        rating_field: str = SCHEMA.RATING,
    ) -> pd.DataFrame:
        path = Path(self.path)
        _ensure_exists(path)

        log_step(f"[tsv] reading: {path}")
        df = pd.read_csv(
            path,
            sep="\t",
            header=None,
            names=[user_field, item_field, rating_field],
            dtype={user_field: str, item_field: str, rating_field: str},
            quoting=csv.QUOTE_NONE,
            escapechar="\\",
            on_bad_lines="skip",
            skip_blank_lines=True,
            keep_default_na=False,
            na_values=[""],
        )
        log_step(f"[tsv] rows read: {fmt_count(len(df))}")
        return df


def write_ratings_tsv(ratings: pd.DataFrame, path: Path) -> Path:
    """Dump a canonical ratings frame in the same layout TsvRatingSource reads."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ratings[list(SCHEMA.required_columns)].to_csv(
        path, sep="\t", header=False, index=False, quoting=csv.QUOTE_NONE, escapechar="\\"
    )
    return path
