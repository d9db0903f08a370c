# src/vecsim/data/validation.py
from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from vecsim.common.utils import fmt_count, log_step
from vecsim.data.schemas import SCHEMA, SIM_SCHEMA


class DataValidationError(ValueError):
    pass


def validate_required_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataValidationError(f"Missing required columns: {missing}")


def _as_text(s: pd.Series) -> pd.Series:
    # Identifiers are compared as text so the pair order is one total order
    # regardless of what each source emits.
    return s.astype(str).str.strip()


def normalize_ratings(df: pd.DataFrame, *, source: str = "ratings") -> pd.DataFrame:
    """
    Coerce a source relation into the canonical ratings frame.

    Malformed rows are dropped, never raised:
      - missing/blank user or item
      - rating that is not a finite number

    Returns a new frame with exactly (user_id, item_id, rating):
    identifiers as text, rating as float64.
    """
    validate_required_columns(df, SCHEMA.required_columns)

    out = df[list(SCHEMA.required_columns)].copy()
    n_in = len(out)

    out = out.dropna(subset=[SCHEMA.USER_ID, SCHEMA.ITEM_ID])
    out[SCHEMA.USER_ID] = _as_text(out[SCHEMA.USER_ID])
    out[SCHEMA.ITEM_ID] = _as_text(out[SCHEMA.ITEM_ID])
    out = out[(out[SCHEMA.USER_ID] != "") & (out[SCHEMA.ITEM_ID] != "")]

    out[SCHEMA.RATING] = pd.to_numeric(out[SCHEMA.RATING], errors="coerce").astype("float64")
    out = out[np.isfinite(out[SCHEMA.RATING].to_numpy())]

    dropped = n_in - len(out)
    if dropped:
        log_step(f"[{source}] dropped {fmt_count(dropped)} malformed rows of {fmt_count(n_in)}")

    return out.reset_index(drop=True)


def validate_similarities_df(df: pd.DataFrame) -> None:
    validate_required_columns(df, SIM_SCHEMA.columns)

    if len(df) == 0:
        return
    if (df[SIM_SCHEMA.ITEM_A] >= df[SIM_SCHEMA.ITEM_B]).any():
        raise DataValidationError("Pairs must be canonical (item_a < item_b).")
    if df.duplicated([SIM_SCHEMA.ITEM_A, SIM_SCHEMA.ITEM_B]).any():
        raise DataValidationError("Duplicate item pairs found.")
