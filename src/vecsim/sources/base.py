# src/vecsim/sources/base.py
from __future__ import annotations

from typing import Protocol, runtime_checkable

import pandas as pd

from vecsim.data.schemas import SCHEMA


@runtime_checkable
class RatingSource(Protocol):
    """
    Anything that can hand the pipeline a (user, item, rating) relation.

    Implementations only promise the three named columns; cleaning of
    malformed rows happens once, downstream, in vecsim.data.validation.
    """

    def describe(self) -> str:
        ...

    def produce(
        self,
        user_field: str = SCHEMA.USER_ID,
        item_field: str = SCHEMA.ITEM_ID,
        rating_field: str = SCHEMA.RATING,
    ) -> pd.DataFrame:
        ...


class FrameRatingSource:
    """In-memory ratings, e.g. a frame built by another pipeline or a test."""

    def __init__(self, ratings: pd.DataFrame, *, columns: tuple[str, str, str] | None = None) -> None:
        self._ratings = ratings
        self._columns = columns or tuple(ratings.columns[:3])

    def describe(self) -> str:
        return f"frame[{len(self._ratings)} rows]"

    def produce(
        self,
        user_field: str = SCHEMA.USER_ID,
        item_field: str = SCHEMA.ITEM_ID,
        rating_field: str = SCHEMA.RATING,
    ) -> pd.DataFrame:
        u, i, r = self._columns
        out = self._ratings[[u, i, r]].copy()
        out.columns = [user_field, item_field, rating_field]
        return out
