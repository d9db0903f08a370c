# src/vecsim/data/schemas.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Final, Iterable, Tuple


@dataclass(frozen=True)
class RatingsSchema:
    """
    Canonical (user, item, rating) relation produced by every rating source.
    Keep this stable: all stages read these names.
    """
    USER_ID: Final[str] = "user_id"
    ITEM_ID: Final[str] = "item_id"
    RATING: Final[str] = "rating"

    @property
    def required_columns(self) -> Iterable[str]:
        return (self.USER_ID, self.ITEM_ID, self.RATING)


@dataclass(frozen=True)
class SimilaritySchema:
    """Similarity relation columns (internal names) in output order."""
    ITEM_A: Final[str] = "item_a"
    ITEM_B: Final[str] = "item_b"
    CORRELATION: Final[str] = "correlation"
    REGULARIZED_CORRELATION: Final[str] = "regularized_correlation"
    COSINE: Final[str] = "cosine_similarity"
    JACCARD: Final[str] = "jaccard_similarity"
    SIZE: Final[str] = "size"
    NUM_RATERS_A: Final[str] = "num_raters_a"
    NUM_RATERS_B: Final[str] = "num_raters_b"

    @property
    def columns(self) -> Tuple[str, ...]:
        return (
            self.ITEM_A,
            self.ITEM_B,
            self.CORRELATION,
            self.REGULARIZED_CORRELATION,
            self.COSINE,
            self.JACCARD,
            self.SIZE,
            self.NUM_RATERS_A,
            self.NUM_RATERS_B,
        )

    @property
    def output_names(self) -> Dict[str, str]:
        """Internal column -> conventional column name in written files."""
        return {
            self.ITEM_A: "item",
            self.ITEM_B: "item2",
            self.CORRELATION: "correlation",
            self.REGULARIZED_CORRELATION: "regularizedCorrelation",
            self.COSINE: "cosineSimilarity",
            self.JACCARD: "jaccardSimilarity",
            self.SIZE: "size",
            self.NUM_RATERS_A: "numRatersA",
            self.NUM_RATERS_B: "numRatersB",
        }


# Sufficient statistics produced by the aggregation stage
PAIR_STATS_COLUMNS: Tuple[str, ...] = (
    "item_a",
    "item_b",
    "size",
    "dot_product",
    "sum_a",
    "sum_b",
    "sum_sq_a",
    "sum_sq_b",
    "num_raters_a",
    "num_raters_b",
)

SCHEMA = RatingsSchema()
SIM_SCHEMA = SimilaritySchema()
