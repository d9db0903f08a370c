# src/vecsim/sources/presets.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict

from vecsim.similarity.config import SimilarityConfig
from vecsim.sources.base import RatingSource
from vecsim.sources.posts import FOURSQUARE, ITUNES, ROTTEN_TOMATOES, PostsRatingSource
from vecsim.sources.tsv import TsvRatingSource


@dataclass(frozen=True)
class DatasetPreset:
    """A rating origin plus the thresholds that suit its density."""

    name: str
    make_source: Callable[[Path], RatingSource]
    overrides: Dict[str, Any] = field(default_factory=dict)
    default_input: Path | None = None

    def config(self, base: SimilarityConfig | None = None) -> SimilarityConfig:
        return (base or SimilarityConfig()).with_overrides(**self.overrides)


_SPARSE = {"min_num_raters": 2, "max_num_raters": 1000, "min_intersection": 2}

PRESETS: Dict[str, DatasetPreset] = {
    # Plain MovieLens-style ratings: every item is compared
    "movies": DatasetPreset(
        name="movies",
        make_source=TsvRatingSource,
        overrides={"min_num_raters": 1, "max_num_raters": None, "min_intersection": 1},
        default_input=Path("data/ratings.tsv"),
    ),
    "book-crossing": DatasetPreset(
        name="book-crossing",
        make_source=TsvRatingSource,
        overrides=dict(_SPARSE),
        default_input=Path("data/book-ratings.tsv"),
    ),
    "rotten-tomatoes": DatasetPreset(
        name="rotten-tomatoes",
        make_source=lambda p: PostsRatingSource(p, ROTTEN_TOMATOES),
        overrides=dict(_SPARSE),
    ),
    "itunes": DatasetPreset(
        name="itunes",
        make_source=lambda p: PostsRatingSource(p, ITUNES),
        overrides={**_SPARSE, "min_intersection": 5},
    ),
    "foursquare": DatasetPreset(
        name="foursquare",
        make_source=lambda p: PostsRatingSource(p, FOURSQUARE),
        overrides=dict(_SPARSE),
    ),
}


def get_preset(name: str) -> DatasetPreset:
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown dataset preset {name!r}. Choose from: {sorted(PRESETS)}") from None
