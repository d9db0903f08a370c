# src/vecsim/similarity/config.py
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SimilarityConfig:
    # Item rater bounds, applied before pairing (controls fan-out)
    min_num_raters: int = 3
    max_num_raters: Optional[int] = 10_000

    # Minimum co-rater count for a pair to be emitted
    min_intersection: int = 1

    # Correlation regularization (virtual pairs at the prior)
    prior_count: float = 10.0
    prior_correlation: float = 0.0

    # Power-user guardrail (None = no cap)
    max_items_per_user: Optional[int] = None

    # DuckDB tuning
    threads: int = 4
    memory_limit: str = "4GB"
    # Base dir for spill files; a unique per-run dir is created under it.
    # None -> OS temp dir.
    tmp_dir: Optional[Path] = None

    def validate(self) -> "SimilarityConfig":
        if self.min_num_raters < 1:
            raise ValueError("min_num_raters must be >= 1")
        if self.max_num_raters is not None and self.max_num_raters < self.min_num_raters:
            raise ValueError("max_num_raters must be >= min_num_raters")
        if self.min_intersection < 1:
            raise ValueError("min_intersection must be >= 1")
        if self.prior_count < 0:
            raise ValueError("prior_count must be >= 0")
        if not -1.0 <= self.prior_correlation <= 1.0:
            raise ValueError("prior_correlation must be in [-1, 1]")
        if self.max_items_per_user is not None and self.max_items_per_user < 2:
            raise ValueError("max_items_per_user must be >= 2 (a user needs two items to form a pair)")
        if self.threads < 1:
            raise ValueError("threads must be >= 1")
        return self

    def with_overrides(self, **overrides: Any) -> "SimilarityConfig":
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown config options: {sorted(unknown)}")
        return replace(self, **overrides)

    def thresholds(self) -> Dict[str, Any]:
        return {
            "min_num_raters": self.min_num_raters,
            "max_num_raters": self.max_num_raters,
            "min_intersection": self.min_intersection,
            "prior_count": self.prior_count,
            "prior_correlation": self.prior_correlation,
            "max_items_per_user": self.max_items_per_user,
        }
