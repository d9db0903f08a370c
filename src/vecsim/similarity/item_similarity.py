# src/vecsim/similarity/item_similarity.py
from __future__ import annotations

import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import duckdb
import pandas as pd

from vecsim.common.io import write_json
from vecsim.common.time import utc_now
from vecsim.common.utils import fmt_count, log_step
from vecsim.data.schemas import SCHEMA, SIM_SCHEMA
from vecsim.data.validation import normalize_ratings
from vecsim.sinks import SimilaritySink
from vecsim.similarity import stages
from vecsim.similarity.config import SimilarityConfig
from vecsim.sources.base import RatingSource
from vecsim.sources.tsv import write_ratings_tsv


# ============================================================
# DuckDB session
# ============================================================
def _make_run_tmp_dir(base: Optional[Path]) -> Path:
    """Spill files go to a private directory per run so runs never share temp state."""
    if base is not None:
        base.mkdir(parents=True, exist_ok=True)
    return Path(
        tempfile.mkdtemp(
            prefix=f"vecsim_duckdb_{os.getpid()}_{datetime.now().strftime('%Y%m%d_%H%M%S')}_",
            dir=None if base is None else base.as_posix(),
        )
    )


def _connect(cfg: SimilarityConfig, run_tmp: Path) -> duckdb.DuckDBPyConnection:
    con = duckdb.connect(database=":memory:")
    con.execute(f"PRAGMA threads={cfg.threads};")
    con.execute(f"PRAGMA memory_limit='{cfg.memory_limit}';")
    con.execute(f"PRAGMA temp_directory='{run_tmp.as_posix()}';")
    con.execute("PRAGMA enable_progress_bar=false;")
    con.execute("PRAGMA preserve_insertion_order=false;")
    return con


def empty_similarities() -> pd.DataFrame:
    out = pd.DataFrame({c: pd.Series(dtype="float64") for c in SIM_SCHEMA.columns})
    for c in (SIM_SCHEMA.ITEM_A, SIM_SCHEMA.ITEM_B):
        out[c] = out[c].astype(object)
    for c in (SIM_SCHEMA.SIZE, SIM_SCHEMA.NUM_RATERS_A, SIM_SCHEMA.NUM_RATERS_B):
        out[c] = out[c].astype("int64")
    return out


# ============================================================
# Core build
# ============================================================
def similarities_from_ratings(ratings: pd.DataFrame, cfg: SimilarityConfig) -> Tuple[pd.DataFrame, Dict[str, int]]:
    """
    Run the dataflow on an already-normalized ratings frame.

    Returns (similarities, per-stage counts). Similarities are sorted by
    (item_a, item_b) so identical input gives identical output.
    """
    cfg.validate()
    counts: Dict[str, int] = {"n_ratings_in": int(len(ratings))}

    if ratings.empty:
        log_step("No ratings to compare; emitting an empty similarity table")
        return empty_similarities(), counts

    run_tmp = _make_run_tmp_dir(cfg.tmp_dir)
    con: duckdb.DuckDBPyConnection | None = None
    try:
        con = _connect(cfg, run_tmp)

        log_step("Step 1/5: Loading ratings")
        counts["n_ratings"] = stages.load_ratings(con, ratings)
        log_step(f"ratings ready: {fmt_count(counts['n_ratings'])} user-item ratings")

        log_step("Step 2/5: Counting raters per item + applying rater bounds")
        counts["n_items"] = stages.count_raters(
            con, min_num_raters=cfg.min_num_raters, max_num_raters=cfg.max_num_raters
        )
        log_step(f"rated_items ready: {fmt_count(counts['n_items'])} items retained")

        log_step("Step 3/5: Pruning single-item and power users")
        counts["n_pairable_ratings"] = stages.prune_users(con, max_items_per_user=cfg.max_items_per_user)
        log_step(f"pairable ratings: {fmt_count(counts['n_pairable_ratings'])}")

        log_step("Step 4/5: Pairing co-rated items + aggregating sufficient statistics (heavy join)")
        stages.build_rating_pairs(con)
        counts["n_pairs"] = stages.aggregate_pairs(con, min_intersection=cfg.min_intersection)
        log_step(f"pair_stats ready: {fmt_count(counts['n_pairs'])} item pairs")

        stats = stages.fetch_pair_stats(con)
    finally:
        if con is not None:
            con.close()
        shutil.rmtree(run_tmp, ignore_errors=True)

    log_step("Step 5/5: Scoring correlation / regularized correlation / cosine / jaccard")
    sims = stages.score_pairs(stats, prior_count=cfg.prior_count, prior_correlation=cfg.prior_correlation)
    counts["n_undefined_correlation"] = int(sims[SIM_SCHEMA.CORRELATION].isna().sum())
    return sims, counts


def compute_similarities(source: RatingSource, cfg: Optional[SimilarityConfig] = None) -> pd.DataFrame:
    """Source -> similarity table, no files written."""
    cfg = cfg or SimilarityConfig()
    ratings = normalize_ratings(source.produce(SCHEMA.USER_ID, SCHEMA.ITEM_ID, SCHEMA.RATING), source=source.describe())
    sims, _ = similarities_from_ratings(ratings, cfg)
    return sims


def build_item_similarity(
    source: RatingSource,
    sink: SimilaritySink,
    cfg: Optional[SimilarityConfig] = None,
    *,
    meta_path: Optional[Path] = None,
    ratings_out: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Full batch run: read the source, compute similarities, write them.

    ratings_out: optionally persist the normalized source relation
                 (useful for mined sources such as check-ins).
    meta_path:   optional JSON sidecar with counts and effective settings.
    """
    cfg = (cfg or SimilarityConfig()).validate()

    log_step(f"Reading ratings from {source.describe()}")
    ratings = normalize_ratings(source.produce(SCHEMA.USER_ID, SCHEMA.ITEM_ID, SCHEMA.RATING), source=source.describe())

    if ratings_out is not None:
        write_ratings_tsv(ratings, ratings_out)
        log_step(f"Ratings: {ratings_out}")

    sims, counts = similarities_from_ratings(ratings, cfg)
    out_path = sink.write(sims)
    log_step(f"✅ Wrote: {out_path}")

    meta = {
        "source": source.describe(),
        "output": str(out_path),
        "generated_at": utc_now().isoformat(),
        "counts": counts,
        "effective": cfg.thresholds(),
        "duckdb": {"threads": cfg.threads, "memory_limit": cfg.memory_limit},
        "undefined_value": "NaN",
        "pair_order": "item < item2 (lexicographic on text ids)",
    }
    if meta_path is not None:
        write_json(meta_path, meta)
        log_step(f"✅ Meta : {meta_path}")

    return {
        "output_path": str(out_path),
        "meta_path": None if meta_path is None else str(meta_path),
        "counts": counts,
        "effective_cfg": cfg,
    }
