# src/vecsim/pipelines/run_similarities.py
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from vecsim.similarity.item_similarity import build_item_similarity
from vecsim.sinks import make_sink
from vecsim.sources.presets import PRESETS, get_preset


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="vecsim-similarities",
        description="Compute item-item correlation, cosine and Jaccard similarities from ratings.",
    )
    ap.add_argument("--dataset", choices=sorted(PRESETS), default="movies")
    ap.add_argument("--input", type=Path, default=None, help="ratings TSV or posts TSV, depending on --dataset")
    ap.add_argument("--output", type=Path, default=Path("outputs/similarities/output.tsv"))
    ap.add_argument("--format", choices=["tsv", "parquet"], default="tsv")
    ap.add_argument("--meta", type=Path, default=None, help="optional JSON sidecar with run counts")
    ap.add_argument("--ratings-out", type=Path, default=None, help="also dump the parsed ratings as TSV")

    th = ap.add_argument_group("thresholds (override the dataset preset)")
    th.add_argument("--min-num-raters", type=int, default=None)
    th.add_argument("--max-num-raters", type=int, default=None)
    th.add_argument("--min-intersection", type=int, default=None)
    th.add_argument("--prior-count", type=float, default=None)
    th.add_argument("--prior-correlation", type=float, default=None)
    th.add_argument("--max-items-per-user", type=int, default=None)

    db = ap.add_argument_group("duckdb")
    db.add_argument("--threads", type=int, default=None)
    db.add_argument("--memory-limit", type=str, default=None)
    db.add_argument("--tmp-dir", type=Path, default=None)
    return ap


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    keys = (
        "min_num_raters",
        "max_num_raters",
        "min_intersection",
        "prior_count",
        "prior_correlation",
        "max_items_per_user",
        "threads",
        "memory_limit",
        "tmp_dir",
    )
    return {k: getattr(args, k) for k in keys if getattr(args, k) is not None}


def run(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    ap = build_parser()
    args = ap.parse_args(argv)

    preset = get_preset(args.dataset)
    input_path = args.input or preset.default_input
    if input_path is None:
        ap.error(f"--input is required for dataset {args.dataset!r}")

    try:
        cfg = preset.config().with_overrides(**_overrides(args)).validate()
    except ValueError as e:
        ap.error(str(e))

    print(f"=== Item similarities: {preset.name} ===", flush=True)
    out = build_item_similarity(
        preset.make_source(input_path),
        make_sink(args.output, args.format),
        cfg,
        meta_path=args.meta,
        ratings_out=args.ratings_out,
    )
    print(f"✅ {out['counts'].get('n_pairs', 0)} pairs -> {out['output_path']}", flush=True)
    return out


def main(argv: Optional[List[str]] = None) -> None:
    run(argv)


if __name__ == "__main__":
    main()
