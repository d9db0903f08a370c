from __future__ import annotations

from vecsim.common.time import clock


def log_step(msg: str) -> None:
    print(f"[{clock()}] {msg}", flush=True)


def fmt_count(n: int) -> str:
    return f"{int(n):,}"
