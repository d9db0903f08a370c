from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def clock() -> str:
    """Wall-clock HH:MM:SS used as the log line prefix."""
    return datetime.now().strftime("%H:%M:%S")
