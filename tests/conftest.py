# tests/conftest.py
from __future__ import annotations

from pathlib import Path
import os

import pandas as pd
import pytest


@pytest.fixture()
def sandbox(tmp_path: Path) -> Path:
    """Per-test filesystem sandbox."""
    return tmp_path


@pytest.fixture()
def chdir_sandbox(monkeypatch, sandbox: Path):
    """
    Run code as-if repo root is sandbox so relative paths
    like outputs/... resolve inside sandbox.
    """
    monkeypatch.chdir(sandbox)
    return sandbox


@pytest.fixture()
def scenario_ratings_df() -> pd.DataFrame:
    """Three users who all rated A and B (worked example: correlation ~0.866)."""
    return pd.DataFrame(
        {
            "user_id": ["u1", "u1", "u2", "u2", "u3", "u3"],
            "item_id": ["A", "B", "A", "B", "A", "B"],
            "rating": [5.0, 4.0, 3.0, 3.0, 5.0, 5.0],
        }
    )


@pytest.fixture()
def small_ratings_df() -> pd.DataFrame:
    """
    Tiny deterministic ratings dataset (5 users, 5 items).

    - u5 rated a single item (contributes no pairs)
    - E is only rated by u4 and u5, never together with D by the same user
    """
    return pd.DataFrame(
        {
            "user_id": ["u1", "u1", "u1", "u2", "u2", "u2", "u3", "u3", "u3", "u4", "u4", "u5"],
            "item_id": ["A", "B", "C", "A", "B", "D", "A", "C", "D", "B", "E", "E"],
            "rating": [4.0, 5.0, 3.0, 2.0, 4.0, 5.0, 5.0, 1.0, 4.0, 3.0, 2.0, 5.0],
        }
    )


@pytest.fixture()
def write_ratings_tsv(sandbox: Path):
    """Write a ratings frame as headerless user/item/rating TSV and return its path."""
    def _write(df: pd.DataFrame, name: str = "ratings.tsv") -> Path:
        p = sandbox / "_generated" / name
        p.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(p, sep="\t", header=False, index=False)
        return p

    return _write


@pytest.fixture()
def posts_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "user_id": ["1", "1", "2", "2", "3", "3", "4"],
            "text": [
                "My review for 'Hop' on Rotten Tomatoes: 1 star > http://bit.ly/AB7Tl4",
                "My review for 'Up' on Rotten Tomatoes: 4 stars-Lovely http://tmto.es/x",
                "My review for 'Hop' on Rotten Tomatoes: 2 stars http://bit.ly/q",
                "My review for 'Up' on Rotten Tomatoes: 5 stars http://bit.ly/r",
                "just watched Up, loved it",
                "My review for 'Up' on Rotten Tomatoes: 3 stars http://bit.ly/s",
                None,
            ],
        }
    )


@pytest.fixture()
def run_integration() -> bool:
    """Larger end-to-end runs are opt-in."""
    return os.getenv("VECSIM_INTEGRATION", "0") == "1"
