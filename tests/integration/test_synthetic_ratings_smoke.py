from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


def _synthetic_ratings(n_users: int = 400, n_items: int = 60, density: float = 0.15, seed: int = 7) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    mask = rng.random((n_users, n_items)) < density
    users, items = np.nonzero(mask)
    ratings = rng.integers(1, 6, size=users.size).astype(float)
    return pd.DataFrame({"user_id": users, "item_id": items, "rating": ratings})


@pytest.mark.integration
def test_synthetic_run_matches_pandas_reference(run_integration):
    if not run_integration:
        pytest.skip("set VECSIM_INTEGRATION=1 to run")

    from vecsim.similarity.config import SimilarityConfig
    from vecsim.similarity.item_similarity import compute_similarities
    from vecsim.sources.base import FrameRatingSource

    df = _synthetic_ratings()
    sims = compute_similarities(FrameRatingSource(df), SimilarityConfig(min_num_raters=1, min_intersection=3))

    assert len(sims) > 0
    assert (sims["item_a"] < sims["item_b"]).all()
    assert (sims["size"] >= 3).all()
    assert sims["jaccard_similarity"].between(0, 1).all()

    # spot-check one pair against a direct pandas computation
    row = sims.sort_values("size", ascending=False).iloc[0]
    wide = df.assign(item_id=df["item_id"].astype(str), user_id=df["user_id"].astype(str)).pivot(
        index="user_id", columns="item_id", values="rating"
    )
    both = wide[[row["item_a"], row["item_b"]]].dropna()
    assert len(both) == row["size"]
    assert row["correlation"] == pytest.approx(both.corr().iloc[0, 1])
