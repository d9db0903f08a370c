from __future__ import annotations

import pandas as pd
import pytest

from vecsim.data.validation import normalize_ratings
from vecsim.sources.base import RatingSource
from vecsim.sources.tsv import TsvRatingSource, write_ratings_tsv


def test_tsv_source_contract(small_ratings_df, write_ratings_tsv):
    src = TsvRatingSource(write_ratings_tsv(small_ratings_df))
    assert isinstance(src, RatingSource)

    df = src.produce("u", "i", "r")
    assert list(df.columns) == ["u", "i", "r"]
    assert len(df) == len(small_ratings_df)


def test_tsv_source_keeps_ids_as_text(write_ratings_tsv):
    p = write_ratings_tsv(pd.DataFrame({"u": [1, 2], "i": [10, 9], "r": [4, 5]}))
    df = TsvRatingSource(p).produce()
    assert df["item_id"].tolist() == ["10", "9"]


def test_tsv_source_skips_malformed_rows(sandbox):
    p = sandbox / "dirty.tsv"
    p.write_text(
        "user\titem\trating\n"  # header line: rating not numeric
        "u1\tA\t4\n"
        "u1\tB\tfive\n"
        "u2\tA\n"
        "u2\tB\t3\textra\n"
        "\n"
        "u3\tB\t2.5\n",
        encoding="utf-8",
    )
    ratings = normalize_ratings(TsvRatingSource(p).produce())
    assert list(zip(ratings["user_id"], ratings["item_id"], ratings["rating"])) == [
        ("u1", "A", 4.0),
        ("u3", "B", 2.5),
    ]


def test_tsv_source_missing_file_raises(sandbox):
    with pytest.raises(FileNotFoundError):
        TsvRatingSource(sandbox / "nope.tsv").produce()


def test_ratings_dump_reads_back(small_ratings_df, sandbox):
    ratings = normalize_ratings(small_ratings_df)
    p = write_ratings_tsv(ratings, sandbox / "dump" / "ratings.tsv")
    back = normalize_ratings(TsvRatingSource(p).produce())
    pd.testing.assert_frame_equal(back, ratings, check_dtype=False)


def test_ratings_dump_escapes_tabs_in_ids(sandbox):
    ratings = pd.DataFrame({"user_id": ["u1", "u2"], "item_id": ["Tab\tName", "Plain"], "rating": [4.0, 3.5]})
    p = write_ratings_tsv(ratings, sandbox / "escaped.tsv")

    back = normalize_ratings(TsvRatingSource(p).produce())
    assert back["item_id"].tolist() == ["Tab\tName", "Plain"]
    assert back["rating"].tolist() == [4.0, 3.5]
