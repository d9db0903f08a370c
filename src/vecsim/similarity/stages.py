# src/vecsim/similarity/stages.py
from __future__ import annotations

from typing import Optional

import duckdb
import numpy as np
import pandas as pd

from vecsim.data.schemas import PAIR_STATS_COLUMNS, SCHEMA, SIM_SCHEMA
from vecsim.similarity import measures

# Relations created on the connection, in dataflow order
RATINGS_SRC = "ratings_src"
RATINGS = "ratings"
RATED_ITEMS = "rated_items"
RATINGS_WITH_SIZE = "ratings_with_size"
PAIRABLE_RATINGS = "pairable_ratings"
RATING_PAIRS = "rating_pairs"
PAIR_STATS = "pair_stats"


def _count(con: duckdb.DuckDBPyConnection, relation: str) -> int:
    return int(con.execute(f"SELECT COUNT(*) FROM {relation};").fetchone()[0])


def load_ratings(con: duckdb.DuckDBPyConnection, ratings: pd.DataFrame) -> int:
    """
    Register a canonical ratings frame and expose it as the `ratings` view.

    Repeated (user, item) rows are averaged so every user contributes at most
    one rating per item; rater counts and pairs both read this view.
    Ordering the values keeps the average bit-identical across runs.
    """
    con.register(RATINGS_SRC, ratings[list(SCHEMA.required_columns)])
    con.execute(
        f"""
        CREATE OR REPLACE TEMP VIEW {RATINGS} AS
        SELECT user_id, item_id, AVG(CAST(rating AS DOUBLE) ORDER BY rating) AS rating
        FROM {RATINGS_SRC}
        GROUP BY user_id, item_id;
        """
    )
    return _count(con, RATINGS)


def count_raters(
    con: duckdb.DuckDBPyConnection,
    *,
    min_num_raters: int = 1,
    max_num_raters: Optional[int] = None,
) -> int:
    """
    Rater count stage.

    rated_items:       item_id, num_raters (distinct users), within the rater bounds
    ratings_with_size: every rating of a kept item with its num_raters attached

    Returns the number of items kept.
    """
    upper = "" if max_num_raters is None else f"AND COUNT(DISTINCT user_id) <= {int(max_num_raters)}"
    con.execute(
        f"""
        CREATE OR REPLACE TEMP TABLE {RATED_ITEMS} AS
        SELECT item_id, COUNT(DISTINCT user_id) AS num_raters
        FROM {RATINGS}
        GROUP BY item_id
        HAVING COUNT(DISTINCT user_id) >= {int(min_num_raters)}
           {upper};
        """
    )
    # rated_items is the small side; DuckDB builds the hash table on it
    con.execute(
        f"""
        CREATE OR REPLACE TEMP VIEW {RATINGS_WITH_SIZE} AS
        SELECT r.user_id, r.item_id, r.rating, s.num_raters
        FROM {RATINGS} r
        JOIN {RATED_ITEMS} s USING(item_id);
        """
    )
    return _count(con, RATED_ITEMS)


def prune_users(con: duckdb.DuckDBPyConnection, *, max_items_per_user: Optional[int] = None) -> int:
    """
    Drop users that cannot or should not be paired: fewer than two rated items
    (no pairs) or more than max_items_per_user (quadratic fan-out).

    Returns the number of ratings left for pairing.
    """
    upper = "" if max_items_per_user is None else f"AND COUNT(*) <= {int(max_items_per_user)}"
    con.execute(
        f"""
        CREATE OR REPLACE TEMP TABLE {PAIRABLE_RATINGS} AS
        SELECT r.user_id, r.item_id, r.rating, r.num_raters
        FROM {RATINGS_WITH_SIZE} r
        JOIN (
            SELECT user_id
            FROM {RATINGS_WITH_SIZE}
            GROUP BY user_id
            HAVING COUNT(*) >= 2
               {upper}
        ) u USING(user_id);
        """
    )
    return _count(con, PAIRABLE_RATINGS)


def build_rating_pairs(con: duckdb.DuckDBPyConnection) -> None:
    """
    Pairing stage: self-join on user, keep item_a < item_b.

    The strict inequality drops self pairs and one of each (A, B)/(B, A).
    Kept as a view so the join streams straight into the aggregation.
    """
    con.execute(
        f"""
        CREATE OR REPLACE TEMP VIEW {RATING_PAIRS} AS
        SELECT
            a.user_id    AS user_id,
            a.item_id    AS item_a,
            b.item_id    AS item_b,
            a.rating     AS rating_a,
            b.rating     AS rating_b,
            a.num_raters AS num_raters_a,
            b.num_raters AS num_raters_b
        FROM {PAIRABLE_RATINGS} a
        JOIN {PAIRABLE_RATINGS} b
          ON a.user_id = b.user_id
         AND a.item_id < b.item_id;
        """
    )


def aggregate_pairs(con: duckdb.DuckDBPyConnection, *, min_intersection: int = 1) -> int:
    """
    Aggregation stage: sufficient statistics per (item_a, item_b).

    Sums are ordered aggregates over user_id: floating-point addition is not
    associative, and a parallel hash aggregate would otherwise add rows in a
    different order on every run.
    num_raters_* are constant within a group; MAX just carries them through.
    Pairs with fewer than min_intersection co-raters are dropped here.
    """
    con.execute(
        f"""
        CREATE OR REPLACE TEMP TABLE {PAIR_STATS} AS
        SELECT
            item_a,
            item_b,
            COUNT(*)                                   AS size,
            SUM(rating_a * rating_b ORDER BY user_id)  AS dot_product,
            SUM(rating_a ORDER BY user_id)             AS sum_a,
            SUM(rating_b ORDER BY user_id)             AS sum_b,
            SUM(rating_a * rating_a ORDER BY user_id)  AS sum_sq_a,
            SUM(rating_b * rating_b ORDER BY user_id)  AS sum_sq_b,
            MAX(num_raters_a)                          AS num_raters_a,
            MAX(num_raters_b)                          AS num_raters_b
        FROM {RATING_PAIRS}
        GROUP BY item_a, item_b
        HAVING COUNT(*) >= {int(min_intersection)};
        """
    )
    return _count(con, PAIR_STATS)


def fetch_pair_stats(con: duckdb.DuckDBPyConnection) -> pd.DataFrame:
    cols = ", ".join(PAIR_STATS_COLUMNS)
    return con.execute(f"SELECT {cols} FROM {PAIR_STATS} ORDER BY item_a, item_b;").df()


def score_pairs(stats: pd.DataFrame, *, prior_count: float, prior_correlation: float) -> pd.DataFrame:
    """
    Similarity stage: map sufficient statistics to the four similarity scores.
    Pure and row-wise; undefined scores are NaN.
    """
    def col(name: str) -> np.ndarray:
        return stats[name].to_numpy(dtype="float64")

    size = col("size")
    moments = (size, col("dot_product"), col("sum_a"), col("sum_b"), col("sum_sq_a"), col("sum_sq_b"))

    out = pd.DataFrame(
        {
            SIM_SCHEMA.ITEM_A: stats["item_a"].to_numpy(),
            SIM_SCHEMA.ITEM_B: stats["item_b"].to_numpy(),
            SIM_SCHEMA.CORRELATION: measures.correlation(*moments),
            SIM_SCHEMA.REGULARIZED_CORRELATION: measures.regularized_correlation(
                *moments, virtual_count=prior_count, prior_correlation=prior_correlation
            ),
            SIM_SCHEMA.COSINE: measures.cosine_similarity(col("dot_product"), col("sum_sq_a"), col("sum_sq_b")),
            SIM_SCHEMA.JACCARD: measures.jaccard_similarity(size, col("num_raters_a"), col("num_raters_b")),
            SIM_SCHEMA.SIZE: stats["size"].to_numpy(dtype="int64"),
            SIM_SCHEMA.NUM_RATERS_A: stats["num_raters_a"].to_numpy(dtype="int64"),
            SIM_SCHEMA.NUM_RATERS_B: stats["num_raters_b"].to_numpy(dtype="int64"),
        },
        columns=list(SIM_SCHEMA.columns),
    )
    return out
