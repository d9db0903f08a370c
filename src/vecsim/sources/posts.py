# src/vecsim/sources/posts.py
from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import pandas as pd

from vecsim.common.utils import fmt_count, log_step
from vecsim.data.schemas import SCHEMA
from vecsim.data.validation import validate_required_columns

POST_USER_ID = "user_id"
POST_TEXT = "text"


@dataclass(frozen=True)
class PostPattern:
    """
    How to turn one free-text post into at most one rating.

    item_groups:  1-based capture groups that make up the item name; several
                  groups are joined with item_joiner ("Song by Artist").
    rating_group: 1-based capture group holding the star rating. None means an
                  implicit signal (check-in, like) and every match rates 1.
    must_contain: cheap substring pre-filter applied before the regex.
    unique:       collapse identical (user, item, rating) rows.
    """

    name: str
    regex: str
    item_groups: Tuple[int, ...] = (1,)
    item_joiner: str = " by "
    rating_group: Optional[int] = None
    must_contain: Optional[str] = None
    unique: bool = True


# My review for 'Hop' on Rotten Tomatoes: 1 star > http://bit.ly/AB7Tl4
ROTTEN_TOMATOES = PostPattern(
    name="rotten-tomatoes",
    regex=r"My review for '(.+?)' on Rotten Tomatoes: (\d) star",
    item_groups=(1,),
    rating_group=2,
)

# rated Super Hits by New Kids On the Block 5 stars http://itun.es/iSg3Fc #iTunes
ITUNES = PostPattern(
    name="itunes",
    regex=r"rated (.+?) by (.+?) (\d) stars .*? #iTunes",
    item_groups=(1, 2),
    rating_group=3,
    must_contain="#iTunes",
    unique=False,
)

# I'm at The Ambassador (673 Geary St, btw Leavenworth & Jones, New York) http://4sq.com/xok3rI
FOURSQUARE = PostPattern(
    name="foursquare",
    regex=r"I'm at (.+?) \(.*? New York",
    item_groups=(1,),
    rating_group=None,
)


def read_posts_tsv(path: Path) -> pd.DataFrame:
    """Two-column posts dump: user_id <TAB> text. Malformed lines are skipped."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Posts file not found: {path}")

    return pd.read_csv(
        path,
        sep="\t",
        header=None,
        names=[POST_USER_ID, POST_TEXT],
        dtype=str,
        quoting=csv.QUOTE_NONE,
        on_bad_lines="skip",
        keep_default_na=False,
        na_values=[""],
    )


def extract_ratings(posts: pd.DataFrame, pattern: PostPattern) -> pd.DataFrame:
    """
    Apply a PostPattern to a posts frame (user_id, text).

    Returns canonical (user_id, item_id, rating) rows for matching posts only.
    Posts that do not match, or whose rating group is not numeric, are dropped.
    """
    validate_required_columns(posts, [POST_USER_ID, POST_TEXT])

    text = posts[POST_TEXT]
    keep = text.notna()
    if pattern.must_contain:
        keep &= text.str.contains(pattern.must_contain, regex=False, na=False)
    candidates = posts.loc[keep, [POST_USER_ID, POST_TEXT]]
    if candidates.empty:
        return pd.DataFrame({c: pd.Series(dtype=object) for c in SCHEMA.required_columns})

    groups = candidates[POST_TEXT].str.extract(pattern.regex, expand=True)

    first, *rest = [groups[g - 1] for g in pattern.item_groups]
    item = first.str.cat(rest, sep=pattern.item_joiner) if rest else first

    if pattern.rating_group is None:
        rating = pd.Series(1.0, index=groups.index)
    else:
        rating = pd.to_numeric(groups[pattern.rating_group - 1], errors="coerce")

    out = pd.DataFrame(
        {
            SCHEMA.USER_ID: candidates[POST_USER_ID],
            SCHEMA.ITEM_ID: item,
            SCHEMA.RATING: rating,
        }
    ).dropna()

    if pattern.unique:
        out = out.drop_duplicates(list(SCHEMA.required_columns))

    return out.reset_index(drop=True)


class PostsRatingSource:
    """
    Ratings mined from social posts with a regex (reviews, song ratings,
    check-ins). Posts come either as a frame or as a posts TSV on disk.
    """

    def __init__(self, posts: Union[pd.DataFrame, Path, str], pattern: PostPattern) -> None:
        self.posts = posts
        self.pattern = pattern

    def describe(self) -> str:
        origin = "frame" if isinstance(self.posts, pd.DataFrame) else str(self.posts)
        return f"posts[{self.pattern.name}]:{origin}"

    def _load(self) -> pd.DataFrame:
        if isinstance(self.posts, pd.DataFrame):
            return self.posts
        return read_posts_tsv(Path(self.posts))

    def produce(
        self,
        user_field: str = SCHEMA.USER_ID,
        item_field: str = SCHEMA.ITEM_ID,
        rating_field: str = SCHEMA.RATING,
    ) -> pd.DataFrame:
        posts = self._load()
        log_step(f"[{self.pattern.name}] scanning {fmt_count(len(posts))} posts")

        ratings = extract_ratings(posts, self.pattern)
        log_step(f"[{self.pattern.name}] extracted {fmt_count(len(ratings))} ratings")

        return ratings.rename(
            columns={
                SCHEMA.USER_ID: user_field,
                SCHEMA.ITEM_ID: item_field,
                SCHEMA.RATING: rating_field,
            }
        )
