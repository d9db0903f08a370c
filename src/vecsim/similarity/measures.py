# src/vecsim/similarity/measures.py
from __future__ import annotations

import numpy as np

# Undefined similarity (zero variance / zero norm). Written as "NaN" in TSV.
UNDEFINED = float("nan")

# Relative tolerance below which n*sum_sq - sum^2 is treated as exact zero.
# The raw-moment form cancels catastrophically when all ratings are equal.
VARIANCE_RTOL = 1e-12


def _arr(x) -> np.ndarray:
    return np.asarray(x, dtype="float64")


def _out(a: np.ndarray):
    # Scalars in, float out; arrays in, arrays out.
    return float(a) if a.ndim == 0 else a


def _safe_divide(num: np.ndarray, den: np.ndarray, *, defined: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        q = num / den
    return np.where(defined, q, np.nan)


def _variance_term(size: np.ndarray, total: np.ndarray, total_sq: np.ndarray) -> np.ndarray:
    """n * sum(x^2) - sum(x)^2, clamped to 0 when it is round-off."""
    v = size * total_sq - total * total
    tol = VARIANCE_RTOL * np.abs(size * total_sq)
    return np.where(v > tol, v, 0.0)


def correlation(size, dot_product, sum_a, sum_b, sum_sq_a, sum_sq_b):
    """
    Pearson correlation from raw moments:

        [n * dot(A, B) - sum(A) * sum(B)] /
          sqrt{ [n * |A|^2 - sum(A)^2] [n * |B|^2 - sum(B)^2] }

    NaN when either vector has zero variance (including a single co-rater).
    """
    n = _arr(size)
    sa, sb = _arr(sum_a), _arr(sum_b)

    numerator = n * _arr(dot_product) - sa * sb
    denominator = np.sqrt(_variance_term(n, sa, _arr(sum_sq_a))) * np.sqrt(_variance_term(n, sb, _arr(sum_sq_b)))

    corr = _safe_divide(numerator, denominator, defined=denominator > 0)
    return _out(np.clip(corr, -1.0, 1.0))


def regularized_correlation(
    size,
    dot_product,
    sum_a,
    sum_b,
    sum_sq_a,
    sum_sq_b,
    *,
    virtual_count: float,
    prior_correlation: float,
):
    """
    Shrink correlation toward a prior with virtual pseudocounts:

        w = n / (n + virtual_count)
        w * corr + (1 - w) * prior

    With no actual pairs (w = 0) the result is the prior. Otherwise an
    undefined correlation stays undefined.
    """
    n = _arr(size)
    corr = _arr(correlation(n, dot_product, sum_a, sum_b, sum_sq_a, sum_sq_b))

    has_pairs = n > 0
    w = _safe_divide(n, n + float(virtual_count), defined=has_pairs)
    blended = w * corr + (1.0 - w) * float(prior_correlation)
    return _out(np.where(has_pairs, blended, float(prior_correlation)))


def cosine_similarity(dot_product, sum_sq_a, sum_sq_b):
    """dot(A, B) / (|A| * |B|); NaN when either norm is zero."""
    denominator = np.sqrt(_arr(sum_sq_a)) * np.sqrt(_arr(sum_sq_b))
    cos = _safe_divide(_arr(dot_product), denominator, defined=denominator > 0)
    return _out(np.clip(cos, -1.0, 1.0))


def jaccard_similarity(size, num_raters_a, num_raters_b):
    """|A ∩ B| / |A ∪ B| over the sets of raters."""
    n = _arr(size)
    union = _arr(num_raters_a) + _arr(num_raters_b) - n
    return _out(_safe_divide(n, union, defined=union > 0))
