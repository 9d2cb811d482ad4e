"""
NumPy weighted-proportion primitive.

Given category values and aligned weights, returns the weight-normalized
share of each observed level.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def _as_level_array(values: ArrayLike) -> NDArray:
    arr = np.asarray(values)
    if arr.ndim != 1:
        arr = arr.reshape(-1)
    return arr


def weighted_pct(
    values: ArrayLike,
    weights: ArrayLike,
) -> dict[Any, float]:
    """
    Weighted proportion of each distinct level in `values`.

    Parameters
    ----------
    values
        Category values, one per row.
    weights
        Non-negative weights aligned with `values`.

    Returns
    -------
    dict
        {level: proportion}, levels in sorted order (order of first
        appearance when levels of mixed types can't be sorted).
        Proportions sum to 1.

    Examples
    --------
    >>> weighted_pct(["a", "a", "b"], [1.0, 1.0, 2.0])
    {'a': 0.5, 'b': 0.5}
    """
    levels_in = _as_level_array(values)
    w = np.asarray(weights, dtype=np.float64).reshape(-1)

    if len(levels_in) != len(w):
        raise ValueError(
            f"values and weights differ in length ({len(levels_in)} != {len(w)})"
        )

    total = w.sum()
    if not total > 0:
        raise ValueError(f"Total weight must be positive, got {total}")

    if levels_in.dtype == object:
        levels, inverse = _factorize_objects(levels_in)
    else:
        unique, inverse = np.unique(levels_in, return_inverse=True)
        levels = unique.tolist()
    sums = np.bincount(inverse.reshape(-1), weights=w, minlength=len(levels))

    return {level: float(s / total) for level, s in zip(levels, sums)}


def _factorize_objects(values: NDArray) -> tuple[list[Any], NDArray[np.intp]]:
    # np.unique sorts, which fails on mixed types such as "a" and 1
    codes: dict[Any, int] = {}
    inverse = np.fromiter(
        (codes.setdefault(v, len(codes)) for v in values.tolist()),
        dtype=np.intp,
        count=len(values),
    )
    levels = list(codes)
    try:
        order = sorted(range(len(levels)), key=levels.__getitem__)
    except TypeError:
        return levels, inverse

    remap = np.empty(len(levels), dtype=np.intp)
    remap[order] = np.arange(len(levels))
    return [levels[i] for i in order], remap[inverse]


def reindex_pct(
    pct: dict[Any, float],
    levels: Sequence[Any],
) -> tuple[NDArray[np.float64], list[Any]]:
    """
    Reorder `pct` to `levels`. Returns (proportions, absent_levels).

    Levels are matched by value first, then by name (``str(level)``), so a
    target level "1" finds observed level 1. Absent levels get 0.
    """
    by_name: dict[str, float] = {}
    for observed, value in pct.items():
        by_name.setdefault(str(observed), value)

    out = np.zeros(len(levels), dtype=np.float64)
    absent = []
    for i, level in enumerate(levels):
        value = pct.get(level)
        if value is None:
            value = by_name.get(str(level))
        if value is None:
            absent.append(level)
        else:
            out[i] = value
    return out, absent
