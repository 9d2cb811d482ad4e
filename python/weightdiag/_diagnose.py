"""
Narwhals-based API for weighting diagnostics.

Supports both polars and pandas DataFrames transparently.
"""

from __future__ import annotations

import numbers
import warnings
from typing import TYPE_CHECKING, Any, Sequence

import narwhals as nw
import numpy as np
from narwhals.typing import IntoFrameT

from ._checks import check_data, check_targets, check_weights
from ._errors import DataValidationError, MissingWeights
from ._harvest import Harvest
from ._loaders import resolve_targets
from ._pct import reindex_pct, weighted_pct

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

__all__ = [
    "DEFAULT_WEIGHT_CANDIDATES",
    "RESULT_COLUMNS",
    "diagnose_weights",
    "resolve_weights",
    "summarize_diagnostics",
    "weight_summary",
]

# "weights", then the column names the harvesting step assigns when
# "weights" is already taken.
DEFAULT_WEIGHT_CANDIDATES: tuple[str, ...] = ("weights",) + tuple(
    f".weights_autumn{i}" for i in range(1, 11)
)

RESULT_COLUMNS = (
    "variable",
    "level",
    "prop_original",
    "prop_weighted",
    "target",
    "error_original",
    "error_weighted",
)


def _to_numpy_weights(weights: Any) -> np.ndarray:
    series = nw.from_native(weights, series_only=True, pass_through=True)
    if isinstance(series, nw.Series):
        weights = series.to_numpy()
    return np.asarray(weights, dtype=np.float64).reshape(-1)


def resolve_weights(
    df: IntoFrameT,
    weights: ArrayLike | str | None = None,
    *,
    candidates: Sequence[str] = DEFAULT_WEIGHT_CANDIDATES,
    harvest: Harvest | None = None,
) -> np.ndarray:
    """
    Find the weight vector to diagnose.

    Parameters
    ----------
    df
        Input DataFrame (polars or pandas).
    weights
        Explicit weights (array, list or Series), used as given; or the
        name of a weight column in `df`.
    candidates
        Column names searched in order when `weights` is None.
    harvest
        If given, its `weight_column` is searched before `candidates`.

    Returns
    -------
    np.ndarray
        float64 weights.

    Raises
    ------
    MissingWeights
        If no weights were given and none of the candidate columns exist.
    """
    if weights is not None and not isinstance(weights, str):
        return _to_numpy_weights(weights)

    df_nw = nw.from_native(df, eager_only=True)

    if isinstance(weights, str):
        search = [weights]
    else:
        search = list(candidates)
        if harvest is not None and harvest.weight_column is not None:
            search.insert(0, harvest.weight_column)

    for name in search:
        if name in df_nw.columns:
            return _to_numpy_weights(df_nw.get_column(name))

    raise MissingWeights(search)


def _level_kind(level: Any) -> str:
    if isinstance(level, bool):
        return "bool"
    if isinstance(level, numbers.Integral):
        return "int"
    if isinstance(level, numbers.Real):
        return "float"
    if isinstance(level, str):
        return "str"
    return type(level).__name__


def _level_values(levels: list[Any]) -> list[Any]:
    # One dtype per column: fall back to strings when variables disagree
    levels = [level.item() if isinstance(level, np.generic) else level for level in levels]
    kinds = {_level_kind(level) for level in levels}
    if kinds == {"int", "float"}:
        return [float(level) for level in levels]
    if len(kinds) <= 1:
        return levels
    return [str(level) for level in levels]


def diagnose_weights(
    df: IntoFrameT,
    target: Any = None,
    weights: ArrayLike | str | None = None,
    *,
    harvest: Harvest | None = None,
    weight_candidates: Sequence[str] = DEFAULT_WEIGHT_CANDIDATES,
    warn: bool = True,
) -> IntoFrameT:
    """
    Compare unweighted and weighted proportions with target proportions.

    Parameters
    ----------
    df
        Input DataFrame (polars or pandas) containing every target variable.
        May contain additional columns.
    target
        Target proportions in the population of interest. Either a dict
        {variable: {level: proportion}}, a list of such dicts, or a
        DataFrame with (variable, level, proportion) columns in that order.
        Percentages (0-100) are rescaled. If None, the target attached to
        `harvest` is used.
    weights
        Weights aligned with the rows of `df`, or the name of a weight
        column. If None, `df` must contain a "weights" column or one of the
        names the harvesting step assigns (see DEFAULT_WEIGHT_CANDIDATES).
    harvest
        Association returned by the upstream weighting step; supplies the
        target and the weight column when they are not given.
    weight_candidates
        Ordered weight column names to search when `weights` is None.
    warn
        If True, warn about target levels that never occur in the data.

    Returns
    -------
    DataFrame
        One row per (variable, level) in target order, with columns
        variable, level, prop_original, prop_weighted, target,
        error_original, error_weighted.
        Same type as input (polars in → polars out).

    Raises
    ------
    MissingTarget, InvalidTargetFormat, InvalidTargetValues,
    MissingWeights, DataValidationError

    Examples
    --------
    >>> import polars as pl
    >>> import weightdiag
    >>> df = pl.DataFrame({"region": ["north"] * 5 + ["south"] * 5})
    >>> target = {"region": {"north": 0.5, "south": 0.5}}
    >>> weightdiag.diagnose_weights(df, target, weights=[0.5] * 5 + [1.5] * 5)

    >>> # With the association from the weighting step
    >>> weightdiag.diagnose_weights(weighted_df, harvest=harvest)
    """
    targets = resolve_targets(target, harvest=harvest)
    check_targets(targets)

    w = resolve_weights(df, weights, candidates=weight_candidates, harvest=harvest)
    check_data(df, targets, w)

    df_nw = nw.from_native(df, eager_only=True)
    uniform = np.ones(len(df_nw), dtype=np.float64)

    columns: dict[str, list[Any]] = {name: [] for name in RESULT_COLUMNS}

    for variable, props in targets.items():
        levels = list(props.keys())
        target_props = np.array([props[level] for level in levels], dtype=np.float64)
        values = df_nw.get_column(variable).to_numpy()

        # Re-order to the target's levels
        prop_original, absent = reindex_pct(weighted_pct(values, uniform), levels)
        prop_weighted, _ = reindex_pct(weighted_pct(values, w), levels)

        if absent and warn:
            warnings.warn(
                f"Levels {absent} in targets for '{variable}' not found in data; "
                "reporting proportion 0",
                UserWarning,
                stacklevel=2,
            )

        columns["variable"].extend([variable] * len(levels))
        columns["level"].extend(levels)
        columns["prop_original"].extend(prop_original.tolist())
        columns["prop_weighted"].extend(prop_weighted.tolist())
        columns["target"].extend(target_props.tolist())
        columns["error_original"].extend(np.abs(target_props - prop_original).tolist())
        columns["error_weighted"].extend(np.abs(target_props - prop_weighted).tolist())

    columns["level"] = _level_values(columns["level"])

    result = nw.from_dict(columns, backend=nw.get_native_namespace(df_nw))
    return nw.to_native(result)


def summarize_diagnostics(result: IntoFrameT) -> IntoFrameT:
    """
    Collapse a diagnose_weights() table to one row per variable.

    Returns
    -------
    DataFrame
        variable, n_levels, max_error_original, max_error_weighted,
        mean_error_original, mean_error_weighted; variables in table order.

    Examples
    --------
    >>> diag = weightdiag.diagnose_weights(df, targets, weights)
    >>> weightdiag.summarize_diagnostics(diag)
    """
    df_nw = nw.from_native(result, eager_only=True)

    missing = set(RESULT_COLUMNS) - set(df_nw.columns)
    if missing:
        raise DataValidationError(
            f"Not a diagnose_weights() result, missing columns: {sorted(missing)}"
        )

    idx_col = "__weightdiag_idx__"
    order = (
        df_nw.with_row_index(idx_col)
        .group_by("variable")
        .agg(nw.col(idx_col).min())
    )

    summary = (
        df_nw.group_by("variable")
        .agg(
            nw.len().alias("n_levels"),
            nw.col("error_original").max().alias("max_error_original"),
            nw.col("error_weighted").max().alias("max_error_weighted"),
            nw.col("error_original").mean().alias("mean_error_original"),
            nw.col("error_weighted").mean().alias("mean_error_weighted"),
        )
        .join(order, on="variable")
        .sort(idx_col)
        .drop(idx_col)
    )
    return nw.to_native(summary)


def weight_summary(
    df: IntoFrameT,
    weights: ArrayLike | str | None = None,
    *,
    by: str | list[str] | None = None,
    harvest: Harvest | None = None,
    weight_candidates: Sequence[str] = DEFAULT_WEIGHT_CANDIDATES,
) -> IntoFrameT:
    """
    Summarize weight diagnostics, optionally by group.

    Parameters
    ----------
    df
        Input DataFrame (polars or pandas).
    weights
        Weights, weight column name, or None to search the usual columns
        (same rules as diagnose_weights()).
    by
        Column(s) to group by (e.g., "country"). If None, returns overall summary.

    Returns
    -------
    DataFrame
        Summary with n, effective_n, efficiency_pct, weight_mean, weight_std,
        weight_median, weight_min, weight_max, weight_ratio.

    Examples
    --------
    >>> # Overall summary
    >>> weightdiag.weight_summary(df, "weights")

    >>> # By country
    >>> weightdiag.weight_summary(df, by="country")
    """
    w_values = resolve_weights(df, weights, candidates=weight_candidates, harvest=harvest)

    df_nw = nw.from_native(df, eager_only=True)
    check_weights(w_values, len(df_nw))

    w_col = "__weightdiag_w__"
    df_nw = df_nw.with_columns(
        nw.new_series(
            w_col,
            w_values,
            dtype=nw.Float64,
            backend=nw.get_native_namespace(df_nw),
        )
    )

    w = nw.col(w_col)
    sum_w = w.sum()
    sum_w_sq = (w ** 2).sum()
    n = nw.len()

    agg_exprs = [
        n.alias("n"),
        ((sum_w ** 2) / sum_w_sq).alias("effective_n"),
        ((sum_w ** 2) / (n * sum_w_sq) * 100).alias("efficiency_pct"),
        w.mean().alias("weight_mean"),
        w.std().alias("weight_std"),
        w.median().alias("weight_median"),
        w.min().alias("weight_min"),
        w.max().alias("weight_max"),
        (w.max() / w.min()).alias("weight_ratio"),
    ]

    if by is None:
        result = df_nw.select(agg_exprs)
    else:
        if isinstance(by, str):
            by = [by]
        result = df_nw.group_by(by).agg(agg_exprs).sort(by)

    return nw.to_native(result)
