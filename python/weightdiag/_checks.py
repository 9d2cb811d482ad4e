"""
Precondition checks for targets, data and weights.

check_targets() and check_data() raise on the first problem found;
validate_targets() collects everything into a report instead.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import TYPE_CHECKING, Any

import narwhals as nw
import numpy as np

from ._errors import DataValidationError, InvalidTargetValues
from ._loaders import resolve_targets

if TYPE_CHECKING:
    from narwhals.typing import IntoFrame
    from numpy.typing import ArrayLike

__all__ = ["check_targets", "check_data", "check_weights", "validate_targets"]


def _target_problems(targets: dict[str, dict[Any, float]]) -> list[str]:
    problems = []
    if not targets:
        return ["Target contains no variables"]

    for var, props in targets.items():
        if not props:
            problems.append(f"Targets for '{var}' contain no levels")
            continue

        bad = False
        for level, value in props.items():
            if isinstance(value, bool) or not isinstance(value, Real):
                problems.append(
                    f"Target for level {level!r} of '{var}' is not a number: {value!r}"
                )
                bad = True
            elif math.isnan(value):
                problems.append(f"Target for level {level!r} of '{var}' is missing")
                bad = True
            elif value < 0:
                problems.append(
                    f"Target for level {level!r} of '{var}' is negative: {value}"
                )
                bad = True
        if bad:
            continue

        total = sum(props.values())
        if round(total, 4) != 1.0:
            problems.append(f"Targets for '{var}' sum to {total}, expected 1.0")

    return problems


def _weight_problems(weights: np.ndarray, n_rows: int) -> list[str]:
    if len(weights) != n_rows:
        return [f"Length of weights ({len(weights)}) does not match number of rows ({n_rows})"]

    problems = []
    if np.isnan(weights).any():
        problems.append(f"Weights contain {int(np.isnan(weights).sum())} missing value(s)")
    elif not np.isfinite(weights).all():
        problems.append("Weights contain infinite values")
    elif (weights < 0).any():
        problems.append(f"Weights contain {int((weights < 0).sum())} negative value(s)")
    elif n_rows > 0 and not weights.sum() > 0:
        problems.append("Weights sum to zero")
    return problems


def _column_problems(df_nw: nw.DataFrame, columns: list[str]) -> list[str]:
    problems = []
    for col in columns:
        if col not in df_nw.columns:
            problems.append(f"Column '{col}' not found in DataFrame")
            continue
        n_null = df_nw.get_column(col).null_count()
        if n_null:
            problems.append(f"Column '{col}' contains {n_null} missing value(s)")
    return problems


def check_targets(targets: dict[str, dict[Any, float]]) -> None:
    """
    Raise InvalidTargetValues unless every variable is a valid distribution.

    Every level needs a non-negative, non-missing number and each variable's
    levels must sum to 1.
    """
    problems = _target_problems(targets)
    if problems:
        raise InvalidTargetValues("; ".join(problems))


def check_data(
    df: IntoFrame,
    targets: dict[str, dict[Any, float]],
    weights: ArrayLike,
) -> None:
    """Raise DataValidationError if `df` or `weights` can't be diagnosed against `targets`."""
    df_nw = nw.from_native(df, eager_only=True)

    problems = _column_problems(df_nw, list(targets))
    if len(df_nw) == 0:
        problems.append("DataFrame has no rows")
    problems += _weight_problems(np.asarray(weights, dtype=np.float64).reshape(-1), len(df_nw))

    if problems:
        raise DataValidationError("; ".join(problems))


def check_weights(weights: ArrayLike, n_rows: int) -> None:
    """Raise DataValidationError unless `weights` has `n_rows` finite, non-negative values with a positive sum."""
    problems = _weight_problems(np.asarray(weights, dtype=np.float64).reshape(-1), n_rows)
    if problems:
        raise DataValidationError("; ".join(problems))


def validate_targets(
    df: IntoFrame,
    targets: Any,
    weights: ArrayLike | None = None,
) -> dict[str, list[str]]:
    """
    Validate targets (and optionally weights) against a DataFrame.

    Checks:
    - All target columns exist and have no nulls (error)
    - Target proportions are valid and sum to 1 (error)
    - Weights match the data and are non-negative (error, if given)
    - All target levels exist in data (warning)
    - All data values have targets (warning)

    Returns
    -------
    dict
        {"errors": [...], "warnings": [...]}
    """
    df_nw = nw.from_native(df, eager_only=True)
    targets_dict = resolve_targets(targets)

    errors = _target_problems(targets_dict)
    errors += _column_problems(df_nw, list(targets_dict))
    if weights is not None:
        errors += _weight_problems(
            np.asarray(weights, dtype=np.float64).reshape(-1), len(df_nw)
        )

    warnings = []
    for col, props in targets_dict.items():
        if col not in df_nw.columns:
            continue

        unique_values = set(df_nw.get_column(col).drop_nulls().unique().to_list())
        observed_names = {str(v) for v in unique_values}
        target_names = {str(level) for level in props}
        for level, target_value in props.items():
            found = level in unique_values or str(level) in observed_names
            if not found and target_value != 0:
                warnings.append(f"Level {level!r} in targets for '{col}' not found in data")

        for val in unique_values:
            if val not in props and str(val) not in target_names:
                warnings.append(f"Value {val!r} in column '{col}' has no target")

    return {"errors": errors, "warnings": warnings}
