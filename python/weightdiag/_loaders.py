"""
Loader utilities for weightdiag targets.

Functions to turn the accepted target shapes into the nested dict
structure expected by diagnose_weights().
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import narwhals as nw

from ._errors import InvalidTargetFormat, InvalidTargetValues, MissingTarget

if TYPE_CHECKING:
    from narwhals.typing import IntoFrame

    from ._harvest import Harvest

__all__ = ["targets_from_frame", "resolve_targets"]

Targets = dict[str, dict[Any, float]]


def _is_frame(obj: Any) -> bool:
    native = nw.from_native(obj, eager_only=True, pass_through=True)
    return isinstance(native, nw.DataFrame)


def targets_from_frame(
    frame: IntoFrame,
    *,
    var_col: str | None = None,
    level_col: str | None = None,
    target_col: str | None = None,
) -> Targets:
    """
    Load targets from a long-format table.

    Converts a table of targets into the nested dict format used by
    diagnose_weights().

    Parameters
    ----------
    frame
        polars or pandas DataFrame.
    var_col
        Column containing variable names. Defaults to the first column.
    level_col
        Column containing category levels. Defaults to the second column.
    target_col
        Column containing target proportions. Defaults to the third column.

    Returns
    -------
    dict
        Nested dict: {variable: {level: proportion}}

    Examples
    --------
    >>> frame = pl.DataFrame({
    ...     "variable": ["region", "region"],
    ...     "level": ["north", "south"],
    ...     "proportion": [0.4, 0.6],
    ... })
    >>> weightdiag.targets_from_frame(frame)
    {'region': {'north': 0.4, 'south': 0.6}}

    Expected input format:

        variable | level | proportion
        region   | north | 0.4
        region   | south | 0.6
        age      | 18-34 | 0.3
        ...

    Notes
    -----
    - Row order is kept: variables appear in order of first occurrence and
      levels in row order within each variable.
    - Level types are preserved as-is. Ensure they match your data values.
    """
    if not _is_frame(frame):
        raise InvalidTargetFormat(
            f"Expected a polars or pandas DataFrame, got {type(frame).__name__}"
        )
    df = nw.from_native(frame, eager_only=True)

    columns = list(df.columns)
    if len(columns) < 3 and None in (var_col, level_col, target_col):
        raise InvalidTargetFormat(
            "Target table must have three columns (variable, level, proportion), "
            f"got {columns}"
        )

    var_col = columns[0] if var_col is None else var_col
    level_col = columns[1] if level_col is None else level_col
    target_col = columns[2] if target_col is None else target_col

    missing = [c for c in (var_col, level_col, target_col) if c not in columns]
    if missing:
        raise InvalidTargetFormat(f"Missing required target columns: {missing}")

    targets: Targets = {}

    for row in df.select(var_col, level_col, target_col).iter_rows(named=True):
        var = row[var_col]
        level = row[level_col]
        prop = row[target_col]

        if var is None or level is None:
            raise InvalidTargetValues(
                f"Target table has a missing variable or level in row {row}"
            )

        levels = targets.setdefault(str(var), {})
        if level in levels:
            raise InvalidTargetValues(
                f"Level {level!r} of variable '{var}' appears more than once in target table"
            )
        # None -> NaN so check_targets reports it as missing
        levels[level] = math.nan if prop is None else float(prop)

    return targets


def _as_proportions(targets: Targets) -> Targets:
    normalized: Targets = {}
    for var, props in targets.items():
        try:
            total = sum(props.values())
        except TypeError:
            # non-numeric values are reported by check_targets
            normalized[var] = dict(props)
            continue
        if total > 1.5:  # Percentages
            normalized[var] = {k: v / 100.0 for k, v in props.items()}
        else:
            normalized[var] = dict(props)
    return normalized


def resolve_targets(
    target: IntoFrame | Mapping | list | tuple | None,
    *,
    harvest: Harvest | None = None,
    var_col: str | None = None,
    level_col: str | None = None,
    target_col: str | None = None,
) -> Targets:
    """
    Normalize any accepted target shape to {variable: {level: proportion}}.

    Accepts:
    - Dict: {"gender": {1: 0.49, 2: 0.51}, "age": {1: 0.2, 2: 0.3, ...}}
    - List of dicts: [{"gender": {1: 0.49, 2: 0.51}}, {"age": {...}}]
    - DataFrame with (variable, level, proportion) columns
    - None, in which case the target attached to `harvest` is used

    Percentages (a variable summing to more than 1.5) are rescaled to
    proportions.
    """
    if target is None:
        if harvest is None:
            raise MissingTarget()
        if harvest.target is None:
            raise MissingTarget(harvest.target_name)
        target = harvest.target

    if _is_frame(target):
        resolved = targets_from_frame(
            target, var_col=var_col, level_col=level_col, target_col=target_col
        )
    elif isinstance(target, Mapping):
        resolved = {}
        for var, props in target.items():
            if not isinstance(props, Mapping):
                raise InvalidTargetFormat(
                    f"Targets for '{var}' must be a mapping of level to proportion, "
                    f"got {type(props).__name__}"
                )
            resolved[var] = dict(props)
    elif isinstance(target, (list, tuple)):
        resolved = {}
        for item in target:
            if not isinstance(item, Mapping):
                raise InvalidTargetFormat(
                    f"List targets must contain mappings, got {type(item).__name__}"
                )
            resolved.update(resolve_targets(dict(item)))
        return resolved
    else:
        raise InvalidTargetFormat(
            "Target must be a mapping of variable to level proportions, a list "
            f"of such mappings, or a DataFrame; got {type(target).__name__}"
        )

    return _as_proportions(resolved)
