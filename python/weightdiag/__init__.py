"""
weightdiag - Survey weighting diagnostics with narwhals.

Compares unweighted and weighted proportions against population targets.
Supports both polars and pandas DataFrames.

Example
-------
>>> import polars as pl
>>> import weightdiag
>>>
>>> df = pl.DataFrame({
...     "region": ["north"] * 5 + ["south"] * 5,
...     "weights": [0.5] * 5 + [1.5] * 5,
... })
>>> target = {"region": {"north": 0.5, "south": 0.5}}
>>> print(weightdiag.diagnose_weights(df, target))
"""

from importlib.metadata import version, PackageNotFoundError

from ._checks import check_data, check_targets, check_weights, validate_targets
from ._diagnose import (
    DEFAULT_WEIGHT_CANDIDATES,
    RESULT_COLUMNS,
    diagnose_weights,
    resolve_weights,
    summarize_diagnostics,
    weight_summary,
)
from ._errors import (
    DataValidationError,
    InvalidTargetFormat,
    InvalidTargetValues,
    MissingTarget,
    MissingWeights,
    WeightDiagError,
)
from ._harvest import Harvest
from ._loaders import resolve_targets, targets_from_frame
from ._pct import weighted_pct

try:
    __version__ = version("weightdiag")
except PackageNotFoundError:
    __version__ = "0.0.0"  # Fallback for development

__all__ = [
    # Main functions
    "diagnose_weights",
    "summarize_diagnostics",
    "weight_summary",
    # Input resolution
    "resolve_targets",
    "resolve_weights",
    "targets_from_frame",
    "Harvest",
    "DEFAULT_WEIGHT_CANDIDATES",
    "RESULT_COLUMNS",
    # Utilities
    "weighted_pct",
    "check_targets",
    "check_data",
    "check_weights",
    "validate_targets",
    # Errors
    "WeightDiagError",
    "MissingTarget",
    "InvalidTargetFormat",
    "InvalidTargetValues",
    "MissingWeights",
    "DataValidationError",
]
