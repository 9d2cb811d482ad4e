"""
Exception types raised by weightdiag.

Each error also derives from the builtin exception a caller would expect
for the same situation, so ``except KeyError`` / ``except ValueError``
keep working.
"""

from __future__ import annotations

from typing import Sequence

__all__ = [
    "WeightDiagError",
    "MissingTarget",
    "InvalidTargetFormat",
    "InvalidTargetValues",
    "MissingWeights",
    "DataValidationError",
]


class WeightDiagError(Exception):
    """Base class for all weightdiag errors."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class MissingTarget(WeightDiagError, KeyError):
    """No target was given and none could be recovered from a harvest."""

    def __init__(self, lookup_name: str | None = None):
        self.lookup_name = lookup_name
        if lookup_name is None:
            msg = (
                "No `target` argument was provided and no harvest association "
                "carries one. Provide `target` explicitly."
            )
        else:
            msg = (
                "No `target` argument was provided and the target used to "
                f"construct weights ('{lookup_name}') could not be located. "
                "Provide `target` explicitly or attach it to the harvest."
            )
        super().__init__(msg)


class InvalidTargetFormat(WeightDiagError, TypeError):
    """Target is neither a DataFrame nor a mapping / list of mappings."""


class InvalidTargetValues(WeightDiagError, ValueError):
    """Target proportions are negative, missing or do not sum to 1."""


class MissingWeights(WeightDiagError, KeyError):
    """No weights were given and no weight column could be found."""

    def __init__(self, candidates: Sequence[str] = ()):
        self.candidates = tuple(candidates)
        if self.candidates:
            tried = ", ".join(f"'{c}'" for c in self.candidates)
            msg = (
                "No `weights` specified and data does not contain a weight "
                f"column (tried {tried}). Please specify `weights`."
            )
        else:
            msg = "No `weights` specified and no weight columns to search. Please specify `weights`."
        super().__init__(msg)


class DataValidationError(WeightDiagError, ValueError):
    """Dataset or weights fail the checks against the target."""
