"""Explicit association between a weighted dataset and the targets behind it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Harvest:
    """
    What an upstream weighting step knows about the weights it produced.

    Passed to diagnose_weights() in place of `target` / `weights` so the
    diagnostic can find both without the caller repeating them.
    """

    target: Any = None
    """Targets used to build the weights (any shape resolve_targets accepts)."""

    target_name: str | None = None
    """Label for the targets, reported when they can't be recovered."""

    weight_column: str | None = None
    """Column of the dataset holding the weights."""
