"""
Tests for the building blocks: weighted_pct(), targets_from_frame(),
resolve_targets(), check_targets(), check_data().

Run with: pytest tests/test_pct_and_loaders.py -v
"""

import math

import numpy as np
import pandas as pd
import polars as pl
import pytest

import weightdiag
from weightdiag._pct import reindex_pct


class TestWeightedPct:
    """Sanity checks for the weighted-proportion primitive."""

    def test_unit_weights(self):
        pct = weightdiag.weighted_pct(["a", "b", "b", "b"], np.ones(4))
        assert pct == pytest.approx({"a": 0.25, "b": 0.75})

    def test_weights(self):
        pct = weightdiag.weighted_pct(np.array([1, 1, 2], dtype=np.int64), [1.0, 1.0, 2.0])
        assert pct == pytest.approx({1: 0.5, 2: 0.5})

    def test_sums_to_one(self):
        rng = np.random.default_rng(42)
        values = rng.integers(1, 6, size=1_000)
        weights = rng.uniform(0.1, 3.0, size=1_000)
        pct = weightdiag.weighted_pct(values, weights)
        assert sum(pct.values()) == pytest.approx(1.0)
        assert list(pct) == [1, 2, 3, 4, 5]

    def test_keys_are_python_scalars(self):
        pct = weightdiag.weighted_pct(np.array([3, 1], dtype=np.int64), [1.0, 1.0])
        assert all(type(k) is int for k in pct)

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="length"):
            weightdiag.weighted_pct([1, 2, 3], [1.0, 1.0])

    def test_zero_total(self):
        with pytest.raises(ValueError, match="positive"):
            weightdiag.weighted_pct([1, 2], [0.0, 0.0])

    def test_mixed_object_values(self):
        """Strings and ints in one object column are grouped without sorting."""
        values = np.array(["a", 1, "a", 1], dtype=object)
        pct = weightdiag.weighted_pct(values, [1.0, 1.0, 1.0, 3.0])
        assert list(pct) == ["a", 1]
        assert pct == pytest.approx({"a": 1 / 3, 1: 2 / 3})

    def test_object_strings_sorted(self):
        values = np.array(["b", "a", "b"], dtype=object)
        pct = weightdiag.weighted_pct(values, [1.0, 2.0, 1.0])
        assert list(pct) == ["a", "b"]
        assert pct == pytest.approx({"a": 0.5, "b": 0.5})

    def test_reindex_matches_by_name(self):
        """Target level "1" finds observed level 1."""
        props, absent = reindex_pct({1: 0.25, 2: 0.75}, ["2", "1"])
        assert props.tolist() == [0.75, 0.25]
        assert absent == []

    def test_reindex_prefers_exact_match(self):
        props, _ = reindex_pct({1: 0.25, "1": 0.75}, ["1", 1])
        assert props.tolist() == [0.75, 0.25]

    def test_reindex_fills_absent(self):
        props, absent = reindex_pct({"a": 0.4, "b": 0.6}, ["b", "c", "a"])
        assert props.tolist() == [0.6, 0.0, 0.4]
        assert absent == ["c"]


class TestTargetsFromFrame:
    """Tests for loading flat (variable, level, proportion) tables."""

    @pytest.fixture
    def flat_targets(self):
        return pl.DataFrame(
            {
                "variable": ["region", "region", "gender", "gender"],
                "level": ["south", "north", "m", "f"],
                "proportion": [0.6, 0.4, 0.49, 0.51],
            }
        )

    def test_keeps_row_order(self, flat_targets):
        targets = weightdiag.targets_from_frame(flat_targets)
        assert list(targets) == ["region", "gender"]
        assert list(targets["region"]) == ["south", "north"]
        assert targets["gender"] == {"m": 0.49, "f": 0.51}

    def test_positional_columns(self, flat_targets):
        """Column names don't matter, only their order."""
        renamed = flat_targets.rename({"variable": "a", "level": "b", "proportion": "c"})
        assert weightdiag.targets_from_frame(renamed) == weightdiag.targets_from_frame(
            flat_targets
        )

    def test_named_columns(self, flat_targets):
        shuffled = flat_targets.select("proportion", "level", "variable")
        targets = weightdiag.targets_from_frame(
            shuffled, var_col="variable", level_col="level", target_col="proportion"
        )
        assert targets["region"] == {"south": 0.6, "north": 0.4}

    def test_pandas_frame(self):
        df = pd.DataFrame(
            {"variable": ["age", "age"], "level": [1, 2], "proportion": [0.3, 0.7]}
        )
        assert weightdiag.targets_from_frame(df) == {"age": {1: 0.3, 2: 0.7}}

    def test_too_few_columns(self):
        df = pl.DataFrame({"variable": ["age"], "level": [1]})
        with pytest.raises(weightdiag.InvalidTargetFormat):
            weightdiag.targets_from_frame(df)

    def test_missing_named_column(self, flat_targets):
        with pytest.raises(weightdiag.InvalidTargetFormat, match="pct"):
            weightdiag.targets_from_frame(flat_targets, target_col="pct")

    def test_duplicate_level(self):
        df = pl.DataFrame(
            {"variable": ["age", "age"], "level": [1, 1], "proportion": [0.5, 0.5]}
        )
        with pytest.raises(weightdiag.InvalidTargetValues, match="more than once"):
            weightdiag.targets_from_frame(df)

    def test_null_proportion_is_nan(self):
        df = pl.DataFrame(
            {"variable": ["age", "age"], "level": [1, 2], "proportion": [None, 1.0]}
        )
        targets = weightdiag.targets_from_frame(df)
        assert math.isnan(targets["age"][1])
        with pytest.raises(weightdiag.InvalidTargetValues):
            weightdiag.check_targets(targets)

    def test_not_a_frame(self):
        with pytest.raises(weightdiag.InvalidTargetFormat):
            weightdiag.targets_from_frame({"age": {1: 1.0}})


class TestResolveTargets:
    """Tests for weightdiag.resolve_targets()."""

    def test_dict_passthrough(self):
        targets = {"age": {1: 0.3, 2: 0.7}}
        assert weightdiag.resolve_targets(targets) == targets

    def test_does_not_mutate_input(self):
        targets = {"age": {1: 30.0, 2: 70.0}}
        resolved = weightdiag.resolve_targets(targets)
        assert resolved["age"] == pytest.approx({1: 0.3, 2: 0.7})
        assert targets["age"] == {1: 30.0, 2: 70.0}

    def test_list_merges_in_order(self):
        resolved = weightdiag.resolve_targets(
            [{"b": {1: 1.0}}, {"a": {1: 0.5, 2: 0.5}}]
        )
        assert list(resolved) == ["b", "a"]

    def test_harvest_target(self):
        harvest = weightdiag.Harvest(target={"age": {1: 1.0}})
        assert weightdiag.resolve_targets(None, harvest=harvest) == {"age": {1: 1.0}}

    def test_none_without_harvest(self):
        with pytest.raises(weightdiag.MissingTarget):
            weightdiag.resolve_targets(None)


class TestChecks:
    """Tests for the raising precondition checks."""

    def test_valid_targets_pass(self):
        weightdiag.check_targets({"age": {1: 0.25, 2: 0.75}})

    def test_empty_targets(self):
        with pytest.raises(weightdiag.InvalidTargetValues, match="no variables"):
            weightdiag.check_targets({})

    def test_empty_variable(self):
        with pytest.raises(weightdiag.InvalidTargetValues, match="no levels"):
            weightdiag.check_targets({"age": {}})

    def test_non_numeric(self):
        with pytest.raises(weightdiag.InvalidTargetValues, match="not a number"):
            weightdiag.check_targets({"age": {1: "half", 2: 0.5}})

    def test_check_data_ok(self):
        df = pl.DataFrame({"age": [1, 2]})
        weightdiag.check_data(df, {"age": {1: 0.5, 2: 0.5}}, [1.0, 1.0])

    def test_check_data_empty(self):
        df = pl.DataFrame({"age": pl.Series([], dtype=pl.Int64)})
        with pytest.raises(weightdiag.DataValidationError, match="no rows"):
            weightdiag.check_data(df, {"age": {1: 1.0}}, [])

    def test_check_data_nan_weight(self):
        df = pl.DataFrame({"age": [1, 2]})
        with pytest.raises(weightdiag.DataValidationError, match="missing"):
            weightdiag.check_data(df, {"age": {1: 0.5, 2: 0.5}}, [1.0, np.nan])

    def test_check_data_infinite_weight(self):
        df = pl.DataFrame({"age": [1, 2]})
        with pytest.raises(weightdiag.DataValidationError, match="infinite"):
            weightdiag.check_data(df, {"age": {1: 0.5, 2: 0.5}}, [1.0, np.inf])
