"""Tests for error formatting and helpers."""

from __future__ import annotations

from proxjoin.errors import (
    ProxjoinConfigError,
    ProxjoinError,
    ProxjoinSchemaError,
    ProxjoinToleranceError,
    ProxjoinValidationError,
    _find_similar,
    choice_error,
    nomatch_error,
    schema_error_missing_column,
    schema_error_not_numeric,
    tolerance_length_error,
    tolerance_value_error,
)


class TestErrorHierarchy:
    def test_all_errors_inherit_from_proxjoin_error(self):
        for cls in [
            ProxjoinValidationError,
            ProxjoinToleranceError,
            ProxjoinConfigError,
            ProxjoinSchemaError,
        ]:
            assert issubclass(cls, ProxjoinError)

    def test_tolerance_error_is_validation_error(self):
        assert issubclass(ProxjoinToleranceError, ProxjoinValidationError)


class TestToleranceErrors:
    def test_length(self):
        err = tolerance_length_error(5, 3)
        assert isinstance(err, ProxjoinToleranceError)
        msg = str(err)
        assert "3 elements" in msg
        assert "has 5" in msg
        assert "Fix" in msg

    def test_value(self):
        err = tolerance_value_error(2, -0.5)
        assert "2 negative or NaN" in str(err)
        assert "-0.5" in str(err)


class TestChoiceError:
    def test_lists_choices(self):
        err = choice_error("policy", "nearest", ("keep", "closest", "remove"))
        assert isinstance(err, ProxjoinConfigError)
        assert str(err) == (
            "policy must be one of 'keep', 'closest', 'remove', got 'nearest'."
        )


class TestNomatchError:
    def test_basic(self):
        err = nomatch_error(1)
        assert isinstance(err, ProxjoinConfigError)
        assert "nomatch=1" in str(err)
        assert "0 or a negative integer" in str(err)


class TestSchemaErrors:
    def test_missing_column(self):
        err = schema_error_missing_column("run1", "mass", ["peak_id", "mz"])
        assert isinstance(err, ProxjoinSchemaError)
        msg = str(err)
        assert "run1" in msg
        assert "mass" in msg
        assert "similar" not in msg

    def test_missing_column_finds_similar(self):
        err = schema_error_missing_column("run1", "mz_col", ["peak_id", "mz"])
        msg = str(err)
        assert "'mz' is similar" in msg
        assert "column='mz'" in msg

    def test_not_numeric(self):
        err = schema_error_not_numeric("run1", "label", "VARCHAR")
        assert isinstance(err, ProxjoinSchemaError)
        assert "VARCHAR" in str(err)
        assert "CAST(label AS DOUBLE)" in str(err)


class TestFindSimilar:
    def test_substring(self):
        assert _find_similar("peakid", ["peak_id", "mz"]) == "peak_id"

    def test_none(self):
        assert _find_similar("rt", ["mz", "intensity"]) is None

    def test_empty_candidate_skipped(self):
        assert _find_similar("mz", ["", "mz"]) == "mz"
