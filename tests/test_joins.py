"""Tests for the tolerance joins and the join dispatcher."""

from __future__ import annotations

import pytest

from proxjoin.errors import (
    ProxjoinConfigError,
    ProxjoinToleranceError,
    ProxjoinValidationError,
)
from proxjoin.joins import (
    JOIN_METHODS,
    JOINS,
    inner_join,
    join,
    left_join,
    outer_join,
    right_join,
)

LEFT_METHODS = ["scan", "resolver"]
OUTER_METHODS = ["lookahead", "diagonal"]


# ---------------------------------------------------------------------------
# Left join
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("method", LEFT_METHODS)
class TestLeftJoin:
    def test_identical(self, method):
        r = left_join([1, 2, 3], [1, 2, 3], 0, method=method)
        assert r.left == [1, 2, 3]
        assert r.right == [1, 2, 3]
        assert r.how == "left"

    def test_equidistant_goes_to_first(self, method):
        r = left_join([1.0, 1.1], [1.05], 0.2, method=method)
        assert r.right == [1, None]

    def test_closer_later_row_takes_match(self, method):
        r = left_join([1.0, 1.08], [1.1], 0.2, method=method)
        assert r.right == [None, 1]

    def test_outside_tolerance(self, method):
        r = left_join([1, 2, 3, 4], [2.05, 3.9], 0.01, method=method)
        assert r.right == [None, None, None, None]

    def test_partial(self, method):
        r = left_join([1, 2, 3, 4], [2.05, 3.9], 0.2, method=method)
        assert r.left == [1, 2, 3, 4]
        assert r.right == [None, 1, None, 2]

    def test_per_element_tolerance(self, method):
        assert left_join([1.0, 2.0], [1.05, 2.5], [0.1, 0.1], method=method).right == [
            1,
            None,
        ]
        assert left_join([1.0, 2.0], [1.05, 2.5], [0.1, 0.6], method=method).right == [
            1,
            2,
        ]

    def test_ppm(self, method):
        assert left_join([1000.0], [1000.004], ppm=5.0, method=method).right == [1]
        assert left_join([1000.0], [1000.004], ppm=3.0, method=method).right == [None]

    def test_empty_left(self, method):
        r = left_join([], [1, 2], 1.0, method=method)
        assert len(r) == 0

    def test_empty_right(self, method):
        r = left_join([1, 2], [], 1.0, method=method)
        assert r.left == [1, 2]
        assert r.right == [None, None]

    def test_integer_nomatch(self, method):
        r = left_join([1.0, 5.0], [1.0], 0.0, nomatch=0, method=method)
        assert r.right == [1, 0]
        assert r.pairs() == [(1, 1)]

    def test_each_right_used_once(self, method):
        r = left_join([1.0, 1.01, 1.02, 1.03], [1.015], 0.5, method=method)
        assert [j for j in r.right if j is not None] == [1]


def test_left_scan_right_cursor_catches_up():
    # the cursor must skip several right values before the first match
    r = left_join([10.0, 20.0], [1.0, 2.0, 3.0, 9.9, 20.1], 0.2)
    assert r.right == [4, 5]


def test_left_unknown_method():
    with pytest.raises(ProxjoinConfigError, match="method"):
        left_join([1.0], [1.0], method="lookahead")


# ---------------------------------------------------------------------------
# Inner join
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("method", LEFT_METHODS)
class TestInnerJoin:
    def test_keeps_original_left_positions(self, method):
        r = inner_join([1, 2, 3, 4], [2.05, 3.9], 0.2, method=method)
        assert r.left == [2, 4]
        assert r.right == [1, 2]
        assert r.how == "inner"

    def test_subset_of_left_join(self, method):
        x = [1.0, 1.5, 2.0, 2.6, 3.1]
        y = [1.1, 2.05, 3.0]
        inner = set(inner_join(x, y, 0.3, method=method))
        left = set(left_join(x, y, 0.3, method=method))
        assert inner <= left
        assert all(j is not None for _, j in inner)

    def test_no_matches(self, method):
        r = inner_join([1.0], [5.0], 0.1, method=method)
        assert len(r) == 0

    def test_empty_inputs(self, method):
        assert len(inner_join([], [1.0], method=method)) == 0
        assert len(inner_join([1.0], [], method=method)) == 0


# ---------------------------------------------------------------------------
# Right join
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("method", LEFT_METHODS)
class TestRightJoin:
    def test_one_row_per_right(self, method):
        r = right_join([1.0, 2.0, 3.0], [2.1, 7.0], 0.2, method=method)
        assert r.right == [1, 2]
        assert r.left == [2, None]
        assert r.how == "right"

    def test_tolerance_applies_to_right(self, method):
        r = right_join([1.0, 2.0, 3.0], [2.1], [0.2], method=method)
        assert r.left == [2]
        with pytest.raises(ProxjoinToleranceError):
            right_join([1.0, 2.0, 3.0], [2.1], [0.2, 0.2], method=method)

    def test_mirrors_left_join(self, method):
        x = [1.0, 1.5, 2.0, 2.6, 3.1]
        y = [1.1, 2.05, 3.0]
        right = right_join(x, y, 0.3, method=method)
        mirrored = left_join(y, x, 0.3, method=method)
        assert right.left == mirrored.right
        assert right.right == mirrored.left


# ---------------------------------------------------------------------------
# Outer join
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("method", OUTER_METHODS)
class TestOuterJoin:
    def test_identical(self, method):
        r = outer_join([1, 2, 3], [1, 2, 3], 0, method=method)
        assert r.left == [1, 2, 3]
        assert r.right == [1, 2, 3]

    def test_no_matches_interleaved(self, method):
        r = outer_join([1, 5], [3], 0, method=method)
        assert r.left == [1, None, 2]
        assert r.right == [None, 1, None]

    def test_empty_left(self, method):
        r = outer_join([], [1, 2], method=method)
        assert r.left == [None, None]
        assert r.right == [1, 2]

    def test_empty_right(self, method):
        r = outer_join([1, 2], [], method=method)
        assert r.left == [1, 2]
        assert r.right == [None, None]

    def test_both_empty(self, method):
        assert len(outer_join([], [], method=method)) == 0

    def test_shifted_pairs(self, method):
        r = outer_join([1.0, 1.9, 3.0], [0.9, 2.0, 3.1], 0.3, method=method)
        assert r.left == [1, 2, 3]
        assert r.right == [1, 2, 3]

    def test_direction_change_completes_row(self, method):
        r = outer_join([1.6, 2.05], [1.0, 2.0], 1.0, method=method)
        assert r.left == [1, 2]
        assert r.right == [1, 2]

    def test_consecutive_steps_do_not_revise(self, method):
        r = outer_join([1.0, 1.1, 1.2], [1.25], 0.5, method=method)
        assert r.left == [1, 2, 3]
        assert r.right == [None, None, 1]

    def test_integer_nomatch(self, method):
        r = outer_join([1, 5], [3], 0, nomatch=-1, method=method)
        assert r.left == [1, -1, 2]
        assert r.right == [-1, 1, -1]


def test_lookahead_corrected_row_is_not_revised_again():
    # after completing row 1, the next lone right starts a new row
    r = outer_join([1.6, 2.05], [1.0, 2.0, 2.08], 1.0)
    assert r.left == [1, None, 2]
    assert r.right == [1, 2, 3]


def test_diagonal_keeps_pair_when_diagonal_step_is_as_close():
    r = outer_join([1.0, 2.0], [1.75, 2.25], 1.0, method="diagonal")
    assert r.left == [1, 2]
    assert r.right == [1, 2]


def test_lookahead_splits_on_single_step():
    # stepping left alone gets closer, so 1.0 is written by itself
    r = outer_join([1.0, 2.0], [1.75, 2.25], 1.0)
    assert r.left == [1, 2, None]
    assert r.right == [None, 1, 2]


def test_outer_unknown_method():
    with pytest.raises(ProxjoinConfigError, match="method"):
        outer_join([1.0], [1.0], method="scan")


# ---------------------------------------------------------------------------
# Validation shared by all joins
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("fn", [left_join, inner_join, outer_join])
class TestValidation:
    def test_tolerance_length(self, fn):
        with pytest.raises(ProxjoinToleranceError, match="2 elements"):
            fn([1, 2, 3], [1], [0.1, 0.2])

    def test_one_element_tolerance_same_as_scalar(self, fn):
        x, y = [1.0, 2.0, 3.0], [1.1, 2.5, 3.05]
        assert fn(x, y, [0.2]) == fn(x, y, 0.2)

    def test_tolerance_length_is_validation_error(self, fn):
        with pytest.raises(ProxjoinValidationError):
            fn([1, 2, 3], [1], [0.1, 0.2])

    def test_negative_tolerance(self, fn):
        with pytest.raises(ProxjoinToleranceError):
            fn([1, 2], [1], -0.1)

    def test_nan_input(self, fn):
        with pytest.raises(ProxjoinValidationError, match="NaN"):
            fn([1.0, float("nan")], [1.0])

    def test_positive_nomatch(self, fn):
        with pytest.raises(ProxjoinConfigError):
            fn([1.0], [1.0], 0.0, 1)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class TestJoinDispatch:
    def test_registry(self):
        assert set(JOINS) == {"outer", "left", "inner", "right"}
        assert JOINS["left"] is left_join

    def test_registry_read_only(self):
        with pytest.raises(TypeError):
            JOINS["cross"] = left_join  # type: ignore[index]

    def test_default_is_outer(self):
        r = join([1, 5], [3])
        assert r.how == "outer"
        assert r.method == "lookahead"
        assert r.left == [1, None, 2]

    @pytest.mark.parametrize("how", ["outer", "left", "inner", "right"])
    def test_same_as_direct_call(self, how):
        x, y = [1.0, 2.0, 3.5], [1.1, 3.0, 3.6]
        assert join(x, y, 0.2, how=how) == JOINS[how](x, y, 0.2)

    def test_default_method_per_type(self):
        for how, methods in JOIN_METHODS.items():
            assert join([1.0], [1.0], how=how).method == methods[0]

    def test_explicit_method(self):
        assert join([1.0], [1.0], how="outer", method="diagonal").method == "diagonal"

    def test_ppm_and_nomatch_passed_through(self):
        r = join([1000.0, 2000.0], [1000.004], how="left", ppm=5.0, nomatch=0)
        assert r.right == [1, 0]

    def test_unknown_how(self):
        with pytest.raises(ProxjoinConfigError, match="how must be one of"):
            join([1.0], [1.0], how="cross")

    def test_method_of_other_join_type(self):
        with pytest.raises(ProxjoinConfigError):
            join([1.0], [1.0], how="left", method="diagonal")
