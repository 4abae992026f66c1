"""Tolerance joins over ascending numeric sequences.

Rows of every result are pairs of 1-based positions ``(left, right)``; a
side without a partner holds the ``nomatch`` marker. Inputs are assumed to
be sorted ascending and are not re-checked: unsorted input gives an
unspecified (but valid-shaped) result.
"""

from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import Any, Callable

import numpy as np

from proxjoin._constants import (
    DEFAULT_HOW,
    DEFAULT_PPM,
    DEFAULT_TOLERANCE,
    JOIN_TYPES,
    LEFT_METHODS,
    OUTER_METHODS,
)
from proxjoin._tolerance import expand_tolerance
from proxjoin.core import JoinResult, as_values, check_nomatch
from proxjoin.errors import choice_error
from proxjoin.resolver import resolve

logger = logging.getLogger(__name__)

Column = list[Any]


def _prepare(
    left: Any,
    right: Any,
    tolerance: Any,
    ppm: float,
    nomatch: int | None,
    driver: str = "left",
) -> tuple[np.ndarray, np.ndarray, np.ndarray, int | None]:
    """Validate inputs once at entry; tolerance is expanded over ``driver``."""
    nomatch = check_nomatch(nomatch)
    x = as_values(left, "left")
    y = as_values(right, "right")
    tol = expand_tolerance(x if driver == "left" else y, tolerance, ppm)
    return x, y, tol, nomatch


def _check_method(method: str, choices: tuple[str, ...]) -> None:
    if method not in choices:
        raise choice_error("method", method, choices)


# ---------------------------------------------------------------------------
# Left join strategies
# ---------------------------------------------------------------------------


def _left_scan(x: list[float], y: list[float], tol: list[float], nomatch: Any) -> Column:
    """Two-pointer left join.

    The right cursor only moves forward: for each left value it advances
    while the next right value is strictly closer. A right element already
    given to the previous matching row goes to whichever row is strictly
    closer; the earlier row keeps it on a tie.
    """
    n, m = len(x), len(y)
    out: Column = [nomatch] * n
    if m == 0:
        return out

    yi = 0
    last = -1  # row currently holding a claim
    last_diff = math.inf
    for xi in range(n):
        xv = x[xi]
        idiff = abs(xv - y[yi])
        while yi + 1 < m:
            ydiff = abs(xv - y[yi + 1])
            if ydiff >= idiff:
                break
            yi += 1
            idiff = ydiff

        if idiff > tol[xi]:
            continue
        if last >= 0 and out[last] == yi + 1:
            if idiff >= last_diff:
                continue
            # retract the earlier, worse pairing
            out[last] = nomatch
        out[xi] = yi + 1
        last = xi
        last_diff = idiff
    return out


def _left_column(
    x: np.ndarray, y: np.ndarray, tol: np.ndarray, nomatch: Any, method: str
) -> Column:
    if method == "resolver":
        return resolve(x, y, tol, nomatch, "closest")
    return _left_scan(x.tolist(), y.tolist(), tol.tolist(), nomatch)


def left_join(
    left: Any,
    right: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
    nomatch: int | None = None,
    *,
    ppm: float = DEFAULT_PPM,
    method: str = "scan",
) -> JoinResult:
    """One row per ``left`` element, paired with its best ``right`` match.

    Args:
        left: Ascending numeric sequence driving the join.
        right: Ascending numeric sequence.
        tolerance: Scalar or one bound per ``left`` element.
        nomatch: Marker for missing partners (None, 0 or a negative int).
        ppm: Extra tolerance relative to each ``left`` value.
        method: "scan" (two-pointer pass) or "resolver" (closest-duplicate
            resolution). Both give the same rows on strictly sorted input.
    """
    _check_method(method, LEFT_METHODS)
    x, y, tol, nomatch = _prepare(left, right, tolerance, ppm, nomatch)

    ycol = _left_column(x, y, tol, nomatch, method)
    result = JoinResult(
        left=list(range(1, len(x) + 1)),
        right=ycol,
        how="left",
        nomatch=nomatch,
        method=method,
    )
    logger.debug(
        "left join (%s): %d x %d -> %d matched", method, len(x), len(y), result.n_matched
    )
    return result


def inner_join(
    left: Any,
    right: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
    nomatch: int | None = None,
    *,
    ppm: float = DEFAULT_PPM,
    method: str = "scan",
) -> JoinResult:
    """Left join restricted to rows where ``right`` matched.

    Left positions are the original 1-based positions of the surviving
    rows, so every inner row also appears in the left join.
    """
    _check_method(method, LEFT_METHODS)
    x, y, tol, nomatch = _prepare(left, right, tolerance, ppm, nomatch)

    ycol = _left_column(x, y, tol, nomatch, method)
    kept = [(i + 1, j) for i, j in enumerate(ycol) if j != nomatch]
    result = JoinResult(
        left=[i for i, _ in kept],
        right=[j for _, j in kept],
        how="inner",
        nomatch=nomatch,
        method=method,
    )
    logger.debug("inner join (%s): %d x %d -> %d rows", method, len(x), len(y), len(result))
    return result


def right_join(
    left: Any,
    right: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
    nomatch: int | None = None,
    *,
    ppm: float = DEFAULT_PPM,
    method: str = "scan",
) -> JoinResult:
    """One row per ``right`` element; the mirror image of left_join.

    Here ``tolerance`` (and ``ppm``) apply per ``right`` element.
    """
    _check_method(method, LEFT_METHODS)
    x, y, tol, nomatch = _prepare(left, right, tolerance, ppm, nomatch, driver="right")

    xcol = _left_column(y, x, tol, nomatch, method)
    result = JoinResult(
        left=xcol,
        right=list(range(1, len(y) + 1)),
        how="right",
        nomatch=nomatch,
        method=method,
    )
    logger.debug(
        "right join (%s): %d x %d -> %d matched", method, len(x), len(y), result.n_matched
    )
    return result


# ---------------------------------------------------------------------------
# Outer join strategies
# ---------------------------------------------------------------------------


def _outer_lookahead(
    x: list[float], y: list[float], tol: list[float], nomatch: Any
) -> tuple[Column, Column]:
    """Outer join with one-step look-ahead and retroactive row correction.

    A pair within tolerance is split when stepping one side gives a strictly
    smaller distance; the element left behind is written alone. If the step
    before went the other way, that lone row is completed instead of adding
    a new one, so the element left behind still gets its partner.
    """
    n, m = len(x), len(y)
    rx: Column = [nomatch] * (n + m)
    ry: Column = [nomatch] * (n + m)
    k = 0  # next free row
    xi = yi = 0
    step = 0  # -1: last row is a lone left, +1: a lone right, 0: neither

    while xi < n or yi < m:
        if xi >= n:
            ry[k] = yi + 1
            yi += 1
            k += 1
            continue
        if yi >= m:
            rx[k] = xi + 1
            xi += 1
            k += 1
            continue

        idiff = abs(x[xi] - y[yi])
        if idiff > tol[xi]:
            step = 0
            if x[xi] < y[yi]:
                rx[k] = xi + 1
                xi += 1
            else:
                ry[k] = yi + 1
                yi += 1
            k += 1
            continue

        xdiff = abs(x[xi + 1] - y[yi]) if xi + 1 < n else math.inf
        ydiff = abs(x[xi] - y[yi + 1]) if yi + 1 < m else math.inf

        if xdiff >= idiff and ydiff >= idiff:
            rx[k] = xi + 1
            ry[k] = yi + 1
            xi += 1
            yi += 1
            k += 1
            step = 0
        elif xdiff < ydiff:
            if step > 0:
                # previous row holds y[yi - 1] alone, which is within reach of x[xi]
                rx[k - 1] = xi + 1
                step = 0
            else:
                rx[k] = xi + 1
                k += 1
                step = -1
            xi += 1
        else:
            if step < 0:
                # previous row holds x[xi - 1] alone, which is within reach of y[yi]
                ry[k - 1] = yi + 1
                step = 0
            else:
                ry[k] = yi + 1
                k += 1
                step = 1
            yi += 1

    return rx[:k], ry[:k]


def _outer_diagonal(
    x: list[float], y: list[float], tol: list[float], nomatch: Any
) -> tuple[Column, Column]:
    """Outer join whose look-ahead also weighs the diagonal step.

    A candidate pair is only split when advancing a single side beats both
    the current distance and the distance of advancing both sides. Rows are
    never revised once written.
    """
    n, m = len(x), len(y)
    rx: Column = [nomatch] * (n + m)
    ry: Column = [nomatch] * (n + m)
    k = 0
    xi = yi = 0

    while xi < n or yi < m:
        if xi >= n:
            ry[k] = yi + 1
            yi += 1
        elif yi >= m:
            rx[k] = xi + 1
            xi += 1
        else:
            diff = abs(x[xi] - y[yi])
            if diff <= tol[xi]:
                has_x = xi + 1 < n
                has_y = yi + 1 < m
                nxt_x = abs(x[xi + 1] - y[yi]) if has_x else math.inf
                nxt_y = abs(x[xi] - y[yi + 1]) if has_y else math.inf
                nxt_xy = abs(x[xi + 1] - y[yi + 1]) if has_x and has_y else math.inf

                if (nxt_x < diff and nxt_x < nxt_xy) or (
                    nxt_y < diff and nxt_y < nxt_xy
                ):
                    if nxt_x < nxt_y:
                        rx[k] = xi + 1
                        xi += 1
                    else:
                        ry[k] = yi + 1
                        yi += 1
                else:
                    rx[k] = xi + 1
                    ry[k] = yi + 1
                    xi += 1
                    yi += 1
            elif x[xi] < y[yi]:
                rx[k] = xi + 1
                xi += 1
            else:
                ry[k] = yi + 1
                yi += 1
        k += 1

    return rx[:k], ry[:k]


_OUTER: dict[str, Callable[..., tuple[Column, Column]]] = {
    "lookahead": _outer_lookahead,
    "diagonal": _outer_diagonal,
}


def outer_join(
    left: Any,
    right: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
    nomatch: int | None = None,
    *,
    ppm: float = DEFAULT_PPM,
    method: str = "lookahead",
) -> JoinResult:
    """Every element of ``left`` and ``right`` in exactly one row.

    Args:
        left: Ascending numeric sequence.
        right: Ascending numeric sequence.
        tolerance: Scalar or one bound per ``left`` element.
        nomatch: Marker for missing partners (None, 0 or a negative int).
        ppm: Extra tolerance relative to each ``left`` value.
        method: "lookahead" (default) or "diagonal".
    """
    _check_method(method, OUTER_METHODS)
    x, y, tol, nomatch = _prepare(left, right, tolerance, ppm, nomatch)

    rx, ry = _OUTER[method](x.tolist(), y.tolist(), tol.tolist(), nomatch)
    result = JoinResult(left=rx, right=ry, how="outer", nomatch=nomatch, method=method)
    logger.debug(
        "outer join (%s): %d x %d -> %d rows, %d matched",
        method,
        len(x),
        len(y),
        len(result),
        result.n_matched,
    )
    return result


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

JOINS: MappingProxyType[str, Callable[..., JoinResult]] = MappingProxyType(
    {
        "outer": outer_join,
        "left": left_join,
        "inner": inner_join,
        "right": right_join,
    }
)

JOIN_METHODS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType(
    {
        "outer": OUTER_METHODS,
        "left": LEFT_METHODS,
        "inner": LEFT_METHODS,
        "right": LEFT_METHODS,
    }
)


def join(
    left: Any,
    right: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
    *,
    ppm: float = DEFAULT_PPM,
    how: str = DEFAULT_HOW,
    method: str | None = None,
    nomatch: int | None = None,
) -> JoinResult:
    """Join two ascending sequences on numeric proximity.

    ``how`` is one of "outer", "left", "inner" or "right"; ``method`` picks
    the strategy for that join type (its first strategy when None).
    """
    if how not in JOIN_TYPES:
        raise choice_error("how", how, JOIN_TYPES)
    if method is None:
        method = JOIN_METHODS[how][0]
    return JOINS[how](left, right, tolerance, nomatch, ppm=ppm, method=method)
