"""Duplicate resolver: best right-side match per left element.

Every left element claims its nearest right element if the distance is
within its tolerance. When several left elements claim the same right
element, a policy decides who keeps it:

- ``keep``: the first claimant (lowest left index).
- ``closest``: the claimant with the smallest distance, ties to the lowest
  left index.
- ``remove``: nobody; contested right elements are dropped for all.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable

import numpy as np

from proxjoin._constants import DEFAULT_POLICY, DEFAULT_TOLERANCE, POLICIES
from proxjoin._tolerance import expand_tolerance
from proxjoin.core import as_values, check_nomatch
from proxjoin.errors import choice_error

logger = logging.getLogger(__name__)

Claims = list[Any]  # 1-based right positions or the nomatch marker


def nearest(x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Position (0-based) and distance of the nearest ``y`` for every ``x``.

    ``y`` must be sorted ascending and non-empty. Equal distances resolve to
    the lower position.
    """
    last = len(y) - 1
    pos = np.searchsorted(y, x, side="left")
    lo = np.clip(pos - 1, 0, last)
    hi = np.clip(pos, 0, last)
    dlo = np.abs(x - y[lo])
    dhi = np.abs(x - y[hi])
    take_hi = dhi < dlo
    return np.where(take_hi, hi, lo), np.where(take_hi, dhi, dlo)


def _keep_first(claims: Claims, dist: list[float], nomatch: Any) -> Claims:
    seen: set[int] = set()
    out = list(claims)
    for i, j in enumerate(claims):
        if j == nomatch:
            continue
        if j in seen:
            out[i] = nomatch
        else:
            seen.add(j)
    return out


def _keep_closest(claims: Claims, dist: list[float], nomatch: Any) -> Claims:
    winner: dict[int, int] = {}
    for i, j in enumerate(claims):
        if j == nomatch:
            continue
        best = winner.get(j)
        if best is None or dist[i] < dist[best]:
            winner[j] = i
    return [
        j if j != nomatch and winner[j] == i else nomatch
        for i, j in enumerate(claims)
    ]


def _remove_contested(claims: Claims, dist: list[float], nomatch: Any) -> Claims:
    counts = Counter(j for j in claims if j != nomatch)
    return [j if j != nomatch and counts[j] == 1 else nomatch for j in claims]


_RESOLVERS: dict[str, Callable[[Claims, list[float], Any], Claims]] = {
    "keep": _keep_first,
    "closest": _keep_closest,
    "remove": _remove_contested,
}


def resolve(
    x: np.ndarray,
    y: np.ndarray,
    tol: np.ndarray,
    nomatch: int | None,
    policy: str,
) -> Claims:
    """Resolve matches on already validated arrays (see closest_duplicate)."""
    n = len(x)
    if n == 0 or len(y) == 0:
        return [nomatch] * n

    idx, dist = nearest(x, y)
    accepted = (dist <= tol).tolist()
    claims = [
        j + 1 if ok else nomatch for j, ok in zip(idx.tolist(), accepted)
    ]
    return _RESOLVERS[policy](claims, dist.tolist(), nomatch)


def closest_duplicate(
    left: Any,
    right: Any,
    tolerance: Any = DEFAULT_TOLERANCE,
    nomatch: int | None = None,
    policy: str = DEFAULT_POLICY,
    *,
    ppm: float = 0.0,
) -> Claims:
    """Match every ``left`` element to at most one ``right`` element.

    Args:
        left: Ascending numeric sequence.
        right: Ascending numeric sequence.
        tolerance: Scalar or one bound per ``left`` element.
        nomatch: Marker for unmatched elements (None, 0 or a negative int).
        policy: "keep", "closest" or "remove".
        ppm: Extra tolerance relative to each ``left`` value.

    Returns:
        A list of ``len(left)`` 1-based positions into ``right`` or ``nomatch``.

    Raises:
        ProxjoinToleranceError: tolerance length does not match ``left``.
        ProxjoinConfigError: unknown policy or invalid ``nomatch``.
    """
    if policy not in POLICIES:
        raise choice_error("policy", policy, POLICIES)
    nomatch = check_nomatch(nomatch)
    x = as_values(left, "left")
    y = as_values(right, "right")
    tol = expand_tolerance(x, tolerance, ppm)

    out = resolve(x, y, tol, nomatch, policy)
    logger.debug(
        "closest_duplicate(policy=%s): %d left, %d right, %d matched",
        policy,
        len(x),
        len(y),
        sum(j != nomatch for j in out),
    )
    return out
