"""Tolerance parsing and expansion to one bound per element."""

from __future__ import annotations

import re
from typing import Any

import numpy as np

from proxjoin._constants import PPM_SCALE
from proxjoin.errors import (
    ProxjoinToleranceError,
    tolerance_length_error,
    tolerance_value_error,
)

_NUMBER = r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"
_PATTERN = re.compile(
    rf"^(?:(?P<abs>{_NUMBER})(?:\+(?P<ppm>{_NUMBER})ppm)?"
    rf"|(?P<ppm_first>{_NUMBER})ppm(?:\+(?P<abs_last>{_NUMBER}))?)$"
)


def parse_tolerance(value: str | float | None) -> tuple[float, float] | None:
    """Parse a tolerance like '0.01', '5ppm' or '0.01+5ppm' into (absolute, ppm).

    Accepts:
        - None → None
        - int/float → (value, 0.0)
        - "0.01" → (0.01, 0.0)
        - "5ppm" → (0.0, 5.0)
        - "0.01+5ppm" or "5ppm+0.01" → (0.01, 5.0)
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value), 0.0

    text = "".join(value.split()).lower()
    match = _PATTERN.match(text)
    if not match:
        raise ValueError(
            f"Invalid tolerance '{value}'. "
            "Expected format like '0.01', '5ppm' or '0.01+5ppm'."
        )

    absolute = match.group("abs") or match.group("abs_last") or 0
    ppm = match.group("ppm") or match.group("ppm_first") or 0
    return float(absolute), float(ppm)


def format_tolerance(absolute: float, ppm: float = 0.0) -> str:
    """Format an (absolute, ppm) tolerance back to its string form."""
    if ppm and absolute:
        return f"{absolute:g}+{ppm:g}ppm"
    if ppm:
        return f"{ppm:g}ppm"
    return f"{absolute:g}"


def ppm_to_absolute(values: Any, ppm: float) -> np.ndarray:
    """Convert a parts-per-million tolerance into absolute bounds for ``values``."""
    return np.abs(np.asarray(values, dtype=np.float64)) * ppm / PPM_SCALE


def expand_tolerance(
    values: np.ndarray,
    tolerance: Any,
    ppm: float = 0.0,
) -> np.ndarray:
    """Return one admissible absolute difference per element of ``values``.

    A scalar or one-element tolerance is broadcast; any other sequence must
    match ``values`` in length. The optional ``ppm`` term widens each bound
    relative to the magnitude of its value.
    """
    n = len(values)
    tol = np.array(tolerance, dtype=np.float64)
    if tol.ndim == 0 or tol.shape == (1,):
        tol = np.full(n, float(tol.reshape(-1)[0]))
    elif tol.ndim != 1 or tol.shape[0] != n:
        raise tolerance_length_error(n, int(tol.size))

    bad = np.isnan(tol) | (tol < 0)
    if bad.any():
        raise tolerance_value_error(int(bad.sum()), float(tol[bad][0]))

    if ppm:
        if np.isnan(ppm) or ppm < 0:
            raise ProxjoinToleranceError(
                f"'ppm' must be a number >= 0, got {ppm!r}."
            )
        tol = tol + ppm_to_absolute(values, ppm)
    return tol
