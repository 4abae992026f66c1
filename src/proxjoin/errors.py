"""proxjoin error hierarchy.

Every error follows the format:
  WHAT happened → WHY it matters → WHERE (data) → HOW to fix
"""

from __future__ import annotations

from collections.abc import Sequence


class ProxjoinError(Exception):
    """Base error for all proxjoin operations."""


class ProxjoinValidationError(ProxjoinError):
    """General validation failure on inputs."""


class ProxjoinToleranceError(ProxjoinValidationError):
    """Tolerance does not fit the sequence it applies to."""


class ProxjoinConfigError(ProxjoinError):
    """Invalid parameter combination or configuration."""


class ProxjoinSchemaError(ProxjoinError):
    """Schema validation failure (missing or non-numeric join column)."""


def tolerance_length_error(n_values: int, n_tolerance: int) -> ProxjoinToleranceError:
    """Build the usage error for a per-element tolerance of the wrong length."""
    msg = (
        f"'tolerance' has {n_tolerance} elements but the sequence it applies to "
        f"has {n_values}.\n\n"
    )
    msg += "  A tolerance is either a single number (or one-element sequence) or\n"
    msg += "  one bound per element of the driving sequence (left for left, inner\n"
    msg += "  and outer joins, right for right joins). Any other length leaves\n"
    msg += "  elements without a window.\n\n"
    msg += "  Fix (pick one):\n"
    msg += "    1. Pass a scalar tolerance, e.g. tolerance=0.01\n"
    msg += f"    2. Pass exactly {n_values} tolerance values\n"
    return ProxjoinToleranceError(msg)


def tolerance_value_error(bad_count: int, example: float) -> ProxjoinToleranceError:
    """Build the error for negative or NaN tolerance values."""
    msg = f"'tolerance' contains {bad_count} negative or NaN value(s), e.g. {example}.\n\n"
    msg += "  A tolerance is the largest admissible absolute difference; a negative\n"
    msg += "  or undefined bound can never be satisfied.\n\n"
    msg += "  Fix: use tolerance values >= 0.\n"
    return ProxjoinToleranceError(msg)


def choice_error(what: str, value: object, choices: Sequence[str]) -> ProxjoinConfigError:
    """Build the error for an unknown policy, join type or method."""
    allowed = ", ".join(f"'{c}'" for c in choices)
    return ProxjoinConfigError(f"{what} must be one of {allowed}, got {value!r}.")


def nomatch_error(nomatch: object) -> ProxjoinConfigError:
    """Build the error for a sentinel that collides with valid indices."""
    msg = f"nomatch={nomatch!r} cannot be used as the no-match marker.\n\n"
    msg += "  Result columns hold 1-based positions, so any integer >= 1 could be\n"
    msg += "  mistaken for a real match.\n\n"
    msg += "  Fix: use nomatch=None (default), 0 or a negative integer.\n"
    return ProxjoinConfigError(msg)


def schema_error_missing_column(
    source_name: str,
    column: str,
    actual_columns: list[str],
) -> ProxjoinSchemaError:
    """Build a helpful schema error for a missing join column."""
    similar = _find_similar(column, actual_columns)

    msg = f"Source '{source_name}' has no column '{column}'.\n\n"
    msg += "  proxjoin matches rows on one numeric column per source; without it\n"
    msg += "  there is nothing to compare.\n\n"
    msg += f"  Actual columns: {actual_columns}\n"
    if similar:
        msg += f"  '{similar}' is similar to '{column}', possible rename?\n"
        msg += f"\n  Fix: pass column='{similar}'\n"
    return ProxjoinSchemaError(msg)


def schema_error_not_numeric(
    source_name: str,
    column: str,
    column_type: str,
) -> ProxjoinSchemaError:
    """Build the error for a join column that cannot be cast to a number."""
    msg = f"Column '{column}' of source '{source_name}' has type {column_type}.\n\n"
    msg += "  Tolerance joins compare absolute differences, which requires a\n"
    msg += "  numeric column (integer, decimal or floating point).\n\n"
    msg += "  Fix: cast the column in your data, or use an SQLSource that does\n"
    msg += f"  SELECT CAST({column} AS DOUBLE) AS {column}, ...\n"
    return ProxjoinSchemaError(msg)


def _find_similar(missing: str, candidates: list[str]) -> str | None:
    """Find a candidate similar to the missing name using substring matching."""
    m_lower = missing.lower().replace("_", "")
    for c in candidates:
        c_lower = c.lower().replace("_", "")
        if not c_lower or not m_lower:
            continue
        if m_lower in c_lower or c_lower in m_lower:
            return c
    return None
