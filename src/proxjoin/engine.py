"""proxjoin engine: match, describe.

Loads one numeric column per source with DuckDB, sorts it while keeping
the original row numbers, runs a tolerance join and maps the result back
to the source rows.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb
import numpy as np

from proxjoin._constants import (
    DEFAULT_HOW,
    DEFAULT_PPM,
    DEFAULT_TOLERANCE,
    JOIN_TYPES,
    RESULT_COLUMNS,
)
from proxjoin._sql_utils import _qi, _ql, _safe_name
from proxjoin._tolerance import format_tolerance, parse_tolerance
from proxjoin.core import JoinResult, SourceType, SQLSource
from proxjoin.errors import (
    ProxjoinValidationError,
    choice_error,
    schema_error_missing_column,
    schema_error_not_numeric,
)
from proxjoin.joins import JOIN_METHODS, join

logger = logging.getLogger(__name__)

_NUMERIC_TYPES = (
    "TINYINT",
    "SMALLINT",
    "INTEGER",
    "BIGINT",
    "HUGEINT",
    "UTINYINT",
    "USMALLINT",
    "UINTEGER",
    "UBIGINT",
    "UHUGEINT",
    "FLOAT",
    "REAL",
    "DOUBLE",
    "DECIMAL",
)

_OUTPUT_FORMATS = {
    ".parquet": "(FORMAT PARQUET)",
    ".pq": "(FORMAT PARQUET)",
    ".csv": "(FORMAT CSV, HEADER)",
}

Row = tuple[Any, Any, Any, Any, Any]

# ---------------------------------------------------------------------------
# Match Result
# ---------------------------------------------------------------------------


@dataclass
class MatchStats:
    left_values: int = 0
    right_values: int = 0
    left_nulls: int = 0
    right_nulls: int = 0
    matched: int = 0
    left_only: int = 0
    right_only: int = 0
    row_count: int = 0
    duration_seconds: float = 0.0


@dataclass
class MatchResult:
    output_path: str | None
    how: str
    method: str
    tolerance: str
    rows: list[Row] = field(default_factory=list)
    stats: MatchStats = field(default_factory=MatchStats)

    def __str__(self) -> str:
        s = self.stats
        lines = [
            f"MatchResult ({self.how} join, {self.method}, tolerance {self.tolerance}): "
            f"{s.row_count} rows"
        ]
        if self.output_path:
            lines.append(f"  Output: {self.output_path}")
        lines.append(f"  Time: {s.duration_seconds:.2f}s")
        lines.append(f"  Matched: {s.matched}")
        lines.append(f"  Left only: {s.left_only}")
        lines.append(f"  Right only: {s.right_only}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        s = self.stats
        return {
            "output_path": self.output_path,
            "how": self.how,
            "method": self.method,
            "tolerance": self.tolerance,
            "stats": {
                "left_values": s.left_values,
                "right_values": s.right_values,
                "left_nulls": s.left_nulls,
                "right_nulls": s.right_nulls,
                "matched": s.matched,
                "left_only": s.left_only,
                "right_only": s.right_only,
                "row_count": s.row_count,
                "duration_seconds": round(s.duration_seconds, 4),
            },
        }

    def records(self) -> list[dict[str, Any]]:
        """Rows as dictionaries keyed by result column name."""
        return [dict(zip(RESULT_COLUMNS, row)) for row in self.rows]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _register_source(
    conn: duckdb.DuckDBPyConnection, source: SourceType, table_name: str
) -> None:
    """Register a source as a DuckDB table."""
    if isinstance(source, SQLSource):
        conn.execute(f"CREATE OR REPLACE TEMP TABLE {table_name} AS ({source.query})")
    elif source.df is not None:
        _register_df(conn, source.df, f"{table_name}_df")
        conn.execute(
            f"CREATE OR REPLACE TEMP TABLE {table_name} AS SELECT * FROM {table_name}_df"
        )
    elif source.format == "parquet":
        conn.execute(
            f"CREATE OR REPLACE TEMP TABLE {table_name} AS "
            f"SELECT * FROM read_parquet({_ql(source.path)})"
        )
    elif source.format == "csv":
        conn.execute(
            f"CREATE OR REPLACE TEMP TABLE {table_name} AS "
            f"SELECT * FROM read_csv({_ql(source.path)}, delim={_ql(source.delimiter)})"
        )
    else:
        raise ProxjoinValidationError(f"Unsupported source format: {source.format}")


def _register_df(conn: duckdb.DuckDBPyConnection, df: Any, table_name: str) -> None:
    """Register a DataFrame via Arrow PyCapsule protocol or direct registration."""
    try:
        conn.register(table_name, df)
    except (TypeError, duckdb.Error) as exc:
        raise ProxjoinValidationError(
            f"Cannot register DataFrame of type {type(df).__name__}. "
            "Try converting to Arrow with .to_arrow() or saving to .parquet first."
        ) from exc


def is_numeric_type(col_type: str) -> bool:
    """Whether a DuckDB column type can be joined on."""
    return col_type.upper().startswith(_NUMERIC_TYPES)


def _no_column_error(source: SourceType) -> ProxjoinValidationError:
    return ProxjoinValidationError(
        f"Source '{source.name}' has no join column. "
        "Pass column='...' when creating the source."
    )


def _validate_column(
    conn: duckdb.DuckDBPyConnection, table_name: str, source_name: str, column: str
) -> str:
    """Check the join column exists and is numeric; return its DuckDB type."""
    described = conn.execute(f"DESCRIBE {table_name}").fetchall()
    types = {str(row[0]): str(row[1]) for row in described}
    if column not in types:
        raise schema_error_missing_column(source_name, column, list(types))
    col_type = types[column]
    if not is_numeric_type(col_type):
        raise schema_error_not_numeric(source_name, column, col_type)
    return col_type


def _load_column(
    conn: duckdb.DuckDBPyConnection, table_name: str, column: str
) -> tuple[np.ndarray, np.ndarray, int]:
    """Fetch a column in source order.

    Returns (values, 1-based row numbers, NULL count). NULL values are
    dropped since they cannot be matched.
    """
    fetched = conn.execute(
        f"SELECT CAST({_qi(column)} AS DOUBLE) FROM {table_name}"
    ).fetchall()

    rows = [i + 1 for i, (v,) in enumerate(fetched) if v is not None]
    values = [v for (v,) in fetched if v is not None]
    nulls = len(fetched) - len(values)
    return (
        np.asarray(values, dtype=np.float64),
        np.asarray(rows, dtype=np.int64),
        nulls,
    )


def _load_source(
    conn: duckdb.DuckDBPyConnection, source: SourceType, table_name: str
) -> tuple[np.ndarray, np.ndarray, int]:
    if not source.column:
        raise _no_column_error(source)
    _validate_column(conn, table_name, source.name, source.column)
    return _load_column(conn, table_name, source.column)


def _sorted(values: np.ndarray, rows: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    order = np.argsort(values, kind="stable")
    return values[order], rows[order]


def _output_format(output: str | Path) -> str:
    fmt = _OUTPUT_FORMATS.get(Path(output).suffix.lower())
    if fmt is None:
        raise ProxjoinValidationError(
            f"Cannot write '{output}': unsupported output format. "
            "Use a .parquet, .pq or .csv path."
        )
    return fmt


def _result_rows(
    result: JoinResult,
    x: np.ndarray,
    x_rows: np.ndarray,
    y: np.ndarray,
    y_rows: np.ndarray,
) -> list[Row]:
    """Map sorted positions back to source rows and values."""
    xs, xr = x.tolist(), x_rows.tolist()
    ys, yr = y.tolist(), y_rows.tolist()
    rows: list[Row] = []
    for i, j in result:
        lrow = xr[i - 1] if i is not None else None
        lval = xs[i - 1] if i is not None else None
        rrow = yr[j - 1] if j is not None else None
        rval = ys[j - 1] if j is not None else None
        diff = abs(lval - rval) if lval is not None and rval is not None else None
        rows.append((lrow, rrow, lval, rval, diff))
    return rows


def _write_rows(
    conn: duckdb.DuckDBPyConnection, rows: list[Row], output: str | Path
) -> None:
    fmt = _output_format(output)
    conn.execute(
        "CREATE OR REPLACE TEMP TABLE __result ("
        "left_row BIGINT, right_row BIGINT, "
        "left_value DOUBLE, right_value DOUBLE, difference DOUBLE)"
    )
    if rows:
        conn.executemany("INSERT INTO __result VALUES (?, ?, ?, ?, ?)", rows)
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    conn.execute(f"COPY (SELECT * FROM __result) TO {_ql(output)} {fmt}")


# ---------------------------------------------------------------------------
# Public API: match
# ---------------------------------------------------------------------------


def match(
    left: SourceType,
    right: SourceType,
    *,
    tolerance: float | str = DEFAULT_TOLERANCE,
    ppm: float = DEFAULT_PPM,
    how: str = DEFAULT_HOW,
    method: str | None = None,
    output: str | Path | None = None,
) -> MatchResult:
    """Match rows of two sources on numeric proximity of one column each.

    Args:
        left: Left source (Source, ParquetSource, CSVSource or SQLSource).
        right: Right source.
        tolerance: Absolute tolerance, or a string like "0.01+5ppm".
        ppm: Additional relative tolerance in parts per million.
        how: "outer", "left", "inner" or "right".
        method: Join strategy (default: first strategy of ``how``).
        output: Optional .parquet/.csv path for the result table.

    Returns:
        MatchResult whose rows hold 1-based source row numbers, the two
        values and their absolute difference (None for an unmatched side).
    """
    start = time.time()

    if how not in JOIN_TYPES:
        raise choice_error("how", how, JOIN_TYPES)
    method = method or JOIN_METHODS[how][0]
    if method not in JOIN_METHODS[how]:
        raise choice_error("method", method, JOIN_METHODS[how])
    if output is not None:
        _output_format(output)

    absolute, text_ppm = parse_tolerance(tolerance)
    ppm = ppm + text_ppm

    conn = duckdb.connect()
    try:
        left_table = f"__left_{_safe_name(left.name)}"
        right_table = f"__right_{_safe_name(right.name)}"
        _register_source(conn, left, left_table)
        _register_source(conn, right, right_table)

        x, x_rows, x_nulls = _load_source(conn, left, left_table)
        y, y_rows, y_nulls = _load_source(conn, right, right_table)
        logger.info(
            "Left: %d values from %s.%s (%d NULL dropped)",
            len(x), left.name, left.column, x_nulls,
        )
        logger.info(
            "Right: %d values from %s.%s (%d NULL dropped)",
            len(y), right.name, right.column, y_nulls,
        )

        x, x_rows = _sorted(x, x_rows)
        y, y_rows = _sorted(y, y_rows)

        result = join(x, y, absolute, ppm=ppm, how=how, method=method)
        rows = _result_rows(result, x, x_rows, y, y_rows)
        logger.info("Join [%s/%s]: %d rows", how, method, len(rows))

        if output is not None:
            _write_rows(conn, rows, output)
            logger.info("Wrote %d rows to %s", len(rows), output)
    finally:
        conn.close()

    matched = sum(1 for r in rows if r[0] is not None and r[1] is not None)
    stats = MatchStats(
        left_values=len(x),
        right_values=len(y),
        left_nulls=x_nulls,
        right_nulls=y_nulls,
        matched=matched,
        left_only=sum(1 for r in rows if r[1] is None),
        right_only=sum(1 for r in rows if r[0] is None),
        row_count=len(rows),
        duration_seconds=time.time() - start,
    )
    return MatchResult(
        output_path=str(output) if output is not None else None,
        how=how,
        method=method,
        tolerance=format_tolerance(absolute, ppm),
        rows=rows,
        stats=stats,
    )


# ---------------------------------------------------------------------------
# Public API: describe / profile
# ---------------------------------------------------------------------------


def _profile_values(values: np.ndarray, nulls: int) -> dict[str, Any]:
    steps = np.diff(values)
    return {
        "row_count": len(values) + nulls,
        "null_count": nulls,
        "min": float(values.min()) if len(values) else None,
        "max": float(values.max()) if len(values) else None,
        "sorted": bool((steps >= 0).all()),
        "strictly_sorted": bool((steps > 0).all()),
        "duplicates": int((steps == 0).sum()),
    }


def profile(
    source: SourceType, columns: list[str] | None = None
) -> list[dict[str, Any]]:
    """Profile numeric columns of a source: counts, range and sortedness.

    Profiles every numeric column when ``columns`` is None.
    """
    conn = duckdb.connect()
    try:
        table = f"__src_{_safe_name(source.name)}"
        _register_source(conn, source, table)
        types = {
            str(row[0]): str(row[1])
            for row in conn.execute(f"DESCRIBE {table}").fetchall()
        }
        if columns is None:
            columns = [c for c, t in types.items() if is_numeric_type(t)]

        profiles = []
        for column in columns:
            col_type = _validate_column(conn, table, source.name, column)
            values, _, nulls = _load_column(conn, table, column)
            profiles.append(
                {
                    "name": source.name,
                    "column": column,
                    "type": col_type,
                    **_profile_values(values, nulls),
                }
            )
    finally:
        conn.close()
    return profiles


def describe(source: SourceType) -> dict[str, Any]:
    """Profile the join column of a source."""
    if not source.column:
        raise _no_column_error(source)
    return profile(source, [source.column])[0]
