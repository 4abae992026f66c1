"""Core data model: input coercion, JoinResult, Source, SQLSource."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import numpy as np

from proxjoin.errors import ProxjoinValidationError, nomatch_error


def as_values(values: Any, name: str = "values") -> np.ndarray:
    """Coerce a numeric sequence to a 1-D float64 array.

    Sortedness is the caller's responsibility and is not checked here.
    """
    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ProxjoinValidationError(
            f"'{name}' must be a sequence of numbers: {exc}"
        ) from exc
    if arr.ndim != 1:
        raise ProxjoinValidationError(
            f"'{name}' must be one-dimensional, got an array of shape {arr.shape}."
        )
    if np.isnan(arr).any():
        raise ProxjoinValidationError(
            f"'{name}' contains NaN values. Drop or impute them before joining; "
            "a missing value has no distance to anything."
        )
    return arr


def check_nomatch(nomatch: int | None) -> int | None:
    """Validate the no-match marker: None or an integer below 1."""
    if nomatch is None:
        return None
    if isinstance(nomatch, bool) or not isinstance(nomatch, (int, np.integer)):
        raise nomatch_error(nomatch)
    if nomatch >= 1:
        raise nomatch_error(nomatch)
    return int(nomatch)


@dataclass
class JoinResult:
    """A join table: two equal-length columns of 1-based positions.

    ``left[k]`` and ``right[k]`` form row ``k``. A position is either a
    1-based index into the corresponding input or ``nomatch`` (None unless
    the caller chose an integer marker).
    """

    left: list[int | None]
    right: list[int | None]
    how: str
    nomatch: int | None = None
    method: str | None = field(default=None, compare=False)

    def __len__(self) -> int:
        return len(self.left)

    def __iter__(self) -> Iterator[tuple[int | None, int | None]]:
        return zip(self.left, self.right)

    def pairs(self) -> list[tuple[int, int]]:
        """Rows where both sides matched."""
        return [
            (x, y)
            for x, y in zip(self.left, self.right)
            if x != self.nomatch and y != self.nomatch
        ]

    @property
    def n_matched(self) -> int:
        return len(self.pairs())

    def to_dict(self) -> dict[str, list[int | None]]:
        return {"left": list(self.left), "right": list(self.right)}

    def __repr__(self) -> str:
        return (
            f"JoinResult(how='{self.how}', rows={len(self)}, "
            f"matched={self.n_matched})"
        )


class Source:
    """A table with one numeric column to join on.

    Args:
        path: Path to the data file (Parquet or CSV).
        column: Name of the numeric column to match (required by match()).
        name: Human-readable name (defaults to filename stem).
        format: File format ("parquet" or "csv"). Auto-detected from extension.
        delimiter: CSV delimiter (only for CSV files).
        df: DataFrame or Arrow table (mutually exclusive with path).
    """

    path: Path | None
    df: Any
    column: str | None
    name: str
    delimiter: str
    format: str

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        column: str | None = None,
        name: str | None = None,
        format: str | None = None,
        delimiter: str = ",",
        df: Any = None,
    ):
        if path is None and df is None:
            raise ProxjoinValidationError(
                "Source requires either 'path' or 'df' parameter."
            )
        if path is not None and df is not None:
            raise ProxjoinValidationError(
                "Source accepts either 'path' or 'df', not both."
            )

        self.path = Path(path) if path is not None else None
        self.df = df
        self.column = column
        self.name = name or (self.path.stem if self.path else "dataframe")
        self.delimiter = delimiter

        if format is not None:
            if format not in ("parquet", "csv"):
                raise ProxjoinValidationError(
                    f"Unsupported source format '{format}'. Use 'parquet' or 'csv'."
                )
            self.format = format
        elif self.path is not None:
            ext = self.path.suffix.lower()
            if ext in (".parquet", ".pq"):
                self.format = "parquet"
            elif ext in (".csv", ".tsv"):
                self.format = "csv"
                if ext == ".tsv" and delimiter == ",":
                    self.delimiter = "\t"
            else:
                raise ProxjoinValidationError(
                    f"Cannot auto-detect format for '{self.path}'. "
                    "Specify format='parquet' or format='csv'."
                )
        else:
            self.format = "arrow"

    def __repr__(self) -> str:
        src = str(self.path) if self.path else "DataFrame"
        return f"Source(name='{self.name}', path='{src}', column='{self.column}')"


class ParquetSource(Source):
    """Convenience alias for Source with format='parquet'."""

    def __init__(self, path: str | Path, **kwargs: Any):
        super().__init__(path=path, format="parquet", **kwargs)


class CSVSource(Source):
    """Convenience alias for Source with format='csv'."""

    def __init__(self, path: str | Path, **kwargs: Any):
        super().__init__(path=path, format="csv", **kwargs)


class SQLSource:
    """A source defined by a SQL query run in an in-memory DuckDB.

    Args:
        query: SQL query string. Can use read_parquet/read_csv directly.
        column: Name of the numeric column the query returns.
        name: Human-readable name.
    """

    query: str
    column: str
    name: str
    path: Path | None  # Always None for SQLSource
    df: Any  # Always None for SQLSource
    format: str

    def __init__(self, query: str, *, column: str, name: str):
        self.query = query
        self.column = column
        self.name = name
        self.path = None
        self.df = None
        self.format = "sql"

    def __repr__(self) -> str:
        return f"SQLSource(name='{self.name}', column='{self.column}')"


SourceType = Union[Source, SQLSource]
