"""SQL quoting helpers for the DuckDB statements the engine builds."""

from __future__ import annotations

from pathlib import Path


def _qi(name: str) -> str:
    """Quote a column or table name as a DuckDB identifier ("a""b")."""
    return '"' + name.replace('"', '""') + '"'


def _ql(value: str | Path) -> str:
    """Quote a path or string as a DuckDB string literal ('it''s')."""
    return "'" + str(value).replace("'", "''") + "'"


def _safe_name(name: str) -> str:
    """Turn a source name into something usable inside a temp table name."""
    return "".join(c if c.isalnum() or c == "_" else "_" for c in name) or "_unnamed"
