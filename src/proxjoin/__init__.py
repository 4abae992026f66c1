"""proxjoin: tolerance joins for ascending numeric sequences."""

from proxjoin._tolerance import expand_tolerance, parse_tolerance
from proxjoin._version import __version__
from proxjoin.core import (
    CSVSource,
    JoinResult,
    ParquetSource,
    Source,
    SQLSource,
)
from proxjoin.engine import MatchResult, describe, match
from proxjoin.joins import (
    JOINS,
    inner_join,
    join,
    left_join,
    outer_join,
    right_join,
)
from proxjoin.resolver import closest_duplicate

__all__ = [
    "CSVSource",
    "JOINS",
    "JoinResult",
    "MatchResult",
    "ParquetSource",
    "SQLSource",
    "Source",
    "__version__",
    "closest_duplicate",
    "describe",
    "expand_tolerance",
    "inner_join",
    "join",
    "left_join",
    "match",
    "outer_join",
    "parse_tolerance",
    "right_join",
]
