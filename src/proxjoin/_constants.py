"""Shared constants for the proxjoin engine."""

# Tolerance defaults
DEFAULT_TOLERANCE: float = 0.0
DEFAULT_PPM: float = 0.0
PPM_SCALE: float = 1e6

# Join types and their strategies (first entry is the default)
DEFAULT_HOW: str = "outer"
JOIN_TYPES: tuple[str, ...] = ("outer", "left", "inner", "right")
LEFT_METHODS: tuple[str, ...] = ("scan", "resolver")
OUTER_METHODS: tuple[str, ...] = ("lookahead", "diagonal")

# Duplicate resolution
DEFAULT_POLICY: str = "closest"
POLICIES: tuple[str, ...] = ("keep", "closest", "remove")

# Config discovery
CONFIG_FILES: tuple[str, ...] = ("proxjoin.yaml", "proxjoin.yml")

# Column names of the engine's result table
RESULT_COLUMNS: tuple[str, ...] = (
    "left_row",
    "right_row",
    "left_value",
    "right_value",
    "difference",
)
