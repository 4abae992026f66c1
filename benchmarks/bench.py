"""proxjoin benchmark: measure join performance across data scales.

Usage:
    python benchmarks/bench.py              # Run all benchmarks
    python benchmarks/bench.py --quick      # Run small benchmarks only (<=100K values)
    python benchmarks/bench.py --include-engine  # Also time match() on Parquet files
    python benchmarks/bench.py --runs 5     # Number of iterations per scenario (default: 3)

Results are printed as a table and saved to benchmarks/results.json.

Methodology:
    - Each scenario runs N iterations (default 3); we report median and stddev.
    - A warmup run is executed before the first timed iteration.
    - GC is disabled during timed runs to reduce noise.
    - Data generation uses a fixed seed for reproducibility.
"""

from __future__ import annotations

import argparse
import gc
import json
import platform
import statistics
import sys
import tempfile
import time
from pathlib import Path
from typing import Any, Callable

import duckdb
import numpy as np

# Ensure proxjoin is importable from the repo root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))
import proxjoin
from proxjoin._tolerance import format_tolerance

SEED = 42
TOLERANCE = 0.005
PPM = 5.0


# ---------------------------------------------------------------------------
# Data generation
# ---------------------------------------------------------------------------

def generate_values(n: int, rng: np.random.Generator) -> tuple[np.ndarray, np.ndarray]:
    """Two ascending peak lists of ``n`` values; about half of them shared."""
    base = np.sort(rng.uniform(100.0, 2000.0, n))
    shared = rng.random(n) < 0.5
    jitter = rng.normal(0.0, TOLERANCE / 2, n)
    right = np.where(shared, base + jitter, rng.uniform(100.0, 2000.0, n))
    return base, np.sort(right)


def write_parquet(tmp: Path, left: np.ndarray, right: np.ndarray) -> tuple[Path, Path]:
    """Write both lists to Parquet (in shuffled row order) with DuckDB."""
    rng = np.random.default_rng(SEED)
    paths = []
    conn = duckdb.connect()
    try:
        for name, values in (("left", left), ("right", right)):
            path = tmp / f"{name}.parquet"
            shuffled = values[rng.permutation(len(values))]
            staging = tmp / f"{name}.csv"
            np.savetxt(staging, shuffled, fmt="%.10f", header="mz", comments="")
            conn.execute(
                f"COPY (SELECT mz FROM read_csv('{staging.as_posix()}')) "
                f"TO '{path.as_posix()}' (FORMAT PARQUET)"
            )
            paths.append(path)
    finally:
        conn.close()
    return paths[0], paths[1]


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

def _timed(fn: Callable[[], Any], n_runs: int) -> tuple[list[float], Any]:
    # Warmup run (not timed)
    result = fn()

    times = []
    for _ in range(n_runs):
        gc.disable()
        t0 = time.perf_counter()
        result = fn()
        elapsed = time.perf_counter() - t0
        gc.enable()
        times.append(elapsed)
    return times, result


def bench_join(
    left: np.ndarray, right: np.ndarray, how: str, method: str, *, n_runs: int = 3
) -> dict:
    """Run proxjoin.join() with warmup + N timed runs. Return median timing."""
    times, result = _timed(
        lambda: proxjoin.join(left, right, TOLERANCE, ppm=PPM, how=how, method=method),
        n_runs,
    )
    return {
        "engine": f"{how}/{method}",
        "median_seconds": round(statistics.median(times), 3),
        "stddev_seconds": round(statistics.stdev(times), 3) if len(times) > 1 else 0.0,
        "runs": n_runs,
        "rows_out": len(result),
        "matched": result.n_matched,
    }


def bench_engine(left_path: Path, right_path: Path, *, n_runs: int = 3) -> dict:
    """Run proxjoin.match() on Parquet files, including load and sort."""
    left = proxjoin.ParquetSource(str(left_path), column="mz")
    right = proxjoin.ParquetSource(str(right_path), column="mz")
    times, result = _timed(
        lambda: proxjoin.match(left, right, tolerance=TOLERANCE, ppm=PPM), n_runs
    )
    return {
        "engine": "match (parquet)",
        "median_seconds": round(statistics.median(times), 3),
        "stddev_seconds": round(statistics.stdev(times), 3) if len(times) > 1 else 0.0,
        "runs": n_runs,
        "rows_out": result.stats.row_count,
        "matched": result.stats.matched,
    }


# ---------------------------------------------------------------------------
# Benchmark matrix
# ---------------------------------------------------------------------------

SIZES = [10_000, 100_000, 1_000_000]
QUICK_SIZES = [s for s in SIZES if s <= 100_000]

STRATEGIES = [
    ("outer", "lookahead"),
    ("outer", "diagonal"),
    ("left", "scan"),
    ("left", "resolver"),
    ("inner", "scan"),
    ("right", "scan"),
]


def format_table(results: list[dict]) -> str:
    """Format results as an aligned ASCII table."""
    headers = ["Scenario", "Join", "Median", "Stddev", "Rows", "Matched"]
    rows = []
    for r in results:
        rows.append([
            r["scenario"],
            r["engine"],
            f"{r['median_seconds']:.3f}s",
            f"±{r['stddev_seconds']:.3f}s",
            f"{r['rows_out']:,}",
            f"{r['matched']:,}",
        ])

    widths = [
        max(len(h), max((len(row[i]) for row in rows), default=0))
        for i, h in enumerate(headers)
    ]
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    header_line = "| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |"

    lines = [sep, header_line, sep]
    for row in rows:
        lines.append("| " + " | ".join(val.ljust(w) for val, w in zip(row, widths)) + " |")
    lines.append(sep)
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="proxjoin benchmarks")
    parser.add_argument("--quick", action="store_true", help="Only sizes up to 100K values")
    parser.add_argument("--include-engine", action="store_true", help="Also time match() on Parquet")
    parser.add_argument("--runs", type=int, default=3, help="Timed iterations per scenario (default: 3)")
    args = parser.parse_args()

    sizes = QUICK_SIZES if args.quick else SIZES
    rng = np.random.default_rng(SEED)
    all_results = []

    print("\nproxjoin Benchmark Suite")
    print("========================")
    print(f"  Python {platform.python_version()} | DuckDB {duckdb.__version__} | proxjoin {proxjoin.__version__}")
    print(f"  {args.runs} runs per scenario (median reported) | seed={SEED}")
    print()

    for n in sizes:
        label = f"{n:,} x {n:,}"
        left, right = generate_values(n, rng)

        for how, method in STRATEGIES:
            print(f"  Running {how}/{method}: {label} ...", end=" ", flush=True)
            result = bench_join(left, right, how, method, n_runs=args.runs)
            result["scenario"] = label
            all_results.append(result)
            print(f"{result['median_seconds']:.3f}s")

        if args.include_engine:
            with tempfile.TemporaryDirectory() as tmp_str:
                left_path, right_path = write_parquet(Path(tmp_str), left, right)
                print(f"  Running match: {label} ...", end=" ", flush=True)
                result = bench_engine(left_path, right_path, n_runs=args.runs)
                result["scenario"] = label
                all_results.append(result)
                print(f"{result['median_seconds']:.3f}s")

        print()

    print(format_table(all_results))

    output = {
        "methodology": "1 warmup + N timed runs, GC disabled, median reported.",
        "seed": SEED,
        "tolerance": format_tolerance(TOLERANCE, PPM),
        "runs_per_scenario": args.runs,
        "versions": {
            "python": platform.python_version(),
            "duckdb": duckdb.__version__,
            "numpy": np.__version__,
            "proxjoin": proxjoin.__version__,
        },
        "results": all_results,
    }

    out_path = Path(__file__).parent / "results.json"
    with open(out_path, "w") as f:
        json.dump(output, f, indent=2)
    print(f"\nResults saved to {out_path}")


if __name__ == "__main__":
    main()
