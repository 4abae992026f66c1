"""Shared test fixtures for proxjoin tests."""

from __future__ import annotations

from pathlib import Path

import duckdb
import pytest


@pytest.fixture
def tmp_data(tmp_path: Path) -> Path:
    """Create a temporary directory with two small peak lists.

    run1 is unsorted and has one NULL; run2 is sorted ascending.
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir()

    conn = duckdb.connect()
    try:
        # run1: mz by row = 300, 100, 400, 200, NULL
        conn.execute(f"""
            COPY (
                SELECT peak_id, CAST(mz AS DOUBLE) AS mz, label
                FROM (VALUES
                    (1, 300.0, 'c'),
                    (2, 100.0, 'a'),
                    (3, 400.0, 'd'),
                    (4, 200.0, 'b'),
                    (5, NULL, 'e')
                ) t(peak_id, mz, label)
            ) TO '{data_dir}/run1.parquet' (FORMAT PARQUET)
        """)

        # run2: mz by row = 100.004, 199.995, 350, 400.02
        conn.execute("""
            CREATE TEMP TABLE run2 AS
            SELECT peak_id, CAST(mz AS DOUBLE) AS mz
            FROM (VALUES
                (1, 100.004),
                (2, 199.995),
                (3, 350.0),
                (4, 400.02)
            ) t(peak_id, mz)
        """)
        conn.execute(f"COPY run2 TO '{data_dir}/run2.parquet' (FORMAT PARQUET)")
        conn.execute(f"COPY run2 TO '{data_dir}/run2.csv' (FORMAT CSV, HEADER)")
    finally:
        conn.close()

    return data_dir


@pytest.fixture
def sources(tmp_data: Path):
    """Sources over the synthetic peak lists."""
    import proxjoin

    return {
        "run1": proxjoin.ParquetSource(str(tmp_data / "run1.parquet"), column="mz"),
        "run2": proxjoin.ParquetSource(str(tmp_data / "run2.parquet"), column="mz"),
        "run2_csv": proxjoin.CSVSource(str(tmp_data / "run2.csv"), column="mz"),
    }
