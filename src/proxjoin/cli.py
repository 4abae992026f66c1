"""proxjoin CLI: command-line interface powered by click and rich."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from proxjoin._constants import CONFIG_FILES, DEFAULT_HOW, DEFAULT_TOLERANCE, JOIN_TYPES
from proxjoin._version import __version__
from proxjoin.errors import ProxjoinError

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

PREVIEW_ROWS = 10


def _load_config() -> dict[str, Any]:
    """Load proxjoin.yaml (or .yml) from the working directory if present."""
    for name in CONFIG_FILES:
        path = Path(name)
        if not path.exists():
            continue
        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{name} must contain a mapping at the top level.")
        return data
    return {}


def _try_load_config() -> dict[str, Any]:
    """Try to load config, return empty dict on failure."""
    try:
        return _load_config()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.debug("Could not load proxjoin.yaml: %s", exc)
        return {}


def _resolve_defaults(config: dict) -> dict[str, Any]:
    """Extract default parameters from config."""
    defaults = config.get("defaults", {})
    return defaults if isinstance(defaults, dict) else {}


def _fail(message: str) -> None:
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


def _require_file(path: str) -> None:
    if not Path(path).exists():
        _fail(f"File '{path}' not found.")


@click.group()
@click.version_option(__version__, prog_name="proxjoin")
@click.option("-v", "--verbose", is_flag=True, help="Log join steps")
@click.option("--debug", is_flag=True, help="Log everything, including per-join details")
def cli(verbose: bool, debug: bool):
    """proxjoin: tolerance joins for sorted numeric columns."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("proxjoin").setLevel(level)


@cli.command(name="join")
@click.argument("left")
@click.argument("right")
@click.option("--column", "-c", default=None, help="Join column name in both files")
@click.option("--left-column", default=None, help="Join column in LEFT")
@click.option("--right-column", default=None, help="Join column in RIGHT")
@click.option(
    "--tolerance", "-t", default=None, help="Tolerance, e.g. 0.01, 5ppm or 0.01+5ppm"
)
@click.option("--how", default=None, type=click.Choice(JOIN_TYPES))
@click.option("--method", default=None, help="Join strategy (depends on --how)")
@click.option("--output", "-o", default=None, help="Write result to .parquet or .csv")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def join_cmd(
    left: str,
    right: str,
    column: str | None,
    left_column: str | None,
    right_column: str | None,
    tolerance: str | None,
    how: str | None,
    method: str | None,
    output: str | None,
    json_output: bool,
):
    """Match rows of LEFT and RIGHT on numeric proximity."""
    from proxjoin.core import Source
    from proxjoin.engine import match

    _require_file(left)
    _require_file(right)

    defaults = _resolve_defaults(_try_load_config())
    column = column or defaults.get("column")
    left_column = left_column or column
    right_column = right_column or column
    if not left_column or not right_column:
        _fail("No join column given. Use --column, or --left-column and --right-column.")

    tolerance = tolerance if tolerance is not None else defaults.get("tolerance")
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCE
    how = how or defaults.get("how", DEFAULT_HOW)
    method = method or defaults.get("method")

    try:
        result = match(
            Source(path=left, column=left_column),
            Source(path=right, column=right_column),
            tolerance=str(tolerance),
            how=how,
            method=method,
            output=output,
        )
    except (ProxjoinError, ValueError) as exc:
        _fail(str(exc))
        return

    if json_output:
        payload = result.to_dict()
        payload["preview"] = result.records()[:PREVIEW_ROWS]
        click.echo(json.dumps(payload, indent=2))
    else:
        _print_match_result(result)


def _fmt(value: Any) -> str:
    if value is None:
        return "—"
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


def _print_match_result(result) -> None:
    """Rich-formatted match summary for the terminal."""
    s = result.stats
    console.print()
    console.print(
        f"[bold]{result.how.upper()} JOIN[/bold] ({result.method}), "
        f"tolerance {escape(result.tolerance)}"
    )
    console.print(
        f"Left: {s.left_values:,} values ({s.left_nulls:,} null), "
        f"Right: {s.right_values:,} values ({s.right_nulls:,} null)"
    )
    console.print()

    summary = Table(show_header=True, header_style="bold")
    summary.add_column("Rows")
    summary.add_column("Matched")
    summary.add_column("Left only")
    summary.add_column("Right only")
    summary.add_row(
        f"{s.row_count:,}", f"{s.matched:,}", f"{s.left_only:,}", f"{s.right_only:,}"
    )
    console.print(summary)

    if result.rows:
        preview = Table(show_header=True, header_style="bold")
        for name in ("Left row", "Right row", "Left value", "Right value", "Difference"):
            preview.add_column(name)
        for row in result.rows[:PREVIEW_ROWS]:
            preview.add_row(*(_fmt(v) for v in row))
        console.print(preview)
        if len(result.rows) > PREVIEW_ROWS:
            console.print(f"[dim]... {len(result.rows) - PREVIEW_ROWS:,} more rows[/dim]")

    if result.output_path:
        console.print(f"\n[green]Wrote {s.row_count:,} rows to {escape(result.output_path)}[/green]")
    console.print(f"[dim]{s.duration_seconds:.2f}s[/dim]\n")


@cli.command()
@click.argument("path")
@click.option("--column", "-c", default=None, help="Profile only this column")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def inspect(path: str, column: str | None, json_output: bool):
    """Profile numeric columns of a data file and check they are sorted."""
    from proxjoin.core import Source
    from proxjoin.engine import profile

    _require_file(path)

    try:
        profiles = profile(Source(path=path), [column] if column else None)
    except ProxjoinError as exc:
        _fail(str(exc))
        return

    if json_output:
        click.echo(json.dumps({"path": path, "columns": profiles}, indent=2))
        return

    console.print(f"\n[bold]FILE:[/bold] {escape(path)}\n")
    if not profiles:
        console.print("[yellow]No numeric columns found.[/yellow]\n")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Column")
    table.add_column("Type")
    table.add_column("Rows")
    table.add_column("Nulls")
    table.add_column("Range")
    table.add_column("Sorted")
    for p in profiles:
        if p["strictly_sorted"]:
            order = "[green]strictly[/green]"
        elif p["sorted"]:
            order = f"[yellow]yes ({p['duplicates']} ties)[/yellow]"
        else:
            order = "[red]no[/red]"
        table.add_row(
            escape(p["column"]),
            p["type"],
            f"{p['row_count']:,}",
            f"{p['null_count']:,}",
            f"{_fmt(p['min'])} .. {_fmt(p['max'])}",
            order,
        )
    console.print(table)
    console.print(
        "\n[dim]Unsorted columns are sorted by `proxjoin join`; "
        "the Python join functions expect sorted input.[/dim]\n"
    )


@cli.command()
@click.argument("path", default=".")
def init(path: str):
    """Initialize a project with a proxjoin.yaml config file."""
    project_dir = Path(path)
    project_dir.mkdir(parents=True, exist_ok=True)

    config_path = project_dir / CONFIG_FILES[0]
    if config_path.exists():
        console.print(f"[yellow]{CONFIG_FILES[0]} already exists in {project_dir}[/yellow]")
        return

    config_content = f"""# proxjoin.yaml
defaults:
  tolerance: "{DEFAULT_TOLERANCE:g}"
  how: {DEFAULT_HOW}
  # method: lookahead
  # column: mz
"""
    config_path.write_text(config_content)
    console.print(f"[green]Created {config_path}[/green]")


if __name__ == "__main__":
    cli()
