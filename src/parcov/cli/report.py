"""parcov report command - per-file breakdown of a profile."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.table import Table

from parcov.cli.utils import load_cli_config, split_packages
from parcov.core.errors import ParcovError
from parcov.core.progress import get_console
from parcov.coverage.aggregate import CoverageAggregator
from parcov.coverage.models import WorkerOutput
from parcov.coverage.report import build_summary, build_text_summary


@click.command()
@click.argument("profile", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--coverpkg", default=None, help="Comma-separated packages reported as one unit")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def report_command(ctx: click.Context, profile: Path, coverpkg: str | None, as_json: bool) -> None:
    """Show statement coverage per file for PROFILE."""
    load_cli_config(ctx, Path.cwd())

    try:
        result = CoverageAggregator().aggregate(
            [WorkerOutput(package_id="", profile_text=profile.read_text(errors="replace"))],
            split_packages(coverpkg),
        )
    except ParcovError as e:
        raise click.ClickException(str(e)) from e

    summary = build_summary(result)
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    table = Table(show_edge=False, pad_edge=False)
    table.add_column("File")
    table.add_column("Statements", justify="right")
    table.add_column("Covered", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Missed lines")
    for stats in summary["files"]:
        table.add_row(
            stats["path"],
            str(stats["total_statements"]),
            str(stats["covered_statements"]),
            f"{stats['coverage_percent']:.1f}",
            stats["missed_lines"],
        )
    get_console().print(table)
    click.echo(build_text_summary(result))
