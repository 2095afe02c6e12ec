"""parcov merge command - merge existing profiles into one."""

from __future__ import annotations

from pathlib import Path

import click

from parcov.cli.utils import load_cli_config, split_packages
from parcov.core.errors import ParcovError
from parcov.core.progress import status
from parcov.coverage.aggregate import CoverageAggregator
from parcov.coverage.models import WorkerOutput
from parcov.coverage.report import format_coverage_line
from parcov.routing import OutputPlacement, PackageCoverageRouter


@click.command()
@click.argument(
    "profiles",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the merged profile here instead of stdout",
)
@click.option("--coverpkg", default=None, help="Comma-separated packages reported as one unit")
@click.option("--append", is_flag=True, help="Merge into OUTPUT if it already exists")
@click.pass_context
def merge_command(
    ctx: click.Context,
    profiles: tuple[Path, ...],
    output: Path | None,
    coverpkg: str | None,
    append: bool,
) -> None:
    """Merge coverage PROFILES (e.g. one per worker) into one profile.

    Hit counts of identical blocks are summed; profiles from different
    builds are rejected.
    """
    load_cli_config(ctx, Path.cwd())

    inputs = list(profiles)
    if append and output is not None and output.exists():
        inputs.append(output)

    outputs = [
        WorkerOutput(package_id="", profile_text=p.read_text(errors="replace"), worker_index=i)
        for i, p in enumerate(inputs)
    ]
    sources = {o.source: p for o, p in zip(outputs, inputs, strict=True)}

    try:
        result = CoverageAggregator().aggregate(outputs, split_packages(coverpkg))
    except ParcovError as e:
        raise click.ClickException(str(e)) from e

    for discarded in result.discarded:
        status(f"{sources[discarded.source]}: {discarded.reason}", style="warning")

    if output is None:
        click.echo(result.render(), nl=False)
    else:
        placement = OutputPlacement(
            source_package_dir=output.parent,
            requested_file_name=output.name,
        )
        try:
            routed = PackageCoverageRouter().route(result.render(), placement)
        except ParcovError as e:
            raise click.ClickException(str(e)) from e
        status(f"wrote {routed.destination}")

    status(format_coverage_line(result.summary, explicit_scope=result.explicit_scope))
