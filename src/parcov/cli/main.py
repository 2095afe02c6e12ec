"""parcov CLI - parallel test runs with merged statement coverage."""

from pathlib import Path

import click

from parcov.cli.merge import merge_command
from parcov.cli.report import report_command
from parcov.cli.run import run_command
from parcov.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="parcov")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: .parcov/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """parcov - run test suites in parallel and merge their coverage profiles."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(run_command, name="run")
cli.add_command(merge_command, name="merge")
cli.add_command(report_command, name="report")


if __name__ == "__main__":
    cli()
