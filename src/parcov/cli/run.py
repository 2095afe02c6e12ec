"""parcov run command - run a suite and merge per-worker coverage."""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path
from typing import Any

import click

from parcov.cli.utils import load_cli_config, split_packages
from parcov.core.logging import get_log_file_path
from parcov.core.progress import pluralize, status
from parcov.suite.orchestrator import PackageRunResult, SuiteOrchestrator


def _auto_worker_count() -> int:
    return max(1, (os.cpu_count() or 1) - 1)


@click.command()
@click.argument(
    "path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("-r", "--recursive", is_flag=True, help="Run every package below PATH")
@click.option("--cover", is_flag=True, help="Collect statement coverage")
@click.option("--coverprofile", default=None, help="Custom profile file name")
@click.option("--coverpkg", default=None, help="Comma-separated packages reported as one unit")
@click.option("--outputdir", default=None, help="Directory receiving every profile")
@click.option(
    "--append/--no-append", default=None, help="Merge into existing profiles in OUTPUTDIR"
)
@click.option("--nodes", type=click.IntRange(min=1), default=None, help="Workers per package")
@click.option("-p", "auto_parallel", is_flag=True, help="Pick the worker count automatically")
@click.option("--command", "command", default=None, help="Worker command template")
@click.pass_context
def run_command(
    ctx: click.Context,
    path: Path,
    recursive: bool,
    cover: bool,
    coverprofile: str | None,
    coverpkg: str | None,
    outputdir: str | None,
    append: bool | None,
    nodes: int | None,
    auto_parallel: bool,
    command: str | None,
) -> None:
    """Run the suite at PATH and write merged coverage profiles.

    Exits non-zero if any package failed its tests or its coverage step.
    """
    root = path.resolve()

    coverage: dict[str, Any] = {}
    if cover or coverprofile or coverpkg:
        coverage["enabled"] = True
    if coverprofile:
        coverage["output_file_name"] = coverprofile
    if coverpkg:
        coverage["scope"] = split_packages(coverpkg)
    if outputdir:
        coverage["output_dir"] = outputdir
    if append is not None:
        coverage["append"] = append
    if nodes is not None:
        coverage["worker_count"] = nodes
    elif auto_parallel:
        coverage["worker_count"] = _auto_worker_count()

    suite: dict[str, Any] = {}
    if recursive:
        suite["recursive"] = True
    if command:
        suite["command"] = shlex.split(command)

    config = load_cli_config(ctx, root, coverage=coverage, suite=suite)
    orchestrator = SuiteOrchestrator(config)

    if not orchestrator.discover(root):
        raise click.ClickException(f"No packages found under {root}")

    result = asyncio.run(orchestrator.run(root))

    for package in result.packages:
        _report_package(package)

    if len(result.packages) > 1 or not result.ok:
        style = "success" if result.ok else "error"
        status(
            f"{pluralize(len(result.packages), 'package')}, {len(result.failed)} failed",
            style=style,
        )
    if not result.ok and (log_path := get_log_file_path()):
        status(f"Details: {log_path}", style="info")

    raise SystemExit(result.exit_code)


def _report_package(package: PackageRunResult) -> None:
    name = package.package.package_id
    if package.status == "error" and package.error is not None:
        status(f"{name}: {package.error.error_name}: {package.error.message}", style="error")
    elif package.status == "tests_failed":
        status(f"{name}: workers failed {package.failed_workers}", style="error")
    else:
        status(name, style="success")

    if package.aggregate is not None:
        for warning in package.aggregate.warnings:
            status(warning, style="warning", indent=2)
    if package.coverage_line:
        click.echo(package.coverage_line)
    if package.routed is not None:
        status(f"wrote {package.routed.destination}", indent=2)
