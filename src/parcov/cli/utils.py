"""CLI utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from parcov.config.loader import load_config
from parcov.config.models import ParcovConfig
from parcov.core.errors import ConfigError
from parcov.core.logging import configure_logging


def split_packages(value: str | None) -> list[str]:
    """Split a ``-coverpkg`` style comma list."""
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


def load_cli_config(
    ctx: click.Context,
    repo_root: Path,
    **overrides: dict[str, Any],
) -> ParcovConfig:
    """Load config with CLI overrides and configure logging from it.

    Raises:
        click.ClickException: On invalid configuration.
    """
    obj = ctx.find_object(dict) or {}
    config_path: Path | None = obj.get("config_path")
    sections = {k: v for k, v in overrides.items() if v}
    try:
        config = load_config(repo_root, config_path=config_path, **sections)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if obj.get("verbose"):
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    return config
