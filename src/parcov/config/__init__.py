"""Config module exports."""

from parcov.config.loader import ParcovSettings, load_config
from parcov.config.models import (
    CoverageConfig,
    LoggingConfig,
    LogOutputConfig,
    ParcovConfig,
    SuiteConfig,
)

__all__ = [
    "load_config",
    "CoverageConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ParcovConfig",
    "ParcovSettings",
    "SuiteConfig",
]
