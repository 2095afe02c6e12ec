"""Core module exports."""

from parcov.core.errors import (
    ConfigError,
    ErrorCode,
    InconsistentBlockDefinition,
    MalformedProfile,
    NoProfilesProduced,
    OutputPlacementError,
    ParcovError,
    WorkerError,
)
from parcov.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from parcov.core.progress import pluralize, status

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "InconsistentBlockDefinition",
    "MalformedProfile",
    "NoProfilesProduced",
    "OutputPlacementError",
    "ParcovError",
    "WorkerError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Output
    "pluralize",
    "status",
]
