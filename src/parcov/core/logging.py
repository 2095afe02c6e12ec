"""Structured logging for parcov runs.

Every event carries the run ID of the orchestrator session that emitted it,
so interleaved package events of one recursive run can be told apart. Each
configured output (stderr, stdout or a file) gets its own level and renderer.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from parcov.config.models import LoggingConfig, LogOutputConfig

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)

_log_file_path: Path | None = None


def get_run_id() -> str | None:
    return _run_id.get()


def set_run_id(run_id: str | None = None) -> str:
    """Start a session: use ``run_id`` or a fresh 12-char ID, and return it."""
    rid = run_id or uuid4().hex[:12]
    _run_id.set(rid)
    return rid


def clear_run_id() -> None:
    _run_id.set(None)


def get_log_file_path() -> Path | None:
    """First file output of the active configuration; the CLI points at it on failure."""
    return _log_file_path


def _stamp_run_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if (rid := _run_id.get()) is not None:
        event_dict.setdefault("run_id", rid)
    return event_dict


_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    _stamp_run_id,  # type: ignore[list-item]
]


def configure_logging(config: LoggingConfig | None = None, *, level: str = "WARNING") -> None:
    """Route structlog events through one stdlib handler per configured output.

    Without ``config``, a single console output on stderr at ``level`` is
    used. The CLI group does this before any config file has been read.
    """
    global _log_file_path
    from parcov.config.models import LoggingConfig

    if config is None:
        config = LoggingConfig(level=level)
    root_level = logging.getLevelNamesMapping()[config.level]

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfigured once the repo config is known
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    # asyncio logs every slow subprocess callback at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _log_file_path = None
    for output in config.outputs:
        handler = _handler_for(output)
        handler.setLevel(output.level or config.level)
        root.addHandler(handler)
        if _log_file_path is None and isinstance(handler, logging.FileHandler):
            _log_file_path = Path(output.destination)


def _handler_for(output: LogOutputConfig) -> logging.Handler:
    handler: logging.Handler
    if output.destination in ("stderr", "stdout"):
        stream = getattr(sys, output.destination)
        handler = logging.StreamHandler(stream)
        colors = stream.isatty()
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        colors = False

    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_PRE_CHAIN)
    )
    return handler


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
