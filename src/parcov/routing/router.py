"""Routing of merged package profiles to their destination files.

All writes go through a temporary file in the destination directory and
``os.replace``, so a failed package never leaves a partial profile behind.
Writes into one destination directory are serialized with a per-directory
lock; packages processed concurrently may append to the same file.

Append merges: the existing file is parsed and merged block by block with
the new profile, never concatenated.
"""

from __future__ import annotations

import contextlib
import errno
import os
import shutil
import tempfile
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from parcov.config.constants import TEMP_PREFIX
from parcov.core.errors import (
    InconsistentBlockDefinition,
    MalformedProfile,
    OutputPlacementError,
)
from parcov.coverage.merge import merge_profiles
from parcov.coverage.parser import parse_profile, parse_profile_file
from parcov.coverage.serialize import serialize_profiles
from parcov.routing.placement import (
    OutputPlacement,
    PlacementRule,
    ResolvedPlacement,
    SessionNames,
    resolve_placement,
)

log = structlog.get_logger(__name__)

_locks_guard = threading.Lock()
_dir_locks: dict[Path, threading.Lock] = {}


def _lock_for(directory: Path) -> threading.Lock:
    with _locks_guard:
        lock = _dir_locks.get(directory)
        if lock is None:
            lock = _dir_locks[directory] = threading.Lock()
        return lock


@dataclass(frozen=True, slots=True)
class RoutedProfile:
    """Where a profile ended up."""

    destination: Path
    rule: PlacementRule
    appended: bool = False
    moved_from: Path | None = None


class PackageCoverageRouter:
    """Places serialized package profiles according to OutputPlacement rules.

    Args:
        session_packages: Relative paths of every package in the session, used
            to detect name collisions in a shared output directory.
    """

    def __init__(self, session_packages: Iterable[str] = ()) -> None:
        self._names = SessionNames(session_packages)

    def resolve(self, placement: OutputPlacement) -> ResolvedPlacement:
        return resolve_placement(placement, self._names)

    def route(self, content: str, placement: OutputPlacement) -> RoutedProfile:
        """Write one package's serialized profile to its destination.

        Raises:
            OutputPlacementError: Directory creation or write failed, or an
                existing profile to append to is unreadable or comes from
                another build.
        """
        resolved = self.resolve(placement)
        destination = resolved.destination

        if resolved.rule is PlacementRule.OUTPUT_DIR:
            _ensure_dir(destination.parent)

        with _lock_for(destination.parent):
            if (natural := resolved.natural_location) is not None:
                return self._move(content, resolved, natural)

            appended = False
            if resolved.append and destination.exists():
                content = _merge_with_existing(destination, content)
                appended = True

            _atomic_write(destination, content)

        log.info(
            "router.placed",
            destination=str(destination),
            rule=resolved.rule.value,
            appended=appended,
        )
        return RoutedProfile(destination=destination, rule=resolved.rule, appended=appended)

    def _move(self, content: str, resolved: ResolvedPlacement, natural: Path) -> RoutedProfile:
        # Produced in its natural location first, then relocated
        destination = resolved.destination

        with _lock_for(natural.parent):
            _atomic_write(natural, content)

        try:
            if resolved.append and destination.exists():
                _atomic_write(destination, _merge_with_existing(destination, content))
                natural.unlink()
                appended = True
            else:
                _replace(natural, destination)
                appended = False
        except Exception:
            natural.unlink(missing_ok=True)
            raise

        log.info(
            "router.moved",
            source=str(natural),
            destination=str(destination),
            appended=appended,
        )
        return RoutedProfile(
            destination=destination,
            rule=resolved.rule,
            appended=appended,
            moved_from=natural,
        )


def _ensure_dir(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputPlacementError.mkdir_failed(str(directory), e.strerror or str(e)) from e


def _merge_with_existing(destination: Path, content: str) -> str:
    try:
        existing = parse_profile_file(destination)
    except MalformedProfile as e:
        raise OutputPlacementError.write_failed(
            str(destination), f"cannot append to malformed profile ({e.message})"
        ) from e
    incoming = parse_profile(content, source=f"<new profile for {destination.name}>")
    try:
        merged = merge_profiles([existing, incoming])
    except InconsistentBlockDefinition as e:
        raise OutputPlacementError.write_failed(
            str(destination), f"cannot append a profile from another build ({e.message})"
        ) from e
    return serialize_profiles(merged.values(), mode=incoming.mode)


def _atomic_write(path: Path, content: str) -> None:
    """Write to a temp file in the same directory, then atomically replace."""
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            dir=path.parent,
            prefix=TEMP_PREFIX,
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(content)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
        raise OutputPlacementError.write_failed(str(path), e.strerror or str(e)) from e


def _replace(source: Path, destination: Path) -> None:
    try:
        os.replace(source, destination)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise OutputPlacementError.write_failed(str(destination), e.strerror or str(e)) from e
        # Different filesystem: copy next to the destination, then swap in
        _atomic_write(destination, source.read_text())
        source.unlink()
