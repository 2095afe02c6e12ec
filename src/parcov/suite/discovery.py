"""Package discovery for suite runs.

A package is a directory holding at least one file that matches the test
file glob. In recursive mode every such directory below the root is a
package; hidden, ``_``-prefixed and vendored directories are skipped.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path

from parcov.config.constants import SKIPPED_DIR_NAMES


@dataclass(frozen=True, slots=True)
class PackageTarget:
    """One package to build, run and measure."""

    directory: Path  # absolute
    rel_path: str  # posix path relative to the suite root, "" for the root
    package_id: str

    @property
    def name(self) -> str:
        return self.directory.name


def _is_skipped(name: str) -> bool:
    return name.startswith((".", "_")) or name in SKIPPED_DIR_NAMES


def _has_tests(directory: Path, test_file_glob: str) -> bool:
    try:
        return any(
            entry.is_file() and fnmatch(entry.name, test_file_glob)
            for entry in os.scandir(directory)
        )
    except OSError:
        return False


def make_target(root: Path, directory: Path) -> PackageTarget:
    root = root.resolve()
    directory = directory.resolve()
    rel = directory.relative_to(root).as_posix()
    rel = "" if rel == "." else rel
    package_id = f"{root.name}/{rel}" if rel else root.name
    return PackageTarget(directory=directory, rel_path=rel, package_id=package_id)


def discover_packages(
    root: Path, *, recursive: bool = False, test_file_glob: str = "*_test.go"
) -> list[PackageTarget]:
    """Find the packages to run under ``root``.

    Args:
        root: Suite root directory.
        recursive: Walk subdirectories; otherwise ``root`` is the only package.
        test_file_glob: Pattern identifying test files.

    Returns:
        Packages sorted by relative path (root first).
    """
    root = root.resolve()
    if not recursive:
        return [make_target(root, root)]

    found: list[PackageTarget] = []
    for dirpath, dirnames, _filenames in os.walk(root):
        # Prune in place so os.walk does not descend
        dirnames[:] = sorted(d for d in dirnames if not _is_skipped(d))
        directory = Path(dirpath)
        if _has_tests(directory, test_file_glob):
            found.append(make_target(root, directory))

    return sorted(found, key=lambda t: t.rel_path)
