"""Output placement rules for per-package coverage profiles.

Rules, in priority order:

1. ``output_dir`` set and different from the package directory: the profile
   goes into ``output_dir`` (created if missing). With a custom name that is
   shared by the session (single package, or append mode) the custom name is
   used as is; otherwise the name is derived from the package. Without a
   custom name the profile is first written next to the package and then
   moved.
2. Custom name: written in the package directory, overwriting.
3. Default: ``<package-dir-name>.coverprofile`` in the package directory.

Rules 2 and 3 follow the session's append setting when the package directory
is itself the output directory (the suite root of a recursive run).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from parcov.config.constants import DEFAULT_PROFILE_SUFFIX, PACKAGE_NAME_SEPARATOR


class PlacementRule(Enum):
    """Which placement rule decided the destination."""

    OUTPUT_DIR = "output_dir"
    CUSTOM_NAME = "custom_name"
    DEFAULT = "default"


@dataclass(frozen=True, slots=True)
class OutputPlacement:
    """Where a package run asked its profile to go.

    ``package_path`` is the package directory relative to the suite root
    (posix separators); it disambiguates same-named packages.
    """

    source_package_dir: Path
    requested_file_name: str | None = None
    requested_output_dir: Path | None = None
    append_if_exists: bool = False
    package_path: str = ""


@dataclass(frozen=True, slots=True)
class ResolvedPlacement:
    """Destination decided for one profile."""

    destination: Path
    rule: PlacementRule
    append: bool = False
    # Set for move semantics: where the profile is written before relocation
    natural_location: Path | None = None


class SessionNames:
    """Package names of one session, for collision-free file names."""

    def __init__(self, package_paths: Iterable[str] = ()) -> None:
        self._paths = [_normalize(p) for p in package_paths]
        self._base_counts = Counter(PurePosixPath(p).name for p in self._paths if p)
        self._has_root = "" in self._paths

    @property
    def size(self) -> int:
        return len(self._paths)

    def stem_for(self, placement: OutputPlacement) -> str:
        """File stem for a package: its directory name, or its path if that collides.

        The suite root has no relative path to fall back on, so it always keeps
        its directory name and a colliding subpackage takes the path form.
        """
        path = _normalize(placement.package_path)
        package_dir = placement.source_package_dir.resolve()
        if not path:
            return package_dir.name
        parts = PurePosixPath(path).parts
        base = parts[-1]
        collides = self._base_counts[base] > 1
        if not collides and self._has_root and len(parts) < len(package_dir.parts):
            collides = package_dir.parents[len(parts) - 1].name == base
        if collides:
            return path.replace("/", PACKAGE_NAME_SEPARATOR)
        return base


def _normalize(package_path: str) -> str:
    path = PurePosixPath(package_path.replace("\\", "/")).as_posix()
    return "" if path == "." else path.strip("/")


def default_file_name(package_dir: Path) -> str:
    return f"{package_dir.resolve().name}{DEFAULT_PROFILE_SUFFIX}"


def resolve_placement(placement: OutputPlacement, names: SessionNames) -> ResolvedPlacement:
    """Apply the placement rules. Pure: touches nothing on disk except path resolution."""
    package_dir = placement.source_package_dir.resolve()
    output_dir = placement.requested_output_dir
    custom = placement.requested_file_name

    if output_dir is not None and output_dir.resolve() != package_dir:
        output_dir = output_dir.resolve()
        stem = names.stem_for(placement)
        if custom is None:
            return ResolvedPlacement(
                destination=output_dir / f"{stem}{DEFAULT_PROFILE_SUFFIX}",
                rule=PlacementRule.OUTPUT_DIR,
                append=placement.append_if_exists,
                natural_location=package_dir / default_file_name(package_dir),
            )
        if names.size <= 1 or placement.append_if_exists:
            name = custom
        else:
            name = f"{stem}{PACKAGE_NAME_SEPARATOR}{custom}"
        return ResolvedPlacement(
            destination=output_dir / name,
            rule=PlacementRule.OUTPUT_DIR,
            append=placement.append_if_exists,
        )

    # Reached with an output dir only when it is this package's own directory
    append = output_dir is not None and placement.append_if_exists
    if custom is not None:
        return ResolvedPlacement(
            destination=package_dir / custom, rule=PlacementRule.CUSTOM_NAME, append=append
        )

    return ResolvedPlacement(
        destination=package_dir / default_file_name(package_dir),
        rule=PlacementRule.DEFAULT,
        append=append,
    )
