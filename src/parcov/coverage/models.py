"""Statement coverage data model.

Block-centric: a profile is a flat list of instrumented source regions, each
with a fixed statement count and a hit counter. Everything else (per-file and
per-package figures) is derived from the blocks.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from dataclasses import dataclass, field

BlockKey = tuple[str, int, int, int, int]  # file, start line/col, end line/col


@dataclass(frozen=True, slots=True)
class BlockRecord:
    """One instrumented block: ``file:startLine.startCol,endLine.endCol stmts hits``."""

    file: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    num_statements: int
    hit_count: int

    @property
    def key(self) -> BlockKey:
        """Merge key. Stable across runs of the same build."""
        return (self.file, self.start_line, self.start_col, self.end_line, self.end_col)

    @property
    def covered(self) -> bool:
        return self.hit_count > 0

    @property
    def package_id(self) -> str:
        """Directory part of the file path (the Go import path for Go profiles)."""
        return posixpath.dirname(self.file)

    def location(self) -> str:
        return f"{self.file}:{self.start_line}.{self.start_col},{self.end_line}.{self.end_col}"

    def to_line(self) -> str:
        return f"{self.location()} {self.num_statements} {self.hit_count}"


@dataclass(slots=True)
class CoverageProfile:
    """Statement coverage of one package from one or more runs."""

    package_id: str
    mode: str
    blocks: list[BlockRecord] = field(default_factory=list)

    @property
    def statements_total(self) -> int:
        return sum(b.num_statements for b in self.blocks)

    @property
    def statements_covered(self) -> int:
        return sum(b.num_statements for b in self.blocks if b.covered)

    @property
    def files(self) -> list[str]:
        """Sorted distinct file paths."""
        return sorted({b.file for b in self.blocks})

    def split_by_package(self) -> dict[str, CoverageProfile]:
        """Regroup blocks by the package owning their file.

        Blocks whose file has no directory part stay with this profile's package.
        """
        split: dict[str, CoverageProfile] = {}
        for block in self.blocks:
            owner = block.package_id or self.package_id
            if owner not in split:
                split[owner] = CoverageProfile(package_id=owner, mode=self.mode)
            split[owner].blocks.append(block)
        return split

    def summary(self) -> CoverageSummary:
        return CoverageSummary(
            statements_total=self.statements_total,
            statements_covered=self.statements_covered,
            packages=(self.package_id,),
        )


@dataclass(frozen=True, slots=True)
class CoverageSummary:
    """Aggregate statement coverage for one or more packages.

    Immutable snapshot; ``packages`` names what the figure covers, in the
    order the caller listed them.
    """

    statements_total: int
    statements_covered: int
    packages: tuple[str, ...] = ()

    @property
    def has_statements(self) -> bool:
        return self.statements_total > 0

    @property
    def rate(self) -> float:
        """Fraction of statements covered (0.0 to 1.0)."""
        if not self.statements_total:
            return 0.0
        return self.statements_covered / self.statements_total

    @property
    def percent(self) -> float:
        return 100.0 * self.rate

    @property
    def percent_text(self) -> str:
        """Percentage with one decimal place, e.g. ``"71.4"``."""
        return f"{self.percent:.1f}"

    @classmethod
    def combine(
        cls, summaries: Iterable[CoverageSummary], packages: Iterable[str] = ()
    ) -> CoverageSummary:
        """Sum covered/total over several summaries (not an average of rates)."""
        items = list(summaries)
        return cls(
            statements_total=sum(s.statements_total for s in items),
            statements_covered=sum(s.statements_covered for s in items),
            packages=tuple(packages),
        )


@dataclass(frozen=True, slots=True)
class WorkerOutput:
    """What one worker hands back: its package and raw profile text.

    ``profile_text`` is empty when the worker crashed before writing a profile.
    """

    package_id: str
    profile_text: str
    worker_index: int = 0

    @property
    def source(self) -> str:
        """Human-readable origin for log lines and error messages."""
        return f"{self.package_id or '<unknown>'}[worker {self.worker_index}]"
