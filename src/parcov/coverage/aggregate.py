"""Aggregation of per-worker profiles into one package-run result.

The aggregator runs once all workers of a package have exited:

1. Parse every worker output. Empty outputs (worker died before writing a
   profile) and malformed ones are dropped with a warning.
2. Split each profile by owning package and merge (see merge.py).
3. Summarize per package and over the requested scope.
4. Render the merged profiles back to the raw format.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from parcov.core.errors import MalformedProfile, NoProfilesProduced
from parcov.coverage.merge import merge_mode, merge_profiles
from parcov.coverage.models import CoverageProfile, CoverageSummary, WorkerOutput
from parcov.coverage.parser import ProfileParser
from parcov.coverage.serialize import serialize_profiles

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DiscardedWorker:
    """A worker output excluded from the aggregate, with the reason."""

    source: str
    reason: str


@dataclass(slots=True)
class AggregateResult:
    """Merged profiles of one package run plus their summaries."""

    mode: str
    profiles: dict[str, CoverageProfile]  # package_id -> merged profile
    package_summaries: dict[str, CoverageSummary]
    summary: CoverageSummary
    explicit_scope: bool = False
    workers_used: int = 0
    discarded: list[DiscardedWorker] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [f"{d.source}: {d.reason}" for d in self.discarded]

    def render(self) -> str:
        """Serialize all merged profiles as one profile file."""
        return serialize_profiles(self.profiles.values(), mode=self.mode)


class CoverageAggregator:
    """Combines worker outputs into merged profiles and a coverage summary."""

    def __init__(self, parser: ProfileParser | None = None) -> None:
        self._parser = parser or ProfileParser()

    def aggregate(
        self,
        worker_outputs: Sequence[WorkerOutput | str],
        scope: Iterable[str] | None = None,
        *,
        package_id: str = "",
    ) -> AggregateResult:
        """Aggregate raw worker outputs.

        Args:
            worker_outputs: One output per worker; bare strings are attributed
                to ``package_id``.
            scope: Package IDs reported as one unit. None or empty means every
                package found in the data.
            package_id: Package under test, used for bare strings and messages.

        Returns:
            AggregateResult with merged profiles and summaries.

        Raises:
            NoProfilesProduced: No worker output was usable.
            InconsistentBlockDefinition: Workers ran different builds.
        """
        outputs = [
            o if isinstance(o, WorkerOutput) else WorkerOutput(package_id, o, i)
            for i, o in enumerate(worker_outputs)
        ]

        parsed: list[CoverageProfile] = []
        split: list[CoverageProfile] = []
        discarded: list[DiscardedWorker] = []
        for output in outputs:
            profile, reason = self._parse_worker(output)
            if profile is None:
                discarded.append(DiscardedWorker(source=output.source, reason=reason))
                log.warning("aggregate.worker_discarded", source=output.source, reason=reason)
                continue
            parsed.append(profile)
            split.extend(profile.split_by_package().values())

        if not parsed:
            raise NoProfilesProduced.for_package(
                package_id or _first_package(outputs), len(discarded)
            )

        mode = merge_mode(parsed)
        merged = merge_profiles(split)

        package_summaries = {pid: p.summary() for pid, p in merged.items()}
        scope_ids = _dedupe(scope or ())
        explicit = bool(scope_ids)
        if not explicit:
            scope_ids = list(merged)

        summary = CoverageSummary.combine(
            (package_summaries[pid] for pid in scope_ids if pid in package_summaries),
            packages=scope_ids,
        )

        log.debug(
            "aggregate.done",
            package=package_id,
            workers=len(outputs),
            discarded=len(discarded),
            packages=len(merged),
            percent=summary.percent_text,
        )

        return AggregateResult(
            mode=mode,
            profiles=merged,
            package_summaries=package_summaries,
            summary=summary,
            explicit_scope=explicit,
            workers_used=len(outputs) - len(discarded),
            discarded=discarded,
        )

    def _parse_worker(self, output: WorkerOutput) -> tuple[CoverageProfile | None, str]:
        if not output.profile_text.strip():
            return None, "empty profile (worker exited before writing coverage)"
        try:
            profile = self._parser.parse_text(
                output.profile_text, package_id=output.package_id, source=output.source
            )
        except MalformedProfile as e:
            return None, e.message
        if not profile.blocks:
            return None, "header-only profile (no blocks recorded)"
        return profile, ""


def _dedupe(package_ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(p for p in package_ids if p))


def _first_package(outputs: Sequence[WorkerOutput]) -> str:
    return next((o.package_id for o in outputs if o.package_id), "<unknown>")


def aggregate(
    worker_outputs: Sequence[WorkerOutput | str],
    scope: Iterable[str] | None = None,
    *,
    package_id: str = "",
) -> AggregateResult:
    """Convenience wrapper around CoverageAggregator().aggregate()."""
    return CoverageAggregator().aggregate(worker_outputs, scope, package_id=package_id)
