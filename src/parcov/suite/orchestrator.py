"""Suite orchestration: build-run-collect-merge-route per package.

For every package the orchestrator runs ``worker_count`` workers in
parallel, waits for all of them, aggregates their profiles and routes the
merged profile. Packages are independent: a failure in one is recorded in
its PackageRunResult and does not stop the others.
"""

from __future__ import annotations

import asyncio
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import structlog

from parcov.config.constants import TEMP_PREFIX
from parcov.config.models import ParcovConfig
from parcov.core.errors import ParcovError
from parcov.core.logging import set_run_id
from parcov.coverage.aggregate import AggregateResult, CoverageAggregator
from parcov.coverage.report import format_coverage_line
from parcov.routing import OutputPlacement, PackageCoverageRouter, RoutedProfile
from parcov.suite.discovery import PackageTarget, discover_packages
from parcov.suite.engine import CommandWorkerEngine, WorkerEngine, WorkerJob, WorkerRun

log = structlog.get_logger(__name__)

PackageStatus = Literal["passed", "tests_failed", "error"]


@dataclass
class PackageRunResult:
    """Outcome of one package in a suite run."""

    package: PackageTarget
    status: PackageStatus
    aggregate: AggregateResult | None = None
    routed: RoutedProfile | None = None
    error: ParcovError | None = None
    worker_runs: list[WorkerRun] = field(default_factory=list)

    @property
    def coverage_line(self) -> str | None:
        if self.aggregate is None:
            return None
        return format_coverage_line(
            self.aggregate.summary, explicit_scope=self.aggregate.explicit_scope
        )

    @property
    def failed_workers(self) -> list[int]:
        return [r.output.worker_index for r in self.worker_runs if not r.passed]


@dataclass
class SuiteResult:
    """Outcome of a whole session."""

    run_id: str
    packages: list[PackageRunResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return all(p.status == "passed" for p in self.packages)

    @property
    def failed(self) -> list[PackageRunResult]:
        return [p for p in self.packages if p.status != "passed"]

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class SuiteOrchestrator:
    """Runs a suite over one or more packages with coverage aggregation."""

    def __init__(
        self,
        config: ParcovConfig,
        *,
        engine: WorkerEngine | None = None,
        aggregator: CoverageAggregator | None = None,
    ) -> None:
        self._config = config
        self._engine = engine or CommandWorkerEngine(
            config.suite.command, timeout_sec=config.suite.worker_timeout_sec
        )
        self._aggregator = aggregator or CoverageAggregator()

    def discover(self, root: Path) -> list[PackageTarget]:
        return discover_packages(
            root,
            recursive=self._config.suite.recursive,
            test_file_glob=self._config.suite.test_file_glob,
        )

    async def run(self, root: Path) -> SuiteResult:
        """Run every package under ``root``.

        Returns:
            SuiteResult with one entry per package, in discovery order.
        """
        run_id = set_run_id()
        start_time = time.time()
        root = root.resolve()
        packages = self.discover(root)

        log.info("suite.start", root=str(root), packages=len(packages))

        router = PackageCoverageRouter(p.rel_path for p in packages)
        sem = asyncio.Semaphore(self._config.suite.package_concurrency)

        async def run_one(package: PackageTarget) -> PackageRunResult:
            async with sem:
                return await self._run_package(root, package, router)

        results = await asyncio.gather(*(run_one(p) for p in packages))

        suite = SuiteResult(
            run_id=run_id,
            packages=list(results),
            duration_seconds=time.time() - start_time,
        )
        log.info(
            "suite.done",
            packages=len(suite.packages),
            failed=len(suite.failed),
            duration=round(suite.duration_seconds, 2),
        )
        return suite

    async def _run_package(
        self, root: Path, package: PackageTarget, router: PackageCoverageRouter
    ) -> PackageRunResult:
        coverage = self._config.coverage
        worker_count = coverage.worker_count
        scope = tuple(coverage.scope)

        with tempfile.TemporaryDirectory(prefix=TEMP_PREFIX) as work_dir:
            jobs = [
                WorkerJob(
                    package=package,
                    worker_index=i,
                    worker_count=worker_count,
                    profile_path=Path(work_dir) / f"worker-{i}.out",
                    scope=scope,
                )
                for i in range(worker_count)
            ]
            # Barrier: aggregation starts only after every worker has exited
            outcomes = await asyncio.gather(
                *(self._engine.run_worker(job) for job in jobs), return_exceptions=True
            )

        runs: list[WorkerRun] = []
        for outcome in outcomes:
            if isinstance(outcome, ParcovError):
                log.error(
                    "package.worker_failed", package=package.package_id, error=outcome.error_name
                )
                return PackageRunResult(package=package, status="error", error=outcome)
            if isinstance(outcome, BaseException):
                raise outcome
            runs.append(outcome)

        status: PackageStatus = "passed" if all(r.passed for r in runs) else "tests_failed"
        result = PackageRunResult(package=package, status=status, worker_runs=runs)
        if not coverage.enabled:
            return result

        try:
            result.aggregate = self._aggregator.aggregate(
                [r.output for r in runs], scope, package_id=package.package_id
            )
            placement = OutputPlacement(
                source_package_dir=package.directory,
                requested_file_name=coverage.output_file_name,
                requested_output_dir=root / coverage.output_dir if coverage.output_dir else None,
                append_if_exists=coverage.append_if_exists,
                package_path=package.rel_path,
            )
            result.routed = await asyncio.to_thread(
                router.route, result.aggregate.render(), placement
            )
        except ParcovError as e:
            log.error(
                "package.coverage_failed",
                package=package.package_id,
                error=e.error_name,
                message=e.message,
            )
            result.status = "error"
            result.error = e
            return result

        log.info(
            "package.done",
            package=package.package_id,
            status=result.status,
            percent=result.aggregate.summary.percent_text,
            destination=str(result.routed.destination),
        )
        return result
