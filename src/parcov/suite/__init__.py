"""Suite orchestration: package discovery, worker engines, per-package runs."""

from parcov.suite.discovery import PackageTarget, discover_packages
from parcov.suite.engine import CommandWorkerEngine, WorkerEngine, WorkerJob, WorkerRun
from parcov.suite.orchestrator import PackageRunResult, SuiteOrchestrator, SuiteResult

__all__ = [
    "CommandWorkerEngine",
    "PackageRunResult",
    "PackageTarget",
    "SuiteOrchestrator",
    "SuiteResult",
    "WorkerEngine",
    "WorkerJob",
    "WorkerRun",
    "discover_packages",
]
