"""Worker engines: how one worker process of a package is run.

The orchestrator only needs ``run_worker(job) -> WorkerRun``. The bundled
CommandWorkerEngine runs a command template per worker; each worker learns
its shard from the environment and writes its profile to ``{profile}``.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from parcov.config.constants import ENV_PROFILE, ENV_WORKER_COUNT, ENV_WORKER_INDEX
from parcov.core.errors import WorkerError
from parcov.coverage.models import WorkerOutput
from parcov.suite.discovery import PackageTarget

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WorkerJob:
    """One worker's share of a package run."""

    package: PackageTarget
    worker_index: int
    worker_count: int
    profile_path: Path
    scope: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class WorkerRun:
    """Outcome of one worker process."""

    output: WorkerOutput
    exit_code: int | None = None
    timed_out: bool = False
    stdout: str = ""
    stderr: str = ""

    @property
    def passed(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class WorkerEngine(Protocol):
    """Runs one worker and hands back its raw profile."""

    async def run_worker(self, job: WorkerJob) -> WorkerRun: ...


class CommandWorkerEngine:
    """Runs a command template per worker in the package directory.

    Placeholders: ``{package}``, ``{package_dir}``, ``{profile}``, ``{worker}``,
    ``{workers}``, ``{coverpkg}`` (comma-joined scope).
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        timeout_sec: float = 600.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("Worker command must not be empty")
        self._command = list(command)
        self._timeout_sec = timeout_sec
        self._env = dict(env) if env is not None else None

    def build_command(self, job: WorkerJob) -> list[str]:
        values = {
            "package": job.package.package_id,
            "package_dir": str(job.package.directory),
            "profile": str(job.profile_path),
            "worker": str(job.worker_index),
            "workers": str(job.worker_count),
            "coverpkg": ",".join(job.scope),
        }
        try:
            return [arg.format_map(values) for arg in self._command]
        except (KeyError, IndexError, ValueError) as e:
            raise WorkerError.launch_failed(self._command, f"bad placeholder: {e}") from e

    def build_env(self, job: WorkerJob) -> dict[str, str]:
        env = dict(os.environ if self._env is None else self._env)
        env[ENV_WORKER_INDEX] = str(job.worker_index)
        env[ENV_WORKER_COUNT] = str(job.worker_count)
        env[ENV_PROFILE] = str(job.profile_path)
        return env

    async def run_worker(self, job: WorkerJob) -> WorkerRun:
        """Run one worker and read the profile it wrote.

        A worker that crashed, timed out or wrote nothing yields an empty
        profile; the aggregator decides what that means.

        Raises:
            WorkerError: The command could not be started at all.
        """
        cmd = self.build_command(job)
        if shutil.which(cmd[0]) is None:
            raise WorkerError.launch_failed(cmd, "executable not found")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=job.package.directory,
                env=self.build_env(job),
            )
        except OSError as e:
            raise WorkerError.launch_failed(cmd, str(e)) from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout_sec
            )
        except TimeoutError:
            proc.kill()
            await proc.wait()
            log.warning(
                "worker.timeout",
                package=job.package.package_id,
                worker=job.worker_index,
                timeout_sec=self._timeout_sec,
            )
            return WorkerRun(
                output=WorkerOutput(job.package.package_id, "", job.worker_index),
                timed_out=True,
            )

        log.debug(
            "worker.exited",
            package=job.package.package_id,
            worker=job.worker_index,
            exit_code=proc.returncode,
        )
        return WorkerRun(
            output=WorkerOutput(
                job.package.package_id, _read_profile(job.profile_path), job.worker_index
            ),
            exit_code=proc.returncode,
            stdout=stdout_bytes.decode(errors="replace"),
            stderr=stderr_bytes.decode(errors="replace"),
        )


def _read_profile(path: Path) -> str:
    try:
        return path.read_text(errors="replace")
    except FileNotFoundError:
        return ""
    except OSError as e:
        log.warning("worker.profile_unreadable", path=str(path), error=str(e))
        return ""
