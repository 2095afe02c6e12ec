"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (PARCOV__SECTION__KEY)
3. Repo YAML (.parcov/config.yaml)
4. Global YAML (~/.config/parcov/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    PARCOV__<SECTION>__<KEY>=<VALUE>

Examples:
    PARCOV__LOGGING__LEVEL=DEBUG
    PARCOV__COVERAGE__WORKER_COUNT=4
    PARCOV__COVERAGE__OUTPUT_DIR=./profiles
    PARCOV__SUITE__RECURSIVE=true
"""

from pathlib import Path, PurePath
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from parcov.config.constants import DEFAULT_TEST_FILE_GLOB

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        PARCOV__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. INFO reports every placed profile; DEBUG every worker.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class CoverageConfig(BaseModel):
    """Coverage collection and placement.

    Env vars:
        PARCOV__COVERAGE__ENABLED: Collect coverage at all
        PARCOV__COVERAGE__WORKER_COUNT: Parallel workers per package
        PARCOV__COVERAGE__OUTPUT_FILE_NAME: Custom profile file name
        PARCOV__COVERAGE__OUTPUT_DIR: Shared directory for all profiles
        PARCOV__COVERAGE__APPEND: Merge into an existing profile in OUTPUT_DIR
    """

    enabled: bool = Field(
        default=False,
        description="Collect coverage. Implied by setting scope or output_file_name on the CLI.",
    )
    worker_count: int = Field(
        default=1,
        description="Worker processes per package. The merged profile does not depend on it.",
    )
    scope: list[str] = Field(
        default_factory=list,
        description="Package IDs reported as one unit (cross-package coverage). "
        "Empty means every package present in the profile data.",
    )
    output_file_name: str | None = Field(
        default=None,
        description="Custom profile file name. Default: <package>.coverprofile.",
    )
    output_dir: str | None = Field(
        default=None,
        description="Directory receiving every package's profile. Created if missing.",
    )
    append: bool | None = Field(
        default=None,
        description="Merge into an existing profile of the same name in output_dir. "
        "Default: enabled when both output_dir and output_file_name are set.",
    )

    @field_validator("worker_count")
    @classmethod
    def validate_worker_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"worker_count must be >= 1, got {v}")
        return v

    @field_validator("scope")
    @classmethod
    def validate_scope(cls, v: list[str]) -> list[str]:
        # Order is kept for the report line; duplicates and blanks dropped
        seen: dict[str, None] = {}
        for package_id in v:
            package_id = package_id.strip()
            if package_id:
                seen.setdefault(package_id, None)
        return list(seen)

    @field_validator("output_file_name")
    @classmethod
    def validate_output_file_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v or PurePath(v).name != v or v in (".", ".."):
            raise ValueError(f"output_file_name must be a bare file name, got {v!r}")
        return v

    @property
    def append_if_exists(self) -> bool:
        if self.append is not None:
            return self.append
        return self.output_dir is not None and self.output_file_name is not None


class SuiteConfig(BaseModel):
    """Suite orchestration.

    Env vars:
        PARCOV__SUITE__RECURSIVE: Walk subdirectories for packages
        PARCOV__SUITE__PACKAGE_CONCURRENCY: Packages processed at once
        PARCOV__SUITE__WORKER_TIMEOUT_SEC: Per-worker timeout
    """

    recursive: bool = Field(
        default=False,
        description="Run every package below the given root.",
    )
    test_file_glob: str = Field(
        default=DEFAULT_TEST_FILE_GLOB,
        description="A directory holding a matching file is a package.",
    )
    command: list[str] = Field(
        default_factory=lambda: [
            "go",
            "test",
            "-covermode=count",
            "-coverprofile={profile}",
            ".",
        ],
        description="Worker command template. Placeholders: {package}, {package_dir}, "
        "{profile}, {worker}, {workers}, {coverpkg}.",
    )
    package_concurrency: int = Field(
        default=1,
        description="Packages built, run and merged concurrently.",
    )
    worker_timeout_sec: float = Field(
        default=600.0,
        description="Per-worker timeout. A timed-out worker contributes no profile.",
    )

    @field_validator("package_concurrency")
    @classmethod
    def validate_package_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"package_concurrency must be >= 1, got {v}")
        return v

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("command must not be empty")
        return v


class ParcovConfig(BaseModel):
    """Root configuration for parcov.

    All settings can be configured via:
    1. Environment variables: PARCOV__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
    suite: SuiteConfig = Field(default_factory=SuiteConfig)
