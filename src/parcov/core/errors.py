"""parcov error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 7xxx: Coverage (profiles, merging, placement, workers)
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Coverage (7xxx)
    MALFORMED_PROFILE = 7001
    INCONSISTENT_BLOCK_DEFINITION = 7002
    NO_PROFILES_PRODUCED = 7003
    OUTPUT_PLACEMENT_ERROR = 7004
    WORKER_ERROR = 7005


@dataclass(frozen=True, slots=True)
class ParcovError(Exception):
    """Base error with structured context for CLI and JSON output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'MALFORMED_PROFILE')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ParcovError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class MalformedProfile(ParcovError):
    """A single worker's profile cannot be decoded."""

    @classmethod
    def missing_mode(cls, source: str) -> "MalformedProfile":
        return cls(
            code=ErrorCode.MALFORMED_PROFILE,
            message=f"Missing mode header in {source}",
            details={"source": source},
        )

    @classmethod
    def unknown_mode(cls, source: str, mode: str) -> "MalformedProfile":
        return cls(
            code=ErrorCode.MALFORMED_PROFILE,
            message=f"Unrecognized coverage mode {mode!r} in {source}",
            details={"source": source, "mode": mode},
        )

    @classmethod
    def bad_record(
        cls, source: str, line_number: int, line: str, reason: str
    ) -> "MalformedProfile":
        return cls(
            code=ErrorCode.MALFORMED_PROFILE,
            message=f"{source}:{line_number}: {reason}: {line!r}",
            details={"source": source, "line_number": line_number, "reason": reason},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "MalformedProfile":
        return cls(
            code=ErrorCode.MALFORMED_PROFILE,
            message=f"Failed to read coverage profile {path}: {reason}",
            details={"source": path, "reason": reason},
        )


class InconsistentBlockDefinition(ParcovError):
    """Profiles from different builds disagree about a block."""

    @classmethod
    def statement_mismatch(
        cls, package_id: str, block_key: str, expected: int, actual: int
    ) -> "InconsistentBlockDefinition":
        return cls(
            code=ErrorCode.INCONSISTENT_BLOCK_DEFINITION,
            message=(
                f"Block {block_key} in {package_id} has {actual} statements, "
                f"expected {expected}; profiles come from different builds"
            ),
            details={
                "package_id": package_id,
                "block": block_key,
                "expected": expected,
                "actual": actual,
            },
        )

    @classmethod
    def mode_mismatch(cls, modes: list[str]) -> "InconsistentBlockDefinition":
        return cls(
            code=ErrorCode.INCONSISTENT_BLOCK_DEFINITION,
            message=f"Cannot merge profiles with different modes: {', '.join(modes)}",
            details={"modes": modes},
        )


class NoProfilesProduced(ParcovError):
    """Every worker output was empty or unparsable."""

    @classmethod
    def for_package(cls, package_id: str, discarded: int) -> "NoProfilesProduced":
        return cls(
            code=ErrorCode.NO_PROFILES_PRODUCED,
            message=f"No usable coverage profiles for {package_id} ({discarded} discarded)",
            details={"package_id": package_id, "discarded": discarded},
        )


class OutputPlacementError(ParcovError):
    """Destination directory creation or profile write failed."""

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "OutputPlacementError":
        return cls(
            code=ErrorCode.OUTPUT_PLACEMENT_ERROR,
            message=f"Failed to write coverage profile {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def mkdir_failed(cls, path: str, reason: str) -> "OutputPlacementError":
        return cls(
            code=ErrorCode.OUTPUT_PLACEMENT_ERROR,
            message=f"Failed to create output directory {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class WorkerError(ParcovError):
    """A worker process could not be launched."""

    @classmethod
    def launch_failed(cls, command: list[str], reason: str) -> "WorkerError":
        return cls(
            code=ErrorCode.WORKER_ERROR,
            message=f"Failed to launch worker {command[0] if command else '?'}: {reason}",
            details={"command": command, "reason": reason},
        )
