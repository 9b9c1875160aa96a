"""reposcanner error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Repository (scan, watch, lock)
- 9xxx: Internal
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

    # Repository (3xxx)
    REPO_ROOT_UNAVAILABLE = 3001
    WATCH_START_FAILED = 3002
    LOCK_TIMEOUT = 3003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class RepoScannerError(Exception):
    """Base error with structured context for logs and CLI output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'REPO_ROOT_UNAVAILABLE')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(RepoScannerError):
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


class ScanError(RepoScannerError):
    """The repository root could not be traversed."""

    @classmethod
    def root_unavailable(cls, root: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.REPO_ROOT_UNAVAILABLE,
            message=f"Cannot scan repository root {root}: {reason}",
            details={"root": root, "reason": reason},
        )


class WatchError(RepoScannerError):
    """The change subscription could not be established."""

    @classmethod
    def start_failed(cls, root: str, reason: str) -> "WatchError":
        return cls(
            code=ErrorCode.WATCH_START_FAILED,
            message=f"Cannot watch {root}: {reason}",
            details={"root": root, "reason": reason},
        )


class LockTimeoutError(RepoScannerError):
    """A directory lock was not obtained within the configured timeout."""

    @classmethod
    def for_path(cls, lock_path: str, timeout: float) -> "LockTimeoutError":
        return cls(
            code=ErrorCode.LOCK_TIMEOUT,
            message=f"Timed out after {timeout}s waiting for {lock_path}",
            retryable=True,
            details={"lock_path": lock_path, "timeout_sec": timeout},
        )


class InternalError(RepoScannerError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
