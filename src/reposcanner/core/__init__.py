"""Core module exports."""

from reposcanner.core.errors import (
    ConfigError,
    ErrorCode,
    InternalError,
    LockTimeoutError,
    RepoScannerError,
    ScanError,
    WatchError,
)
from reposcanner.core.logging import (
    clear_update_id,
    configure_logging,
    get_update_id,
    set_update_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "LockTimeoutError",
    "RepoScannerError",
    "ScanError",
    "WatchError",
    # Logging
    "clear_update_id",
    "configure_logging",
    "get_update_id",
    "set_update_id",
]
