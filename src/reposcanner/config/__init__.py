"""Config module exports."""

from reposcanner.config.loader import load_config
from reposcanner.config.models import (
    IndexerConfig,
    LockConfig,
    LoggingConfig,
    RepoConfig,
    RepoScannerConfig,
    WatchConfig,
)

__all__ = [
    "load_config",
    "IndexerConfig",
    "LockConfig",
    "LoggingConfig",
    "RepoConfig",
    "RepoScannerConfig",
    "WatchConfig",
]
