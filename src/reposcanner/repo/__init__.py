"""Repository directory discovery, locking and coordinated updates."""

from reposcanner.repo.indexer import CreaterepoIndexer
from reposcanner.repo.locking import FileLockService, NamedMutex
from reposcanner.repo.models import (
    ChangeEvent,
    ChangeKind,
    LockToken,
    PackageMatcher,
    RepoContext,
    UpdateOutcome,
)
from reposcanner.repo.scanner import find_package_dirs
from reposcanner.repo.updater import UpdateCoordinator

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "CreaterepoIndexer",
    "FileLockService",
    "LockToken",
    "NamedMutex",
    "PackageMatcher",
    "RepoContext",
    "UpdateCoordinator",
    "UpdateOutcome",
    "find_package_dirs",
]
