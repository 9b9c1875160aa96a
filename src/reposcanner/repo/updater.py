"""Coordinated update of one repository directory.

Each update holds the directory's lock for its whole duration and runs the
indexer incrementally. If that fails, every metadata subtree is removed and
the indexer runs again; with nothing left to update in place, the second run
is a full rebuild. Failures are logged and never raised: previously valid
metadata stays servable, and a failed rebuild is retried on the next trigger.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from reposcanner.core.errors import LockTimeoutError
from reposcanner.core.logging import clear_update_id, set_update_id
from reposcanner.repo.locking import NamedMutex
from reposcanner.repo.models import RepoContext, UpdateOutcome

logger = structlog.get_logger()


class Indexer(Protocol):
    async def run(self, directory: Path) -> bool: ...


@dataclass
class UpdateCoordinator:
    """Lock, update, fall back to a rebuild, unlock."""

    context: RepoContext
    locks: NamedMutex
    indexer: Indexer

    async def update(self, directory: Path) -> UpdateOutcome:
        set_update_id()
        try:
            return await self._update_locked(directory)
        finally:
            clear_update_id()

    async def run_startup(self, directory: Path) -> UpdateOutcome:
        """Startup variant: clear a dead lock left by a previous run first."""
        self.locks.clear_stale(directory)
        return await self.update(directory)

    async def _update_locked(self, directory: Path) -> UpdateOutcome:
        if not directory.is_dir():
            logger.info("directory_gone", path=str(directory))
            return UpdateOutcome.SKIPPED

        try:
            async with self.locks.hold(directory):
                if await self.indexer.run(directory):
                    return UpdateOutcome.UPDATED

                logger.info("regenerating_repository", path=str(directory))
                self.remove_metadata(directory)

                if await self.indexer.run(directory):
                    logger.info("repository_rebuilt", path=str(directory))
                    return UpdateOutcome.REBUILT

                logger.error("repository_rebuild_failed", path=str(directory))
                return UpdateOutcome.FAILED
        except LockTimeoutError as e:
            logger.error("lock_timeout", path=str(directory), error=e.message)
            return UpdateOutcome.LOCK_TIMEOUT

    def remove_metadata(self, directory: Path) -> None:
        for meta in self.context.metadata_paths(directory):
            if not meta.exists() and not meta.is_symlink():
                continue
            try:
                if meta.is_dir() and not meta.is_symlink():
                    shutil.rmtree(meta)
                else:
                    meta.unlink()
                logger.debug("metadata_removed", path=str(meta))
            except OSError as e:
                logger.warning("metadata_remove_failed", path=str(meta), error=str(e))
