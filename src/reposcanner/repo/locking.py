"""Per-directory mutual exclusion.

NamedMutex is the coordination contract; FileLockService is the backend that
keeps a lock file inside each repository directory. The lock is an OS-level
flock held through filelock, so it excludes other processes as well as other
lock objects for the same path inside this process.

Waiting never blocks the event loop: acquisition is attempted without
blocking and retried after poll_interval.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog
from filelock import FileLock, Timeout

from reposcanner.core.errors import LockTimeoutError
from reposcanner.repo.models import LockToken, RepoContext

logger = structlog.get_logger()


class NamedMutex(Protocol):
    """Exclusive lock service keyed by directory path."""

    def hold(self, directory: Path) -> contextlib.AbstractAsyncContextManager[LockToken]:
        """Wait for the lock on directory, hold it for the block, release on exit."""
        ...

    def clear_stale(self, directory: Path) -> bool:
        """Remove a leftover lock for directory if nobody holds it."""
        ...


@dataclass
class FileLockService:
    """NamedMutex backed by a lock file in each directory."""

    context: RepoContext
    poll_interval: float = 0.1
    acquire_timeout: float | None = None

    def _lock_for(self, directory: Path) -> FileLock:
        return FileLock(self.context.lock_path(directory))

    @contextlib.asynccontextmanager
    async def hold(self, directory: Path) -> AsyncIterator[LockToken]:
        lock = self._lock_for(directory)
        lock_path = Path(lock.lock_file)
        logger.info("lock_waiting", lock_path=str(lock_path))
        await self._acquire(lock, lock_path)
        try:
            logger.debug("lock_acquired", lock_path=str(lock_path))
            yield LockToken(directory=directory, lock_path=lock_path)
        finally:
            lock.release()
            logger.info("lock_released", directory=str(directory))

    async def _acquire(self, lock: FileLock, lock_path: Path) -> None:
        started = time.monotonic()
        while True:
            try:
                lock.acquire(blocking=False)
                return
            except Timeout:
                pass
            if (
                self.acquire_timeout is not None
                and time.monotonic() - started >= self.acquire_timeout
            ):
                raise LockTimeoutError.for_path(str(lock_path), self.acquire_timeout)
            await asyncio.sleep(self.poll_interval)

    def clear_stale(self, directory: Path) -> bool:
        """Remove a lock file left by a previous run.

        The file is only removed when no live process holds it. A held lock
        means an update from another process is still running, so the file is
        left in place and this run's update waits for it as usual.
        """
        lock_path = self.context.lock_path(directory)
        if not lock_path.exists():
            return False

        lock = FileLock(lock_path)
        try:
            lock.acquire(blocking=False)
        except Timeout:
            logger.warning("lock_held_at_startup", lock_path=str(lock_path))
            return False

        try:
            lock_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("stale_lock_remove_failed", lock_path=str(lock_path), error=str(e))
            return False
        finally:
            lock.release()

        logger.info("stale_lock_cleared", lock_path=str(lock_path))
        return True
