"""Fan-out of directory updates to independent asyncio tasks."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from reposcanner.core.errors import InternalError
from reposcanner.repo.models import UpdateOutcome
from reposcanner.repo.updater import UpdateCoordinator

logger = structlog.get_logger()


@dataclass
class Dispatcher:
    """
    Starts one task per trigger.

    Design:
    - Triggers for the same directory are never coalesced or debounced;
      they queue on the directory lock and each runs its own update
    - max_concurrency=0 starts every update immediately; a positive value
      caps running updates with a semaphore, later tasks wait in FIFO order
    - A crashing update is logged and never escapes its task
    """

    coordinator: UpdateCoordinator
    max_concurrency: int = 0

    _tasks: set[asyncio.Task[UpdateOutcome | None]] = field(default_factory=set, init=False)
    _semaphore: asyncio.Semaphore | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.max_concurrency > 0:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, directory: Path) -> asyncio.Task[UpdateOutcome | None]:
        """Start an update for directory."""
        return self._spawn(directory, self.coordinator.update)

    def dispatch_startup(
        self, directories: Iterable[Path]
    ) -> list[asyncio.Task[UpdateOutcome | None]]:
        """Start the startup update for every scanned directory."""
        return [self._spawn(d, self.coordinator.run_startup) for d in directories]

    def _spawn(
        self,
        directory: Path,
        run: Callable[[Path], Awaitable[UpdateOutcome]],
    ) -> asyncio.Task[UpdateOutcome | None]:
        logger.debug("update_dispatched", path=str(directory), in_flight=len(self._tasks))
        task = asyncio.get_running_loop().create_task(
            self._run(directory, run),
            name=f"update:{directory}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(
        self,
        directory: Path,
        run: Callable[[Path], Awaitable[UpdateOutcome]],
    ) -> UpdateOutcome | None:
        try:
            if self._semaphore is None:
                outcome = await run(directory)
            else:
                async with self._semaphore:
                    outcome = await run(directory)
        except asyncio.CancelledError:
            logger.warning("update_cancelled", path=str(directory))
            raise
        except Exception as e:
            err = InternalError.unexpected(str(e), path=str(directory))
            logger.exception(
                "update_crashed", path=str(directory), code=err.error_name, error=err.message
            )
            return None
        logger.info("update_finished", path=str(directory), outcome=outcome.value)
        return outcome

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight updates. Cancels the rest on timeout; returns False then."""
        if not self._tasks:
            return True
        tasks = set(self._tasks)
        _done, still_running = await asyncio.wait(tasks, timeout=timeout)
        if not still_running:
            return True

        logger.warning("drain_timeout", cancelled=len(still_running))
        for task in still_running:
            task.cancel()
        for task in still_running:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        return False
