"""Scanner lifecycle management."""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import awatch

from reposcanner.config.models import RepoScannerConfig
from reposcanner.daemon.dispatcher import Dispatcher
from reposcanner.daemon.watcher import ChangeWatcher, WatchFn, resolve_profile
from reposcanner.repo.indexer import CreaterepoIndexer
from reposcanner.repo.locking import FileLockService
from reposcanner.repo.models import RepoContext
from reposcanner.repo.scanner import find_package_dirs
from reposcanner.repo.updater import Indexer, UpdateCoordinator

logger = structlog.get_logger()


@dataclass
class ScannerController:
    """
    Orchestrates scanner components.

    Components:
    - FileLockService: per-directory lock files
    - CreaterepoIndexer: metadata indexer subprocess
    - UpdateCoordinator: lock, update, rebuild fallback
    - Dispatcher: one task per trigger
    - ChangeWatcher: recursive package-file events
    """

    config: RepoScannerConfig
    indexer: Indexer | None = None
    watch_fn: WatchFn = awatch

    context: RepoContext = field(init=False)
    locks: FileLockService = field(init=False)
    coordinator: UpdateCoordinator = field(init=False)
    dispatcher: Dispatcher = field(init=False)
    watcher: ChangeWatcher = field(init=False)
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def __post_init__(self) -> None:
        """Initialize components from config."""
        self.context = RepoContext.from_config(self.config.repo)
        self.locks = FileLockService(
            context=self.context,
            poll_interval=self.config.lock.poll_interval_sec,
            acquire_timeout=self.config.lock.acquire_timeout_sec,
        )
        if self.indexer is None:
            self.indexer = CreaterepoIndexer(
                context=self.context,
                command=self.config.indexer.command,
                extra_args=list(self.config.indexer.extra_args),
            )
        self.coordinator = UpdateCoordinator(
            context=self.context,
            locks=self.locks,
            indexer=self.indexer,
        )
        self.dispatcher = Dispatcher(
            coordinator=self.coordinator,
            max_concurrency=self.config.indexer.max_concurrency,
        )
        self.watcher = ChangeWatcher(
            context=self.context,
            profile=resolve_profile(self.config.watch.linux_host),
            poll_delay_ms=self.config.watch.poll_delay_ms,
            watch_fn=self.watch_fn,
        )

    async def start(self) -> list[Path]:
        """Scan the root and dispatch a startup update for every package directory.

        Raises:
            ScanError: If the root cannot be scanned.
        """
        logger.info("scanner_starting", root=str(self.context.root))

        if isinstance(self.indexer, CreaterepoIndexer) and not self.indexer.is_available():
            logger.warning("indexer_not_found", command=self.indexer.command)

        directories = find_package_dirs(self.context)
        logger.info("startup_update", count=len(directories))
        self.dispatcher.dispatch_startup(directories)
        return directories

    async def run(self) -> None:
        """Consume watcher events until the watcher is stopped."""
        async for event in self.watcher.events():
            logger.info(
                "package_change_detected",
                path=str(event.directory),
                kind=event.kind.value,
                file=event.path.name,
            )
            self.dispatcher.dispatch(event.directory)

    def request_stop(self) -> None:
        self.watcher.stop()

    async def stop(self) -> None:
        """Stop watching and wait for in-flight updates."""
        logger.info("scanner_stopping", in_flight=self.dispatcher.pending)
        self.watcher.stop()
        drained = await self.dispatcher.drain(timeout=self.config.timeouts.shutdown_sec)
        if not drained:
            logger.warning(
                "scanner_stop_timeout",
                message=f"Shutdown timed out after {self.config.timeouts.shutdown_sec}s",
            )
        self._shutdown_event.set()
        logger.info("scanner_stopped")

    def wait_for_shutdown(self) -> asyncio.Event:
        """Get the shutdown event for external coordination."""
        return self._shutdown_event


async def run_scanner(
    config: RepoScannerConfig,
    controller: ScannerController | None = None,
) -> None:
    """Run the startup pass, then watch until a shutdown signal."""
    controller = controller or ScannerController(config=config)

    loop = asyncio.get_running_loop()
    shutdown_count = 0

    def signal_handler() -> None:
        nonlocal shutdown_count
        shutdown_count += 1
        logger.info("shutdown_signal_received", count=shutdown_count)
        controller.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await controller.start()
        await controller.run()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await controller.stop()
