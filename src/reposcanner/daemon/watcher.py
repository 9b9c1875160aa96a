"""Package change watcher using watchfiles for async filesystem monitoring.

Design:
- One recursive subscription rooted at the repository root
- The notification backend is chosen once at startup from WATCH_PROFILES
- Raw changes are translated to ChangeEvent and filtered to package files
- The stream is lazy, infinite and cannot be restarted once consumed
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from watchfiles import Change, awatch

from reposcanner.core.errors import WatchError
from reposcanner.repo.models import ChangeEvent, ChangeKind, RepoContext

logger = structlog.get_logger()


class WatchPlatform(Enum):
    """Host class the repository tree lives on."""

    LINUX = "linux"
    GENERIC = "generic"


@dataclass(frozen=True, slots=True)
class WatchProfile:
    """How changes are observed on one platform class.

    Only force_polling changes behaviour. observable lists the kinds the host's
    notification mechanism can report and is logged when the watch starts; it
    does not filter events. Every event arrives through CHANGE_KINDS, so moves
    surface as CREATED/REMOVED and MOVED_IN/MOVED_OUT are never emitted.
    """

    platform: WatchPlatform
    force_polling: bool
    observable: frozenset[ChangeKind]


# watchfiles reports a rename into the tree as `added` and a rename out of it
# as `deleted`, so moves surface as created/removed on every platform.
CHANGE_KINDS: dict[Change, ChangeKind] = {
    Change.added: ChangeKind.CREATED,
    Change.modified: ChangeKind.MODIFIED,
    Change.deleted: ChangeKind.REMOVED,
}

WATCH_PROFILES: dict[WatchPlatform, WatchProfile] = {
    # Kernel notifications: close-after-write, moved-in, moved-out, delete
    WatchPlatform.LINUX: WatchProfile(
        platform=WatchPlatform.LINUX,
        force_polling=False,
        observable=frozenset(
            {ChangeKind.MODIFIED, ChangeKind.MOVED_IN, ChangeKind.MOVED_OUT, ChangeKind.REMOVED}
        ),
    ),
    # Bind mounts from non-Linux hosts do not deliver kernel events; poll instead
    WatchPlatform.GENERIC: WatchProfile(
        platform=WatchPlatform.GENERIC,
        force_polling=True,
        observable=frozenset(
            {
                ChangeKind.MODIFIED,
                ChangeKind.CREATED,
                ChangeKind.REMOVED,
                ChangeKind.MOVED_IN,
                ChangeKind.MOVED_OUT,
            }
        ),
    ),
}


def resolve_profile(linux_host: bool) -> WatchProfile:
    platform = WatchPlatform.LINUX if linux_host else WatchPlatform.GENERIC
    return WATCH_PROFILES[platform]


WatchFn = Callable[..., AsyncIterator[set[tuple[Change, str]]]]


@dataclass
class ChangeWatcher:
    """Recursive watcher that yields package-file ChangeEvents under the root."""

    context: RepoContext
    profile: WatchProfile
    poll_delay_ms: int = 300
    watch_fn: WatchFn = awatch

    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _consumed: bool = field(default=False, init=False)

    def stop(self) -> None:
        """End the event stream at the next backend step."""
        self._stop_event.set()

    def translate(self, change: Change, raw_path: str) -> ChangeEvent | None:
        """Translate one raw change, or return None if it is not a package file."""
        path = Path(raw_path)
        if not self.context.matcher.matches_path(path):
            logger.debug("event_ignored", path=raw_path, change_type=change.name)
            return None
        return ChangeEvent(path=path, kind=CHANGE_KINDS[change])

    async def events(self) -> AsyncIterator[ChangeEvent]:
        """Yield package-file events until stop() is called.

        Raises:
            WatchError: If the subscription cannot be established or fails.
        """
        if self._consumed:
            raise RuntimeError("ChangeWatcher event stream cannot be restarted")
        self._consumed = True

        root = self.context.root
        if not root.is_dir():
            raise WatchError.start_failed(str(root), "root is not a directory")

        options: dict[str, Any] = {
            "watch_filter": None,
            "stop_event": self._stop_event,
            "recursive": True,
            "force_polling": self.profile.force_polling,
            "poll_delay_ms": self.poll_delay_ms,
            "ignore_permission_denied": True,
        }
        logger.info(
            "watch_started",
            root=str(root),
            platform=self.profile.platform.value,
            mode="polling" if self.profile.force_polling else "native",
            kinds=sorted(kind.value for kind in self.profile.observable),
        )

        try:
            async for changes in self.watch_fn(root, **options):
                for change, raw_path in sorted(changes, key=lambda c: (c[1], c[0].value)):
                    event = self.translate(change, raw_path)
                    if event is not None:
                        logger.debug("event", kind=event.kind.value, path=str(event.path))
                        yield event
        except OSError as e:
            raise WatchError.start_failed(str(root), str(e)) from e

        logger.info("watch_stopped", root=str(root))
