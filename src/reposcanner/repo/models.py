"""Data model shared by the scanner, lock service, updater and watcher."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reposcanner.config.models import RepoConfig


class ChangeKind(Enum):
    """Kind of file-system change observed under the root."""

    CREATED = "created"
    MODIFIED = "modified"
    MOVED_IN = "moved_in"
    MOVED_OUT = "moved_out"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A single change to a path. Transient, consumed once."""

    path: Path
    kind: ChangeKind

    @property
    def directory(self) -> Path:
        return self.path.parent


class UpdateOutcome(Enum):
    """Result label of one coordinated update."""

    UPDATED = "updated"
    REBUILT = "rebuilt"
    FAILED = "failed"
    LOCK_TIMEOUT = "lock_timeout"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class LockToken:
    """Proof that the lock for a directory is held."""

    directory: Path
    lock_path: Path


@dataclass(frozen=True, slots=True)
class PackageMatcher:
    """Case-sensitive file name suffix matcher."""

    suffixes: tuple[str, ...]

    def matches(self, name: str) -> bool:
        return name.endswith(self.suffixes)

    def matches_path(self, path: Path) -> bool:
        return self.matches(path.name)


@dataclass(frozen=True, slots=True)
class RepoContext:
    """Immutable startup context passed to every component.

    Built once from configuration; nothing reads repository layout from
    module globals.
    """

    root: Path
    matcher: PackageMatcher
    lock_file_name: str = "repoUpdate.lock"
    metadata_dirs: tuple[str, ...] = ("repodata", ".repodata")
    cache_dir_name: str = "cachedir"

    @classmethod
    def from_config(cls, config: RepoConfig) -> RepoContext:
        return cls(
            root=Path(config.root),
            matcher=PackageMatcher(tuple(config.package_suffixes)),
            lock_file_name=config.lock_file_name,
            metadata_dirs=tuple(config.metadata_dirs),
            cache_dir_name=config.cache_dir_name,
        )

    def lock_path(self, directory: Path) -> Path:
        return directory / self.lock_file_name

    def cache_dir(self, directory: Path) -> Path:
        return directory / self.cache_dir_name

    def metadata_paths(self, directory: Path) -> list[Path]:
        return [directory / name for name in self.metadata_dirs]
