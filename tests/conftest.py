"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

from __future__ import annotations

import asyncio
import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of reposcanner modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("reposcanner"):
        del sys.modules[module_name]

from reposcanner.repo.models import PackageMatcher, RepoContext  # noqa: E402


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Empty repository root."""
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def context(repo_root: Path) -> RepoContext:
    """RepoContext with the default RPM layout."""
    return RepoContext(root=repo_root, matcher=PackageMatcher((".rpm",)))


@pytest.fixture
def make_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable shell script standing in for the indexer."""

    def _make(name: str, body: str) -> Path:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        script = bin_dir / name
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


class RecordingIndexer:
    """In-process indexer that records calls and per-directory overlap.

    ``results`` is consumed one entry per call; once empty every call returns
    ``default``. A successful call creates ``repodata/`` like createrepo does.
    """

    def __init__(
        self,
        results: list[bool] | None = None,
        *,
        default: bool = True,
        delay: float = 0.0,
    ) -> None:
        self.results = list(results or [])
        self.default = default
        self.delay = delay
        self.calls: list[Path] = []
        self.metadata_seen: list[bool] = []
        self._active: dict[Path, int] = {}
        self.max_active: dict[Path, int] = {}

    async def run(self, directory: Path) -> bool:
        self.calls.append(directory)
        self.metadata_seen.append((directory / "repodata").exists())
        self._active[directory] = self._active.get(directory, 0) + 1
        self.max_active[directory] = max(
            self.max_active.get(directory, 0), self._active[directory]
        )
        try:
            await asyncio.sleep(self.delay)
        finally:
            self._active[directory] -= 1

        ok = self.results.pop(0) if self.results else self.default
        if ok:
            (directory / "repodata").mkdir(exist_ok=True)
        return ok


@pytest.fixture
def recording_indexer() -> type[RecordingIndexer]:
    """The RecordingIndexer class, for tests that need custom results."""
    return RecordingIndexer
