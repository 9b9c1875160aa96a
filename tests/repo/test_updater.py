"""Tests for the coordinated update and its rebuild fallback."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest
from filelock import FileLock

from reposcanner.repo.locking import FileLockService
from reposcanner.repo.models import RepoContext, UpdateOutcome
from reposcanner.repo.updater import UpdateCoordinator


@pytest.fixture
def directory(repo_root: Path) -> Path:
    d = repo_root / "b"
    d.mkdir()
    (d / "x.rpm").write_bytes(b"")
    return d


def _coordinator(context: RepoContext, indexer: Any, **lock_kwargs: Any) -> UpdateCoordinator:
    locks = FileLockService(context=context, poll_interval=0.01, **lock_kwargs)
    return UpdateCoordinator(context=context, locks=locks, indexer=indexer)


def _assert_unlocked(directory: Path) -> None:
    free_lock = FileLock(directory / "repoUpdate.lock")
    free_lock.acquire(blocking=False)
    free_lock.release()


class TestUpdate:
    """Tests for UpdateCoordinator.update."""

    @pytest.mark.asyncio
    async def test_incremental_success_runs_once(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        # Given
        indexer = recording_indexer([True])
        coordinator = _coordinator(context, indexer)

        # When
        outcome = await coordinator.update(directory)

        # Then
        assert outcome == UpdateOutcome.UPDATED
        assert indexer.calls == [directory]
        _assert_unlocked(directory)

    @pytest.mark.asyncio
    async def test_incremental_failure_removes_metadata_then_rebuilds(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        # Given
        (directory / "repodata").mkdir()
        (directory / "repodata" / "repomd.xml").write_text("<repomd/>")
        (directory / ".repodata").mkdir()
        indexer = recording_indexer([False, True])
        coordinator = _coordinator(context, indexer)

        # When
        outcome = await coordinator.update(directory)

        # Then
        assert outcome == UpdateOutcome.REBUILT
        assert indexer.calls == [directory, directory]
        # Metadata existed for the first attempt and was gone for the rebuild
        assert indexer.metadata_seen == [True, False]
        assert not (directory / ".repodata").exists()
        assert (directory / "repodata").exists()
        _assert_unlocked(directory)

    @pytest.mark.asyncio
    async def test_rebuild_failure_leaves_metadata_absent_and_lock_released(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        (directory / "repodata").mkdir()
        indexer = recording_indexer([False, False])
        coordinator = _coordinator(context, indexer)

        outcome = await coordinator.update(directory)

        assert outcome == UpdateOutcome.FAILED
        assert len(indexer.calls) == 2
        assert not (directory / "repodata").exists()
        _assert_unlocked(directory)

    @pytest.mark.asyncio
    async def test_next_update_after_failure_can_lock(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        indexer = recording_indexer([False, False, True])
        coordinator = _coordinator(context, indexer, acquire_timeout=1.0)

        assert await coordinator.update(directory) == UpdateOutcome.FAILED
        assert await coordinator.update(directory) == UpdateOutcome.UPDATED

    @pytest.mark.asyncio
    async def test_lock_released_when_indexer_raises(
        self, context: RepoContext, directory: Path
    ) -> None:
        class ExplodingIndexer:
            async def run(self, directory: Path) -> bool:
                raise RuntimeError("indexer bug")

        coordinator = _coordinator(context, ExplodingIndexer())

        with pytest.raises(RuntimeError, match="indexer bug"):
            await coordinator.update(directory)

        _assert_unlocked(directory)

    @pytest.mark.asyncio
    async def test_concurrent_updates_never_overlap(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        indexer = recording_indexer(delay=0.02)
        coordinator = _coordinator(context, indexer)

        outcomes = await asyncio.gather(*(coordinator.update(directory) for _ in range(5)))

        assert outcomes == [UpdateOutcome.UPDATED] * 5
        assert len(indexer.calls) == 5
        assert indexer.max_active[directory] == 1

    @pytest.mark.asyncio
    async def test_concurrent_failing_updates_never_overlap(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        indexer = recording_indexer(default=False, delay=0.01)
        coordinator = _coordinator(context, indexer)

        await asyncio.gather(*(coordinator.update(directory) for _ in range(3)))

        assert len(indexer.calls) == 6
        assert indexer.max_active[directory] == 1

    @pytest.mark.asyncio
    async def test_lock_timeout_skips_indexer(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        indexer = recording_indexer()
        coordinator = _coordinator(context, indexer, acquire_timeout=0.03)
        holder = FileLock(directory / "repoUpdate.lock")
        holder.acquire()
        try:
            outcome = await coordinator.update(directory)
        finally:
            holder.release()

        assert outcome == UpdateOutcome.LOCK_TIMEOUT
        assert indexer.calls == []

    @pytest.mark.asyncio
    async def test_missing_directory_is_skipped(
        self, context: RepoContext, repo_root: Path, recording_indexer: Any
    ) -> None:
        indexer = recording_indexer()
        coordinator = _coordinator(context, indexer)
        gone = repo_root / "gone"

        outcome = await coordinator.update(gone)

        assert outcome == UpdateOutcome.SKIPPED
        assert indexer.calls == []
        assert not gone.exists()


class TestRunStartup:
    """Tests for UpdateCoordinator.run_startup."""

    @pytest.mark.asyncio
    async def test_clears_dead_lock_then_updates(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        (directory / "repoUpdate.lock").write_text("")
        indexer = recording_indexer()
        coordinator = _coordinator(context, indexer)

        outcome = await coordinator.run_startup(directory)

        assert outcome == UpdateOutcome.UPDATED
        assert indexer.calls == [directory]

    @pytest.mark.asyncio
    async def test_waits_for_live_holder(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        """A lock held by a live process is respected, never deleted."""
        indexer = recording_indexer()
        coordinator = _coordinator(context, indexer)
        holder = FileLock(directory / "repoUpdate.lock")
        holder.acquire()

        task = asyncio.create_task(coordinator.run_startup(directory))
        await asyncio.sleep(0.05)
        assert indexer.calls == []
        assert (directory / "repoUpdate.lock").exists()

        holder.release()
        assert await task == UpdateOutcome.UPDATED


class TestRemoveMetadata:
    """Tests for UpdateCoordinator.remove_metadata."""

    def test_removes_all_configured_subtrees(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        (directory / "repodata" / "nested").mkdir(parents=True)
        (directory / ".repodata").mkdir()
        coordinator = _coordinator(context, recording_indexer())

        coordinator.remove_metadata(directory)

        assert not (directory / "repodata").exists()
        assert not (directory / ".repodata").exists()
        assert (directory / "x.rpm").exists()

    def test_missing_subtrees_are_fine(
        self, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        coordinator = _coordinator(context, recording_indexer())

        coordinator.remove_metadata(directory)

        assert (directory / "x.rpm").exists()

    def test_symlinked_metadata_is_unlinked_not_followed(
        self, tmp_path: Path, context: RepoContext, directory: Path, recording_indexer: Any
    ) -> None:
        target = tmp_path / "shared-repodata"
        target.mkdir()
        (target / "keep.xml").write_text("")
        (directory / "repodata").symlink_to(target, target_is_directory=True)
        coordinator = _coordinator(context, recording_indexer())

        coordinator.remove_metadata(directory)

        assert not (directory / "repodata").is_symlink()
        assert (target / "keep.xml").exists()
