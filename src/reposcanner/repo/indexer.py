"""Subprocess wrapper around the metadata indexer (createrepo)."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from reposcanner.repo.models import RepoContext

logger = structlog.get_logger()

# Lines of stderr kept in the failure log entry
STDERR_TAIL_LINES = 20


@dataclass
class CreaterepoIndexer:
    """Runs `<command> --update <dir> --cachedir <dir>/<cache>` for one directory.

    The same invocation serves as a full rebuild once the existing metadata
    has been removed. Exit status 0 is success; any other status, or a failure
    to launch the process at all, is reported as False. Cancelling a run kills
    the child process before the cancellation propagates.
    """

    context: RepoContext
    command: str = "createrepo"
    extra_args: list[str] = field(default_factory=list)

    def build_command(self, directory: Path) -> list[str]:
        cache_dir = self.context.cache_dir(directory)
        return [
            self.command,
            *self.extra_args,
            "--update",
            str(directory),
            "--cachedir",
            str(cache_dir),
        ]

    def is_available(self) -> bool:
        return shutil.which(self.command) is not None

    async def run(self, directory: Path) -> bool:
        cmd = self.build_command(directory)
        logger.info("running_command", command=" ".join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=directory,
            )
        except OSError as e:
            logger.error("indexer_launch_failed", path=str(directory), error=str(e))
            return False

        try:
            _stdout_bytes, stderr_bytes = await proc.communicate()
        except asyncio.CancelledError:
            # The caller releases the directory lock next; the child must be gone by then
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            logger.warning("indexer_killed", path=str(directory), pid=proc.pid)
            raise

        if proc.returncode != 0:
            stderr = stderr_bytes.decode(errors="replace").strip()
            logger.error(
                "repository_update_failed",
                path=str(directory),
                returncode=proc.returncode,
                stderr="\n".join(stderr.splitlines()[-STDERR_TAIL_LINES:]) or None,
            )
            return False

        logger.debug("repository_updated", path=str(directory))
        return True
