"""Startup discovery of directories that hold package files.

The walk is recursive and unbounded in depth, but the package check for each
directory only looks at its own files: a directory qualifies when one of its
direct children is a package file, independent of what its sub-directories
contain.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from reposcanner.core.errors import ScanError
from reposcanner.repo.models import RepoContext

logger = structlog.get_logger()


def find_package_dirs(context: RepoContext) -> list[Path]:
    """Return every directory under context.root that directly contains a package file.

    Entry-level traversal errors are logged and skipped.

    Raises:
        ScanError: If the root itself is missing or cannot be listed.
    """
    root = context.root
    if not root.is_dir():
        reason = "not a directory" if root.exists() else "does not exist"
        raise ScanError.root_unavailable(str(root), reason)

    logger.info("scan_started", root=str(root))

    def _on_error(err: OSError) -> None:
        if err.filename is not None and Path(err.filename) == root:
            raise ScanError.root_unavailable(str(root), err.strerror or str(err)) from err
        logger.warning("scan_entry_skipped", path=err.filename, error=str(err))

    found: list[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
        logger.debug("checking_directory", path=dirpath)
        if any(context.matcher.matches(name) for name in filenames):
            logger.debug("package_dir_found", path=dirpath)
            found.append(Path(dirpath))

    found.sort()
    logger.info("scan_complete", root=str(root), count=len(found))
    return found
