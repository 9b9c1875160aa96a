"""Structured logging with update correlation and multi-output support.

Supports:
- Separate console vs file log levels
- Update correlation IDs (one per coordinated directory update)
- Size-rotated log files with age-based pruning of old backups
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import time
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from reposcanner.config.models import LoggingConfig, LogOutputConfig

_update_id: ContextVar[str | None] = ContextVar("update_id", default=None)

_BYTES_PER_MB = 1024 * 1024
_SECONDS_PER_DAY = 86400


def get_update_id() -> str | None:
    return _update_id.get()


def set_update_id(update_id: str | None = None) -> str:
    """Set or generate the update correlation ID for the current task."""
    uid = update_id or uuid4().hex[:12]
    _update_id.set(uid)
    return uid


def clear_update_id() -> None:
    _update_id.set(None)


def _add_update_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if uid := get_update_id():
        event_dict["update_id"] = uid
    return event_dict


_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class AgedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size-rotating file handler that also drops backups older than max_age_days."""

    def __init__(
        self,
        filename: str | Path,
        *,
        max_bytes: int,
        backup_count: int,
        max_age_days: int,
    ) -> None:
        super().__init__(filename, mode="a", maxBytes=max_bytes, backupCount=backup_count)
        self.max_age_days = max_age_days

    def doRollover(self) -> None:  # noqa: N802
        super().doRollover()
        self.prune_expired()

    def prune_expired(self) -> list[Path]:
        """Delete rotated backups whose mtime is older than max_age_days."""
        if self.max_age_days <= 0:
            return []
        base = Path(self.baseFilename)
        cutoff = time.time() - self.max_age_days * _SECONDS_PER_DAY
        removed: list[Path] = []
        for backup in base.parent.glob(f"{base.name}.*"):
            try:
                if backup.stat().st_mtime < cutoff:
                    backup.unlink()
                    removed.append(backup)
            except OSError:
                continue
        return removed


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog. Pass config for multi-output, or use simple params.

    Args:
        config: Logging configuration with outputs
        json_format: Use JSON format for simple setup
        level: Default log level
    """
    from reposcanner.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    default_level = _LEVEL_MAP.get(config.level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_update_id,  # type: ignore[list-item]
    ]

    _configure_stdlib_logging(config, shared_processors, default_level)


def _create_handler(output: LogOutputConfig) -> logging.Handler:
    """Create handler for stderr, stdout, or a rotated file path."""
    handler: logging.Handler
    if output.destination == "stderr":
        handler = logging.StreamHandler(sys.stderr)
    elif output.destination == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = AgedRotatingFileHandler(
            path,
            max_bytes=output.max_size_mb * _BYTES_PER_MB,
            backup_count=output.backup_count,
            max_age_days=output.max_age_days,
        )
    return handler


def _configure_stdlib_logging(
    config: LoggingConfig,
    shared_processors: list[structlog.types.Processor],
    default_level: int,
) -> None:
    """Configure logging via stdlib (proper file handle management)."""
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(default_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Don't cache - allows reconfiguration and respects level changes
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    root_logger.setLevel(default_level)

    # watchfiles logs every raw change at debug level
    logging.getLogger("watchfiles").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    for output in config.outputs:
        output_level = _LEVEL_MAP.get((output.level or config.level).upper(), default_level)
        is_console = output.destination in ("stderr", "stdout")

        if output.format == "json":
            formatter = structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        else:
            formatter = structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(
                    colors=is_console and sys.stderr.isatty(),
                    pad_event_to=0,
                    pad_level=False,
                ),
                foreign_pre_chain=shared_processors,
            )

        handler = _create_handler(output)
        handler.setLevel(output_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

