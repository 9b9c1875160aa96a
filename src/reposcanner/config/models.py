"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (REPOSCANNER__SECTION__KEY)
3. Legacy container variables (DEBUG, LINUX_HOST, REPO_DIR)
4. YAML config file (--config, or /etc/reposcanner/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    REPOSCANNER__<SECTION>__<KEY>=<VALUE>

Examples:
    REPOSCANNER__REPO__ROOT=/srv/repo
    REPOSCANNER__LOGGING__LEVEL=DEBUG
    REPOSCANNER__WATCH__LINUX_HOST=false
    REPOSCANNER__INDEXER__MAX_CONCURRENCY=8
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Rotation fields only apply to file destinations.
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None
    max_size_mb: int = Field(default=500, ge=1)
    backup_count: int = Field(default=3, ge=0)
    max_age_days: int = Field(
        default=15,
        ge=0,
        description="Rotated backups older than this are deleted. 0 keeps them forever.",
    )

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        REPOSCANNER__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every visited directory and event.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class RepoConfig(BaseModel):
    """Repository tree layout.

    Env vars:
        REPOSCANNER__REPO__ROOT: Directory to scan and watch
    """

    root: Path = Field(
        default=Path("/repo"),
        description="Root of the repository tree. Scanned at startup, then watched.",
    )
    package_suffixes: list[str] = Field(
        default_factory=lambda: [".rpm"],
        description="Case-sensitive file name suffixes identifying package files.",
    )
    lock_file_name: str = Field(
        default="repoUpdate.lock",
        description="Lock file created inside each directory while it is updated.",
    )
    metadata_dirs: list[str] = Field(
        default_factory=lambda: ["repodata", ".repodata"],
        description="Metadata subtrees removed before a full rebuild.",
    )
    cache_dir_name: str = Field(
        default="cachedir",
        description="Indexer working cache, created inside each directory.",
    )

    @field_validator("package_suffixes")
    @classmethod
    def validate_suffixes(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one package suffix is required")
        if any(not s for s in v):
            raise ValueError("Package suffixes must be non-empty")
        return v

    @field_validator("lock_file_name", "cache_dir_name")
    @classmethod
    def validate_plain_name(cls, v: str) -> str:
        if not v or "/" in v or v in (".", ".."):
            raise ValueError(f"Must be a plain file name: {v!r}")
        return v


class IndexerConfig(BaseModel):
    """Metadata indexer invocation.

    Env vars:
        REPOSCANNER__INDEXER__COMMAND: Indexer executable
        REPOSCANNER__INDEXER__MAX_CONCURRENCY: Concurrent updates (0 = unbounded)
    """

    command: str = Field(default="createrepo", description="Indexer executable name or path.")
    extra_args: list[str] = Field(
        default_factory=list,
        description="Arguments inserted before --update (e.g. --workers 2).",
    )
    max_concurrency: int = Field(
        default=0,
        ge=0,
        description="Max updates running at once. 0 starts every update immediately. "
        "RISK: unbounded fan-out may start many indexer processes after a bulk copy.",
    )


class LockConfig(BaseModel):
    """Per-directory lock behaviour.

    Env vars:
        REPOSCANNER__LOCK__POLL_INTERVAL_SEC: Retry interval while waiting
        REPOSCANNER__LOCK__ACQUIRE_TIMEOUT_SEC: Give up waiting after this long
    """

    poll_interval_sec: float = Field(default=0.1, gt=0)
    acquire_timeout_sec: float | None = Field(
        default=None,
        description="Abandon an update that cannot lock its directory in time. "
        "None waits forever.",
    )

    @field_validator("acquire_timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError(f"Timeout must be >= 0, got {v}")
        return v


class WatchConfig(BaseModel):
    """Change watcher configuration.

    Env vars:
        REPOSCANNER__WATCH__LINUX_HOST: Use native kernel notifications
        REPOSCANNER__WATCH__POLL_DELAY_MS: Polling interval on generic hosts
    """

    linux_host: bool = Field(
        default=True,
        description="True when the repository lives on a Linux host filesystem. "
        "Set false for bind mounts that do not deliver kernel notifications.",
    )
    poll_delay_ms: int = Field(default=300, ge=1)


class TimeoutsConfig(BaseModel):
    """Timeout configuration for the controller."""

    shutdown_sec: float = Field(
        default=30.0,
        description="How long shutdown waits for in-flight updates before cancelling them.",
    )


class DebugConfig(BaseModel):
    """Debug configuration.

    Env vars:
        REPOSCANNER__DEBUG__ENABLED: Force DEBUG log level
    """

    enabled: bool = Field(default=False, description="Force DEBUG log level.")


class RepoScannerConfig(BaseModel):
    """Root configuration for reposcanner."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    repo: RepoConfig = Field(default_factory=RepoConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    lock: LockConfig = Field(default_factory=LockConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)

    def effective_logging(self) -> LoggingConfig:
        """Logging config with the debug flag applied."""
        if self.debug.enabled:
            return self.logging.model_copy(update={"level": "DEBUG"})
        return self.logging
