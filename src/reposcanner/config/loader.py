"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (REPOSCANNER__SECTION__KEY)
3. Legacy container variables (DEBUG, LINUX_HOST, REPO_DIR)
4. YAML config file
5. Built-in defaults (lowest priority)
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from reposcanner.config.models import (
    DebugConfig,
    IndexerConfig,
    LockConfig,
    LoggingConfig,
    RepoConfig,
    RepoScannerConfig,
    TimeoutsConfig,
    WatchConfig,
)
from reposcanner.core.errors import ConfigError

SYSTEM_CONFIG_PATH = Path("/etc/reposcanner/config.yaml")


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _env_flag(value: str) -> bool:
    return value.strip().lower() == "true"


def _legacy_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """Map the original container's plain env vars onto config sections."""
    result: dict[str, Any] = {}
    if "DEBUG" in environ:
        result["debug"] = {"enabled": _env_flag(environ["DEBUG"])}
    if "LINUX_HOST" in environ:
        result["watch"] = {"linux_host": _env_flag(environ["LINUX_HOST"])}
    if environ.get("REPO_DIR"):
        result["repo"] = {"root": environ["REPO_DIR"]}
    return result


class _DictSource(PydanticBaseSettingsSource):
    """Settings source that serves a pre-built dict (YAML file or legacy env)."""

    def __init__(self, settings_cls: type[BaseSettings], values: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._values = values

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._values.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._values


def _make_settings_class(
    yaml_config: dict[str, Any],
    legacy_config: dict[str, Any],
) -> type[BaseSettings]:
    """Create a Settings class with instance-based sources."""

    class RepoScannerSettings(BaseSettings):
        """Root settings. Env vars: REPOSCANNER__REPO__ROOT, REPOSCANNER__LOGGING__LEVEL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="REPOSCANNER__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        repo: RepoConfig = RepoConfig()
        indexer: IndexerConfig = IndexerConfig()
        lock: LockConfig = LockConfig()
        watch: WatchConfig = WatchConfig()
        timeouts: TimeoutsConfig = TimeoutsConfig()
        debug: DebugConfig = DebugConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > legacy env > yaml file
            return (
                init_settings,
                env_settings,
                _DictSource(settings_cls, legacy_config),
                _DictSource(settings_cls, yaml_config),
            )

    return RepoScannerSettings


def load_config(
    config_path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **kwargs: Any,
) -> RepoScannerConfig:
    """Load config: defaults < yaml < legacy env < env vars < kwargs.

    Args:
        config_path: Explicit YAML file. Must exist when given. Defaults to
                     /etc/reposcanner/config.yaml if that file exists.
        environ: Environment used for legacy variables. Defaults to os.environ.
        **kwargs: Override values per section (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On a missing explicit file, invalid YAML, or validation errors.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError.file_not_found(str(config_path))
        yaml_config = _load_yaml(config_path)
    else:
        yaml_config = _load_yaml(SYSTEM_CONFIG_PATH)

    legacy_config = _legacy_env(os.environ if environ is None else environ)

    settings_cls = _make_settings_class(yaml_config, legacy_config)
    try:
        settings = settings_cls(**kwargs)
        return RepoScannerConfig.model_validate(settings.model_dump())
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
