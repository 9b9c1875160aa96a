"""Shared CLI helpers."""

from pathlib import Path
from typing import Any

import click

from reposcanner.config.models import RepoScannerConfig


def get_config(ctx: click.Context, **section_updates: dict[str, Any]) -> RepoScannerConfig:
    """Return the loaded config with per-command option overrides applied."""
    config: RepoScannerConfig = ctx.obj["config"]
    updates: dict[str, Any] = {}
    for section, values in section_updates.items():
        values = {k: v for k, v in values.items() if v is not None}
        if values:
            updates[section] = getattr(config, section).model_copy(update=values)
    return config.model_copy(update=updates) if updates else config


root_option = click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Repository root (overrides repo.root)",
)
