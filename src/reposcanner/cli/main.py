"""reposcanner CLI - reposcan command."""

from pathlib import Path
from typing import Any

import click

from reposcanner.cli.run import run_command
from reposcanner.cli.scan import scan_command
from reposcanner.cli.update import update_command
from reposcanner.config.loader import load_config
from reposcanner.core.errors import ConfigError
from reposcanner.core.logging import configure_logging


@click.group()
@click.version_option(package_name="reposcanner", prog_name="reposcan")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: /etc/reposcanner/config.yaml if present)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """reposcanner - keep package repository metadata in sync with its packages."""
    ctx.ensure_object(dict)
    overrides: dict[str, Any] = {}
    if verbose:
        overrides["debug"] = {"enabled": True}
    try:
        config = load_config(config_path, **overrides)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj["config"] = config
    configure_logging(config=config.effective_logging())


cli.add_command(run_command, name="run")
cli.add_command(scan_command, name="scan")
cli.add_command(update_command, name="update")


if __name__ == "__main__":
    cli()
