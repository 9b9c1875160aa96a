"""reposcan run command - startup pass, then watch."""

import asyncio
from pathlib import Path

import click

from reposcanner.cli.utils import get_config, root_option
from reposcanner.core.errors import ScanError, WatchError
from reposcanner.daemon.lifecycle import run_scanner


@click.command()
@root_option
@click.option(
    "--linux-host/--generic-host",
    "linux_host",
    default=None,
    help="Use kernel notifications (Linux host) or polling (other hosts)",
)
@click.pass_context
def run_command(ctx: click.Context, root: Path | None, linux_host: bool | None) -> None:
    """Update every package directory, then keep watching for changes.

    Runs until interrupted (SIGINT/SIGTERM). In-flight updates are allowed
    to finish before exit.
    """
    config = get_config(ctx, repo={"root": root}, watch={"linux_host": linux_host})
    try:
        asyncio.run(run_scanner(config))
    except (ScanError, WatchError) as e:
        raise click.ClickException(str(e)) from e
