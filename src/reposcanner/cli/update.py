"""reposcan update command - one coordinated update."""

import asyncio
from pathlib import Path

import click
from rich.console import Console

from reposcanner.cli.utils import get_config
from reposcanner.daemon.lifecycle import ScannerController
from reposcanner.repo.models import UpdateOutcome

_FAILED = (UpdateOutcome.FAILED, UpdateOutcome.LOCK_TIMEOUT, UpdateOutcome.SKIPPED)


@click.command()
@click.argument(
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.pass_context
def update_command(ctx: click.Context, directory: Path) -> None:
    """Update the metadata of DIRECTORY under its lock, rebuilding on failure."""
    config = get_config(ctx)
    controller = ScannerController(config=config)

    outcome = asyncio.run(controller.coordinator.update(directory.resolve()))

    console = Console(stderr=True)
    if outcome in _FAILED:
        console.print(f"[red]✗[/red] {directory}: {outcome.value}")
        ctx.exit(1)
    console.print(f"[green]✓[/green] {directory}: {outcome.value}")
