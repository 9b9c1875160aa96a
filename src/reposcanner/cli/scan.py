"""reposcan scan command - list package directories."""

from pathlib import Path

import click
from rich.console import Console

from reposcanner.cli.utils import get_config, root_option
from reposcanner.core.errors import ScanError
from reposcanner.repo.models import RepoContext
from reposcanner.repo.scanner import find_package_dirs


@click.command()
@root_option
@click.pass_context
def scan_command(ctx: click.Context, root: Path | None) -> None:
    """List directories that directly contain package files. Nothing is updated."""
    config = get_config(ctx, repo={"root": root})
    context = RepoContext.from_config(config.repo)

    try:
        directories = find_package_dirs(context)
    except ScanError as e:
        raise click.ClickException(str(e)) from e

    console = Console()
    for directory in directories:
        console.print(str(directory), highlight=False, soft_wrap=True)

    noun = "directory" if len(directories) == 1 else "directories"
    Console(stderr=True).print(f"[green]✓[/green] {len(directories)} package {noun}")
