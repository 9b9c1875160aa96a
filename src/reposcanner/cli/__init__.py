"""reposcanner CLI."""

from reposcanner.cli.main import cli

__all__ = ["cli"]
