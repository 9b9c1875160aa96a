"""Entry point for ``python -m reposcanner``."""

from reposcanner.cli.main import cli

if __name__ == "__main__":
    cli()
