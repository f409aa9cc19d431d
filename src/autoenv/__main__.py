"""Entry point for ``python -m autoenv``."""

from autoenv import cli

if __name__ == "__main__":
    cli.app()
