"""wpsite command-line interface."""

from wpsite.cli.main import cli, main

__all__ = ["cli", "main"]
