"""Command-line interface for perftrack."""

from perftrack.cli.main import cli, main

__all__ = ["cli", "main"]
