"""permutest CLI - Command line interface for permutest."""

from __future__ import annotations

from permutest.cli.commands import cli


def main() -> None:
    """Main entry point for the permutest CLI."""
    cli()


__all__ = ["cli", "main"]
