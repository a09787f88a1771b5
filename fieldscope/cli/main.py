#!/usr/bin/env python3
"""Main CLI entry point for fieldscope."""
from __future__ import annotations

import logging
import sys

import click
from dotenv import load_dotenv
from rich.console import Console

from fieldscope.config import get_settings

from .commands import classify, learning

console = Console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(version="0.1.0", prog_name="fieldscope")
def cli(verbose: bool):
    """
    fieldscope - classify form fields and learn from corrections.

    Scan saved pages, correct misclassified controls, and retrain
    the pattern library from accumulated corrections.
    """
    load_dotenv()
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")


# Register all commands
cli.add_command(classify.classify_command)
cli.add_command(learning.correct_command)
cli.add_command(learning.corrections_command)
cli.add_command(learning.retrain_command)


def main():
    """Entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
