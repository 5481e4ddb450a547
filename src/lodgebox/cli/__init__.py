"""Command-line interface for lodgebox.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save endpoint, token and image upload settings
- submit: Create a lodge or queue it for later
- outbox: List, remove or clear queued submissions
- sync: Run one reconciliation pass
- worker: Deliver the outbox in the background
"""

from __future__ import annotations

import logging
import sys

import click

from lodgebox.cli.config import (
    get_config_dir,
    get_config_file,
    get_state_db_path,
    load_config,
    save_config,
)
from lodgebox.cli.configure import configure
from lodgebox.cli.outbox import outbox
from lodgebox.cli.submit import submit
from lodgebox.cli.sync import sync, worker

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool) -> None:
    """Configure the lodgebox logger to write to stderr.

    Args:
        verbose: Log DEBUG records instead of INFO.
    """
    lodgebox_logger = logging.getLogger("lodgebox")
    for handler in lodgebox_logger.handlers[:]:
        lodgebox_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    lodgebox_logger.addHandler(handler)
    lodgebox_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    lodgebox_logger.propagate = False


@click.group()
@click.version_option(package_name="lodgebox")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """lodgebox - Offline outbox for lodge submissions."""
    setup_logging(verbose)


# Setup
cli.add_command(configure)

# Submissions
cli.add_command(submit)
cli.add_command(outbox)

# Sync
cli.add_command(sync)
cli.add_command(worker)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    "setup_logging",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_state_db_path",
    "load_config",
    "save_config",
]
