# Copyright (c) Syntropy Systems
"""Logging setup shared by the CLI commands."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich, DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # watchdog is chatty at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)
