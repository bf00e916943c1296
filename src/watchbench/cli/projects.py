# Copyright (c) Syntropy Systems
"""watchbench projects command."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from watchbench.config import load_config

console = Console()


def projects(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (default: nearest watchbench.yaml)",
    ),
) -> None:
    """List the projects that can be benchmarked."""
    config = load_config(config_path)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Project")
    table.add_column("Template")
    table.add_column("Watch command")

    for name, tool in sorted(config.all_tools().items()):
        table.add_row(name, tool.template, " ".join(tool.command))

    console.print(table)
