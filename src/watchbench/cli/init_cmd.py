# Copyright (c) Syntropy Systems
"""watchbench init command."""

from pathlib import Path

import typer
import yaml
from rich.console import Console

from watchbench.config import CONFIG_FILENAME, default_config_data

console = Console()


def init(
    path: Path = typer.Argument(
        Path(),
        help="Directory to write watchbench.yaml to (default: current directory)",
    ),
) -> None:
    """Write a watchbench.yaml with the default settings."""
    target = path.resolve()
    config_path = target / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]Already initialized:[/yellow] {config_path}")
        return

    target.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as f:
        yaml.dump(default_config_data(), f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]Created config:[/green] {config_path}")
