# Copyright (c) Syntropy Systems
"""watchbench doctor command."""

import shutil
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from watchbench.config import find_config_file, load_config
from watchbench.materialize import MAIN_SOURCE, SHARED_TEMPLATE, TEST_SOURCE, template_root
from watchbench.watcher import observer_backend

console = Console()


def doctor(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (default: nearest watchbench.yaml)",
    ),
    source_directory: Optional[Path] = typer.Option(
        None,
        "--source-directory", "-s",
        help="Template directory to check instead of the bundled one",
    ),
) -> None:
    """Check the benchmark setup and diagnose issues.

    Verifies:
    - Config file location
    - Project templates are present
    - Build tool executables are on PATH
    - File watching backend
    """
    issues: list[str] = []
    warnings: list[str] = []

    # Check config
    found = config_path or find_config_file()
    if found is not None and found.exists():
        console.print(f"[green]\u2713[/green] Config: {found}")
    else:
        console.print("[dim]\u2022[/dim] No watchbench.yaml found, using defaults")
    config = load_config(config_path)

    # Check shared sources
    root = template_root(source_directory)
    for name in (MAIN_SOURCE, TEST_SOURCE):
        if (root / SHARED_TEMPLATE / name).is_file():
            console.print(f"[green]\u2713[/green] Shared source: {name}")
        else:
            console.print(f"[red]\u2717[/red] Shared source missing: {name}")
            issues.append(f"Missing shared source {name}")

    # Check each tool
    for name, tool in sorted(config.all_tools().items()):
        if not (root / tool.template).is_dir():
            console.print(f"[red]\u2717[/red] {name}: template {tool.template!r} not found")
            issues.append(f"{name}: missing template")
            continue

        executable = shutil.which(tool.executable)
        if executable:
            console.print(f"[green]\u2713[/green] {name}: {executable}")
        else:
            console.print(f"[yellow]\u26a0[/yellow] {name}: {tool.executable!r} not on PATH")
            warnings.append(f"{name}: {tool.executable} not installed")

    console.print(f"[dim]\u2022[/dim] File watching backend: {observer_backend()}")

    # Summary
    console.print()
    if issues:
        console.print(f"[red]Found {len(issues)} issue(s)[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
        raise typer.Exit(1)
    if warnings:
        console.print(f"[yellow]Found {len(warnings)} warning(s)[/yellow]")
        for warning in warnings:
            console.print(f"  - {warning}")
    else:
        console.print("[green]All checks passed[/green]")
