# Copyright (c) Syntropy Systems
"""watchbench run command."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from watchbench.benchmark import BenchmarkSettings, run_benchmark
from watchbench.cli.logs import setup_logging
from watchbench.config import load_config
from watchbench.errors import WatchbenchError

if TYPE_CHECKING:
    from watchbench.models import BenchmarkReport, RunResult

console = Console()


def _format_result(result: RunResult | None) -> str:
    if result is None:
        return "-"
    return f"{result.average_ms} ms"


def build_results_table(report: BenchmarkReport) -> Table:
    """Build the per-project latency table."""
    table = Table(title="Watch latency", show_header=True, header_style="bold")
    table.add_column("Project")
    table.add_column("Average", justify="right")
    table.add_column("Sources", justify="right")
    table.add_column("Average (more sources)", justify="right")
    table.add_column("Status")

    for project in report.projects:
        status = "[green]ok[/green]" if project.ok else f"[red]{escape(project.error or '')}[/red]"
        table.add_row(
            project.project,
            _format_result(project.baseline),
            str(project.generated_sources) if project.generated_sources else "-",
            _format_result(project.stress),
            status,
        )

    return table


def run(
    projects: Optional[List[str]] = typer.Argument(
        None,
        help="Projects to benchmark (unknown names are ignored)",
        show_default=False,
    ),
    base_directory: Optional[Path] = typer.Option(
        None,
        "--base-directory", "-b",
        help="Directory to create the temporary workspace in",
    ),
    source_directory: Optional[Path] = typer.Option(
        None,
        "--source-directory", "-s",
        help="Directory of project templates to use instead of the bundled ones",
    ),
    iterations: Optional[int] = typer.Option(
        None,
        "--iterations", "-i",
        min=1,
        help="Measured iterations per run [default: 1]",
    ),
    warmup_iterations: Optional[int] = typer.Option(
        None,
        "--warmup-iterations", "-w",
        min=0,
        help="Unmeasured iterations before each run [default: 3]",
    ),
    sources: Optional[int] = typer.Option(
        None,
        "--sources",
        min=0,
        help="Filler sources generated before the second run (0 to skip) [default: 5000]",
    ),
    max_retries: Optional[int] = typer.Option(
        None,
        "--max-retries",
        min=0,
        help="Consecutive missed reactions before a project is abandoned [default: 10]",
    ),
    startup_timeout: Optional[float] = typer.Option(
        None,
        "--startup-timeout",
        min=0.0,
        help="Seconds to wait for the build tool's first build [default: 120]",
    ),
    signal_timeout: Optional[float] = typer.Option(
        None,
        "--signal-timeout",
        min=0.0,
        help="Seconds to wait for a reaction to each change [default: 30]",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (default: nearest watchbench.yaml)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Write the results as JSON",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug logging",
    ),
) -> None:
    """Measure how quickly build tools react to a source change.

    Each project is copied into a temporary directory and its build tool
    started in watch mode. The main source is then changed repeatedly and
    the time until the tests rewrite watch.out is recorded.

    Examples:

        watchbench run sbt-1.3.0 gradle-5.4.1

        watchbench run -i 10 -w 5 --sources 1000 mill-0.3.6
    """
    setup_logging(verbose)

    if config_path is not None and not config_path.exists():
        console.print(f"[red]Error:[/red] Config file not found: {config_path}")
        raise typer.Exit(1)

    config = load_config(config_path)
    settings = BenchmarkSettings.from_config(config)
    settings.base_directory = base_directory
    settings.source_directory = source_directory
    if iterations is not None:
        settings.iterations = iterations
    if warmup_iterations is not None:
        settings.warmup_iterations = warmup_iterations
    if sources is not None:
        settings.generated_sources = sources
    if max_retries is not None:
        settings.max_retries = max_retries
    if startup_timeout is not None:
        settings.startup_timeout = startup_timeout
    if signal_timeout is not None:
        settings.signal_timeout = signal_timeout

    try:
        report = run_benchmark(projects or [], settings, config.all_tools())
    except WatchbenchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130) from None

    if report.projects:
        console.print(build_results_table(report))
    else:
        console.print("[yellow]No projects selected[/yellow]")

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        _ = output.write_text(report.model_dump_json(indent=2))
        console.print(f"[dim]Results written to {output}[/dim]")

    if any(not project.ok for project in report.projects):
        raise typer.Exit(1)
