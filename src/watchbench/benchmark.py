# Copyright (c) Syntropy Systems
"""Run the latency benchmark for a list of build tools."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, TYPE_CHECKING, Callable

from watchbench.config import WatchbenchConfig
from watchbench.errors import ConfigError, WatchbenchError
from watchbench.models import BenchmarkReport, ProjectReport
from watchbench.project import create_project
from watchbench.sampler import LatencySampler, Sample
from watchbench.tools import select_projects
from watchbench.workspace import ScopedWorkspace

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from watchbench.tools import BuildTool

logger = logging.getLogger(__name__)


def utcnow() -> str:
    """Get current UTC time as ISO format string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class BenchmarkSettings:
    """Knobs for one benchmark invocation."""

    iterations: int = 1
    warmup_iterations: int = 3
    generated_sources: int = 5000
    startup_timeout: float = 120.0
    signal_timeout: float = 30.0
    max_retries: int | None = 10
    settle_delay: float = 0.1
    cleanup_attempts: int = 16
    base_directory: Path | None = None
    source_directory: Path | None = None

    @classmethod
    def from_config(cls, config: WatchbenchConfig) -> BenchmarkSettings:
        return cls(
            iterations=config.iterations,
            warmup_iterations=config.warmup_iterations,
            generated_sources=config.generated_sources,
            startup_timeout=config.startup_timeout,
            signal_timeout=config.signal_timeout,
            max_retries=config.max_retries,
            settle_delay=config.settle_delay,
            cleanup_attempts=config.cleanup_attempts,
        )

    def validate(self) -> None:
        """Raise ConfigError if any setting is out of range."""
        problems: list[str] = []
        if self.iterations < 1:
            problems.append(f"iterations must be at least 1, got {self.iterations}")
        if self.cleanup_attempts < 1:
            problems.append(
                f"cleanup_attempts must be at least 1, got {self.cleanup_attempts}"
            )
        if self.max_retries is not None and self.max_retries < 0:
            problems.append(f"max_retries must not be negative, got {self.max_retries}")
        for name in (
            "warmup_iterations",
            "generated_sources",
            "startup_timeout",
            "signal_timeout",
            "settle_delay",
        ):
            value = getattr(self, name)
            if value < 0:
                problems.append(f"{name} must not be negative, got {value}")

        if problems:
            msg = "Invalid settings: " + "; ".join(problems)
            raise ConfigError(msg)


def _benchmark_project(
    report: ProjectReport,
    tool: BuildTool,
    workspace: Path,
    settings: BenchmarkSettings,
    sampler: LatencySampler,
    stdout: IO[bytes] | None,
    stderr: IO[bytes] | None,
) -> None:
    with create_project(
        tool,
        workspace,
        source_dir=settings.source_directory,
        settle_delay=settings.settle_delay,
        stdout=stdout,
        stderr=stderr,
    ) as project:
        report.baseline = sampler.run(
            project, settings.iterations, settings.warmup_iterations
        )

        if settings.generated_sources > 0:
            _ = project.generate_sources(settings.generated_sources)
            report.generated_sources = settings.generated_sources
            logger.info("generated %d sources", settings.generated_sources)
            report.stress = sampler.run(
                project, settings.iterations, settings.warmup_iterations
            )


def run_benchmark(
    project_names: Iterable[str],
    settings: BenchmarkSettings,
    tools: Mapping[str, BuildTool],
    on_sample: Callable[[str, Sample], None] | None = None,
    stdout: IO[bytes] | None = None,
    stderr: IO[bytes] | None = None,
) -> BenchmarkReport:
    """Benchmark each recognised project in turn.

    All projects share one workspace, removed when the run ends. A
    failure in one project is recorded in its report and the next
    project still runs. Settings are checked before anything is created,
    and Ctrl+C stops everything after cleanup.
    """
    settings.validate()
    selected = select_projects(project_names, tools)
    report = BenchmarkReport(
        started_at=utcnow(),
        iterations=settings.iterations,
        warmup_iterations=settings.warmup_iterations,
    )

    with ScopedWorkspace(
        parent=settings.base_directory,
        max_attempts=settings.cleanup_attempts,
    ) as workspace:
        for tool in selected:
            logger.info("Benchmarking %s", tool.name)
            sampler = LatencySampler(
                startup_timeout=settings.startup_timeout,
                signal_timeout=settings.signal_timeout,
                max_retries=settings.max_retries,
                on_sample=(
                    (lambda sample, name=tool.name: on_sample(name, sample))
                    if on_sample is not None
                    else None
                ),
            )
            project_report = ProjectReport(project=tool.name)
            report.projects.append(project_report)
            try:
                _benchmark_project(
                    project_report, tool, workspace.path, settings, sampler, stdout, stderr
                )
            except WatchbenchError as e:
                logger.error("%s failed: %s", tool.name, e)  # noqa: TRY400
                project_report.error = str(e)
            except KeyboardInterrupt:
                logger.warning("Interrupted while benchmarking %s", tool.name)
                raise

    report.finished_at = utcnow()
    return report
