# Copyright (c) Syntropy Systems
"""Latency sampling: touch a source, wait for the build to react."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from watchbench.errors import WatchStalledError
from watchbench.models import RunResult
from watchbench.watcher import ChangeWatcher

if TYPE_CHECKING:
    from pathlib import Path

    from typing_extensions import Self

    from watchbench.watcher import Subscription

logger = logging.getLogger(__name__)


def modified_millis(path: Path) -> int:
    """Modification time of ``path`` in milliseconds, 0 if it can't be read."""
    try:
        return path.stat().st_mtime_ns // 1_000_000
    except OSError:
        return 0


class SampledProject(Protocol):
    """What the sampler needs from a project."""

    @property
    def watch_file(self) -> Path:
        ...

    def update_main(self) -> int:
        ...


class _Watcher(Protocol):
    def register(self, path: Path) -> Subscription:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> Self:
        ...

    def __exit__(self, *exc_info: object) -> None:
        ...


class SamplerState(str, enum.Enum):
    """Where the sampler is within a run."""

    IDLE = "idle"
    WARMING = "warming"
    MEASURING = "measuring"
    DONE = "done"


@dataclass(frozen=True)
class Sample:
    """One source change and the build's reaction to it, in milliseconds."""

    iteration: int
    mutated_at: int
    reacted_at: int

    @property
    def elapsed(self) -> int:
        return self.reacted_at - self.mutated_at

    @property
    def valid(self) -> bool:
        return self.elapsed > 0

    @property
    def warmup(self) -> bool:
        return self.iteration < 0


class LatencySampler:
    """Measures the delay between a source change and the marker file update."""

    startup_timeout: float
    signal_timeout: float
    max_retries: int | None
    state: SamplerState
    _watcher_factory: Callable[[], _Watcher]
    _on_sample: Callable[[Sample], None] | None

    def __init__(
        self,
        watcher_factory: Callable[[], _Watcher] = ChangeWatcher,
        startup_timeout: float = 120.0,
        signal_timeout: float = 30.0,
        max_retries: int | None = 10,
        on_sample: Callable[[Sample], None] | None = None,
    ) -> None:
        """Initialize a sampler.

        Args:
            watcher_factory: Creates the change watcher used for one run
            startup_timeout: Best-effort wait for the tool's initial build (seconds)
            signal_timeout: Wait for a reaction after each change (seconds)
            max_retries: Consecutive misses allowed per iteration, None for no limit
            on_sample: Called with every sample, valid or not

        """
        self._watcher_factory = watcher_factory
        self.startup_timeout = startup_timeout
        self.signal_timeout = signal_timeout
        self.max_retries = max_retries
        self._on_sample = on_sample
        self.state = SamplerState.IDLE

    def run(
        self,
        project: SampledProject,
        iterations: int,
        warmup_iterations: int,
    ) -> RunResult:
        """Run ``warmup_iterations`` unmeasured and ``iterations`` measured cycles."""
        if iterations < 1:
            msg = f"iterations must be at least 1, got {iterations}"
            raise ValueError(msg)
        if warmup_iterations < 0:
            msg = f"warmup_iterations must not be negative, got {warmup_iterations}"
            raise ValueError(msg)

        watch_file = project.watch_file
        total_elapsed = 0

        try:
            with self._watcher_factory() as watcher:
                # Register before the first change so no reaction is missed
                subscription = watcher.register(watch_file)

                _ = subscription.clear()
                if not subscription.poll(self.startup_timeout):
                    logger.debug("No startup activity on %s", watch_file)

                i = -warmup_iterations
                misses = 0
                while i < iterations:
                    self.state = SamplerState.WARMING if i < 0 else SamplerState.MEASURING

                    _ = subscription.clear()
                    mutated_at = project.update_main()
                    _ = subscription.poll(self.signal_timeout)
                    sample = Sample(
                        iteration=i,
                        mutated_at=mutated_at,
                        reacted_at=modified_millis(watch_file),
                    )

                    logger.info("Took %d ms to run task", sample.elapsed)
                    if self._on_sample is not None:
                        self._on_sample(sample)

                    if not sample.valid:
                        misses += 1
                        if self.max_retries is not None and misses > self.max_retries:
                            raise WatchStalledError(i, misses)
                        continue

                    misses = 0
                    if not sample.warmup:
                        total_elapsed += sample.elapsed
                    i += 1
        except BaseException:
            self.state = SamplerState.IDLE
            raise

        self.state = SamplerState.DONE
        result = RunResult(
            iterations=iterations,
            total_elapsed_ms=total_elapsed,
            average_ms=total_elapsed // iterations,
        )
        logger.info(
            "Ran %d tests. Average latency was %d ms.",
            result.iterations,
            result.average_ms,
        )
        return result
