# Copyright (c) Syntropy Systems
"""Pydantic models for benchmark results."""

from __future__ import annotations

from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field


class WatchbenchBaseModel(BaseModel):
    """Base model with shared config for watchbench schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class RunResult(WatchbenchBaseModel):
    """Aggregate of one sampler run. Individual samples are not kept."""

    iterations: int
    total_elapsed_ms: int
    average_ms: int


class ProjectReport(WatchbenchBaseModel):
    """Results for one build tool."""

    project: str
    baseline: Optional[RunResult] = None
    generated_sources: int = 0
    stress: Optional[RunResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BenchmarkReport(WatchbenchBaseModel):
    """Results of a whole benchmark invocation."""

    started_at: str
    finished_at: Optional[str] = None
    iterations: int
    warmup_iterations: int
    projects: list[ProjectReport] = Field(default_factory=list)
