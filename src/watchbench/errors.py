# Copyright (c) Syntropy Systems
"""Exceptions raised by watchbench."""

from __future__ import annotations


class WatchbenchError(RuntimeError):
    """Base class for watchbench failures."""


class SetupError(WatchbenchError):
    """A project could not be materialized or its build tool launched."""


class SupervisorClosedError(WatchbenchError):
    """An operation was attempted on a closed process supervisor."""


class WatchStalledError(WatchbenchError):
    """The build tool stopped reacting to source changes."""

    iteration: int
    attempts: int

    def __init__(self, iteration: int, attempts: int) -> None:
        self.iteration = iteration
        self.attempts = attempts
        msg = (
            f"No reaction observed for iteration {iteration} "
            f"after {attempts} attempt(s)"
        )
        super().__init__(msg)


class ConfigError(WatchbenchError):
    """A benchmark setting is out of range."""
