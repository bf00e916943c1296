# Copyright (c) Syntropy Systems
"""Configuration management for watchbench."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml

from watchbench.tools import DEFAULT_TOOLS, BuildTool, parse_tool

CONFIG_FILENAME = "watchbench.yaml"


@dataclass
class WatchbenchConfig:
    """Configuration for watchbench."""

    # Measured iterations per run
    iterations: int = 1

    # Iterations executed before measuring, excluded from the average
    warmup_iterations: int = 3

    # Filler sources written before the second run of each project
    generated_sources: int = 5000

    # Best-effort wait for the build tool's startup scan (seconds)
    startup_timeout: float = 120.0

    # Wait for the marker file after each source change (seconds)
    signal_timeout: float = 30.0

    # Consecutive missed reactions before giving up, None for no limit
    max_retries: int | None = 10

    # Pause between writing the main source and the test driver (seconds)
    settle_delay: float = 0.1

    # Re-scan attempts per directory when the workspace is removed
    cleanup_attempts: int = 16

    # Extra or overriding build tools, keyed by project name
    tools: dict[str, BuildTool] = field(default_factory=dict)

    def all_tools(self) -> dict[str, BuildTool]:
        """Default build tools merged with the configured ones."""
        merged = dict(DEFAULT_TOOLS)
        merged.update(self.tools)
        return merged


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find the nearest watchbench.yaml by walking up from start_path.

    Returns None if no config file is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        current = current.parent

    # Check root
    candidate = current / CONFIG_FILENAME
    if candidate.is_file():
        return candidate

    return None


def get_global_config_dir() -> Path:
    """Get the global watchbench config directory (~/.watchbench)."""
    return Path.home() / ".watchbench"


def _number(data: dict[str, object], key: str) -> float | None:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def load_config(config_path: Path | None = None) -> WatchbenchConfig:
    """Load configuration from a YAML file or defaults.

    Looks for config in:
    1. Provided config_path
    2. Nearest watchbench.yaml walking up from the cwd
    3. ~/.watchbench/config.yaml
    4. Defaults
    """
    config = WatchbenchConfig()

    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        global_config = get_global_config_dir() / "config.yaml"
        if global_config.exists():
            config_path = global_config

    if config_path is None or not config_path.exists():
        return config

    with config_path.open() as f:
        data = cast("dict[str, object]", yaml.safe_load(f) or {})

    for key in ("iterations", "warmup_iterations", "generated_sources", "cleanup_attempts"):
        value = _number(data, key)
        if value is not None:
            setattr(config, key, int(value))

    for key in ("startup_timeout", "signal_timeout", "settle_delay"):
        value = _number(data, key)
        if value is not None:
            setattr(config, key, float(value))

    if "max_retries" in data:
        max_retries = _number(data, "max_retries")
        config.max_retries = int(max_retries) if max_retries is not None else None

    tools = data.get("tools")
    if isinstance(tools, dict):
        for name, tool_data in cast("dict[str, object]", tools).items():
            if isinstance(tool_data, dict):
                config.tools[str(name)] = parse_tool(
                    str(name), cast("dict[str, object]", tool_data)
                )

    return config


def default_config_data() -> dict[str, object]:
    """Defaults written by ``watchbench init``."""
    config = WatchbenchConfig()
    return {
        "iterations": config.iterations,
        "warmup_iterations": config.warmup_iterations,
        "generated_sources": config.generated_sources,
        "startup_timeout": config.startup_timeout,
        "signal_timeout": config.signal_timeout,
        "max_retries": config.max_retries,
        "settle_delay": config.settle_delay,
    }
