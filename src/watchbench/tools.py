# Copyright (c) Syntropy Systems
"""Build tools that can be benchmarked."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildTool:
    """A build tool and the watch-mode command used to drive it."""

    # Project identifier accepted on the command line
    name: str

    # Directory under the template root that holds the project tree
    template: str

    # Watch-mode invocation, run from the project's base directory
    command: tuple[str, ...]

    # Nested sub-project that holds the sources, if any
    project_subdir: str | None = None

    @property
    def executable(self) -> str:
        """Name of the program the watch command runs."""
        return self.command[0]


DEFAULT_TOOLS: dict[str, BuildTool] = {
    tool.name: tool
    for tool in (
        BuildTool("sbt-0.13.17", "sbt-0.13.17", ("sbt", "~test")),
        BuildTool("sbt-1.3.0", "sbt-1.3.0", ("sbt", "~test")),
        BuildTool(
            "mill-0.3.6",
            "mill",
            ("mill", "-w", "AkkaTest.test"),
            project_subdir="AkkaTest",
        ),
        BuildTool("gradle-5.4.1", "gradle-5.4.1", ("gradle", "-t", "spec")),
    )
}


def parse_tool(name: str, data: Mapping[str, object]) -> BuildTool:
    """Build a BuildTool from a config mapping.

    Expects a ``command`` list and optionally ``template`` and
    ``project_subdir``. The template defaults to the tool name.
    """
    command = data.get("command")
    if not isinstance(command, list) or not command:
        msg = f"Tool {name!r} needs a non-empty 'command' list"
        raise ValueError(msg)

    template = data.get("template", name)
    project_subdir = data.get("project_subdir")

    return BuildTool(
        name=name,
        template=str(template),
        command=tuple(str(part) for part in command),
        project_subdir=str(project_subdir) if project_subdir else None,
    )


def select_projects(
    tokens: Iterable[str],
    tools: Mapping[str, BuildTool],
) -> list[BuildTool]:
    """Pick the recognised project names out of ``tokens``, keeping order.

    Unrecognised tokens are dropped.
    """
    selected: list[BuildTool] = []
    for token in tokens:
        tool = tools.get(token)
        if tool is None:
            logger.debug("Ignoring unknown project %r", token)
            continue
        selected.append(tool)
    return selected
