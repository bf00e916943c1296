# Copyright (c) Syntropy Systems
"""A materialized benchmark project with its build tool running."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

from typing_extensions import Self

from watchbench.errors import SetupError
from watchbench.generator import generate_sources
from watchbench.materialize import copy_template, source_directory, write_sources
from watchbench.runner import ProcessSupervisor
from watchbench.sampler import modified_millis

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from watchbench.tools import BuildTool

logger = logging.getLogger(__name__)

WATCH_FILE = "watch.out"
WATCH_FILE_ENV = "WATCHBENCH_WATCH_FILE"
GENERATED_DIR = "blah"


@dataclass
class Project:
    """A project directory plus the supervisor of its watch-mode build."""

    base_directory: Path
    root_directory: Path
    main_path: Path
    main_content: str
    supervisor: ProcessSupervisor | None = None

    @property
    def watch_file(self) -> Path:
        """Marker file the test driver rewrites on every test run."""
        return self.base_directory / WATCH_FILE

    def update_main(self) -> int:
        """Append a unique comment to the main source.

        Returns the file's new modification time in milliseconds.
        """
        tag = f"\n//{uuid.uuid4()}"
        _ = self.main_path.write_text(self.main_content + tag)
        logger.info("Writing %s to %s", tag.strip(), self.main_path)
        return modified_millis(self.main_path)

    def generate_sources(self, count: int) -> list[Path]:
        """Add ``count`` filler sources next to the main source."""
        directory = self.root_directory / source_directory("main") / GENERATED_DIR
        try:
            return generate_sources(directory, count)
        except OSError as e:
            msg = f"Could not write generated sources to {directory}: {e}"
            raise SetupError(msg) from e

    def close(self) -> None:
        """Stop the build tool."""
        if self.supervisor is not None:
            self.supervisor.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def create_project(
    tool: BuildTool,
    workspace: Path,
    source_dir: Path | None = None,
    settle_delay: float = 0.1,
    stdout: IO[bytes] | None = None,
    stderr: IO[bytes] | None = None,
) -> Project:
    """Copy the tool's template into ``workspace`` and start its watch command.

    The benchmark sources are written after the tool has started so its
    startup scan races a real change. If anything fails after the launch,
    the tool is stopped before the error propagates.
    """
    base = copy_template(tool.template, workspace, source_dir)
    root = base / tool.project_subdir if tool.project_subdir else base

    supervisor = ProcessSupervisor(
        list(tool.command),
        workdir=base,
        env={WATCH_FILE_ENV: str(base / WATCH_FILE)},
        stdout=stdout,
        stderr=stderr,
    )
    try:
        supervisor.start()
        main_path, main_content = write_sources(root, settle_delay, source_dir)
    except BaseException:
        supervisor.close()
        raise

    return Project(
        base_directory=base,
        root_directory=root,
        main_path=main_path,
        main_content=main_content,
        supervisor=supervisor,
    )
