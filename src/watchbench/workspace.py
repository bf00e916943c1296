# Copyright (c) Syntropy Systems
"""Private temporary directory with race-tolerant cleanup."""
from __future__ import annotations

import errno
import logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING

from typing_extensions import Self

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 16


def _remove_children(directory: Path, max_attempts: int) -> None:
    with os.scandir(directory) as entries:
        children = list(entries)

    for entry in children:
        path = Path(entry.path)
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except FileNotFoundError:
            continue
        if is_dir:
            remove_tree(path, max_attempts)
        else:
            with suppress(FileNotFoundError):
                path.unlink()


def remove_tree(directory: Path, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
    """Recursively delete ``directory``.

    Other processes may keep creating files while this runs. A directory
    that is still not empty when removed is scanned again, up to
    ``max_attempts`` times, before the error is raised. Entries that
    vanish on their own are ignored.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            _remove_children(directory, max_attempts)
        except FileNotFoundError:
            return

        try:
            directory.rmdir()
        except FileNotFoundError:
            return
        except OSError as e:
            if e.errno not in (errno.ENOTEMPTY, errno.EEXIST):
                raise
            if attempt == max_attempts:
                raise
            logger.debug("%s changed during removal, rescanning", directory)
        else:
            return


class ScopedWorkspace:
    """A private temporary directory removed on exit.

    Use as a context manager so the directory is removed on every exit
    path:

        with ScopedWorkspace() as workspace:
            project_dir = workspace.path / "sbt-1.3.0"
    """

    parent: Path | None
    prefix: str
    max_attempts: int
    _path: Path | None

    def __init__(
        self,
        parent: Path | None = None,
        prefix: str = "watchbench-",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Initialize a workspace.

        Args:
            parent: Directory to create the workspace in (default: system temp)
            prefix: Prefix of the generated directory name
            max_attempts: Re-scan attempts per directory during removal

        """
        self.parent = parent
        self.prefix = prefix
        self.max_attempts = max_attempts
        self._path = None

    def create(self) -> Path:
        """Allocate the directory. Calling it again returns the same path."""
        if self._path is not None:
            return self._path

        if self.parent is not None:
            self.parent.mkdir(parents=True, exist_ok=True)
        created = tempfile.mkdtemp(
            prefix=self.prefix,
            dir=str(self.parent) if self.parent is not None else None,
        )
        self._path = Path(os.path.realpath(created))
        logger.debug("Created workspace %s", self._path)
        return self._path

    @property
    def path(self) -> Path:
        """The workspace directory."""
        if self._path is None:
            msg = "Workspace has not been created"
            raise RuntimeError(msg)
        return self._path

    def destroy(self) -> None:
        """Remove the directory and everything in it."""
        if self._path is None:
            return
        path = self._path
        remove_tree(path, self.max_attempts)
        self._path = None
        logger.debug("Removed workspace %s", path)

    def __enter__(self) -> Self:
        _ = self.create()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.destroy()
