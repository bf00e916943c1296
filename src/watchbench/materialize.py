# Copyright (c) Syntropy Systems
"""Copy template projects into a workspace and write the benchmark sources."""
from __future__ import annotations

import logging
import time
from importlib.resources import files
from pathlib import Path
from typing import TYPE_CHECKING, Union

from watchbench.errors import SetupError

if TYPE_CHECKING:
    from importlib.abc import Traversable

    TemplateRoot = Union[Path, Traversable]

logger = logging.getLogger(__name__)

SHARED_TEMPLATE = "shared"
MAIN_SOURCE = "AkkaMain.scala"
TEST_SOURCE = "AkkaPerfTest.scala"


def source_directory(config: str) -> Path:
    """Relative source root for ``config`` ("main" or "test")."""
    return Path("src") / config / "scala" / "sbt" / "benchmark"


def template_root(source_dir: Path | None = None) -> TemplateRoot:
    """Where templates are read from.

    Defaults to the templates bundled with the package. Bundled templates
    may live inside a zip, so callers only use the Traversable API.
    """
    if source_dir is not None:
        return source_dir
    return files("watchbench") / "templates"


def _copy_tree(source: TemplateRoot, destination: Path) -> int:
    destination.mkdir(parents=True, exist_ok=True)
    copied = 0
    for child in source.iterdir():
        target = destination / child.name
        if child.is_dir():
            copied += _copy_tree(child, target)
        elif child.is_file():
            _ = target.write_bytes(child.read_bytes())
            copied += 1
    return copied


def copy_template(
    name: str,
    destination: Path,
    source_dir: Path | None = None,
) -> Path:
    """Copy template ``name`` to ``destination / name`` byte for byte."""
    source = template_root(source_dir) / name
    if not source.is_dir():
        msg = f"No project template named {name!r}"
        raise SetupError(msg)

    target = destination / name
    try:
        copied = _copy_tree(source, target)
    except OSError as e:
        msg = f"Could not copy template {name!r} to {target}: {e}"
        raise SetupError(msg) from e

    logger.debug("Copied %d file(s) from template %s to %s", copied, name, target)
    return target


def load_source_file(name: str, source_dir: Path | None = None) -> str:
    """Read one of the shared benchmark sources."""
    source = template_root(source_dir) / SHARED_TEMPLATE / name
    try:
        return source.read_text()
    except OSError as e:
        msg = f"Could not read shared source {name!r}: {e}"
        raise SetupError(msg) from e


def write_sources(
    project_root: Path,
    settle_delay: float = 0.1,
    source_dir: Path | None = None,
) -> tuple[Path, str]:
    """Write the main source and the test driver into ``project_root``.

    Returns the main source's path and its original content.
    """
    main_content = load_source_file(MAIN_SOURCE, source_dir)
    test_content = load_source_file(TEST_SOURCE, source_dir)
    main_path = project_root / source_directory("main") / MAIN_SOURCE
    test_path = project_root / source_directory("test") / TEST_SOURCE

    try:
        main_path.parent.mkdir(parents=True, exist_ok=True)
        _ = main_path.write_text(main_content)

        # Let the build tool's initial scan see the main source first
        if settle_delay > 0:
            time.sleep(settle_delay)

        test_path.parent.mkdir(parents=True, exist_ok=True)
        _ = test_path.write_text(test_content)
    except OSError as e:
        msg = f"Could not write benchmark sources to {project_root}: {e}"
        raise SetupError(msg) from e

    return main_path, main_content
