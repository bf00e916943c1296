# Copyright (c) Syntropy Systems
"""Filler sources that make a project look bigger to the build tool."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

GENERATED_PACKAGE = "sbt.benchmark.blah"
FILLER_LINES = 75
FILLER = "// " + "*" * 66


def generated_source(counter: int) -> str:
    """Source text for ``Blah<counter>``: an empty class plus comment padding."""
    lines = [f"package {GENERATED_PACKAGE}", "", f"class Blah{counter}"]
    lines.extend(FILLER for _ in range(FILLER_LINES))
    return "\n".join(lines) + "\n"


def generate_sources(directory: Path, count: int) -> list[Path]:
    """Write ``Blah1.scala`` to ``Blah<count>.scala`` into ``directory``.

    Existing files with the same names are overwritten with identical content.
    """
    if count < 0:
        msg = f"count must not be negative, got {count}"
        raise ValueError(msg)

    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for i in range(1, count + 1):
        path = directory / f"Blah{i}.scala"
        _ = path.write_text(generated_source(i))
        written.append(path)
    return written
