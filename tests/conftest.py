# Copyright (c) Syntropy Systems
"""Pytest fixtures for watchbench tests."""

import os
import sys
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from watchbench.tools import BuildTool

# Store original cwd at module load time
_original_cwd = Path.cwd()

# Stands in for a watch-mode build tool: whenever the main source changes,
# wait a little and rewrite the marker file.
FAKE_TOOL = '''
import os
import sys
import time

delay = float(sys.argv[1])
react = sys.argv[2] == "react"
main = os.path.join("src", "main", "scala", "sbt", "benchmark", "AkkaMain.scala")
watch_file = os.environ["WATCHBENCH_WATCH_FILE"]
print("fake tool watching", main, flush=True)

last = None
while True:
    try:
        mtime = os.stat(main).st_mtime_ns
    except OSError:
        mtime = None
    if mtime is not None and mtime != last:
        last = mtime
        if react:
            time.sleep(delay)
            with open(watch_file, "w") as f:
                f.write(str(time.time()))
    time.sleep(0.005)
'''


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def chdir_temp(temp_dir: Path) -> Generator[Path, None, None]:
    """Run the test from inside temp_dir."""
    os.chdir(temp_dir)

    yield temp_dir

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def fake_templates(temp_dir: Path) -> Path:
    """A template directory with a 'fake' project and the shared sources."""
    root = temp_dir / "templates"
    shared = root / "shared"
    shared.mkdir(parents=True)
    _ = (shared / "AkkaMain.scala").write_text("package sbt.benchmark\n\nobject AkkaMain\n")
    _ = (shared / "AkkaPerfTest.scala").write_text("package sbt.benchmark\n\nclass AkkaPerfTest\n")

    project = root / "fake"
    (project / "project").mkdir(parents=True)
    _ = (project / "build.sbt").write_text('name := "fake"\n')
    _ = (project / "project" / "build.properties").write_text("sbt.version=1.3.0\n")

    script = temp_dir / "fake_tool.py"
    _ = script.write_text(FAKE_TOOL)
    return root


@pytest.fixture
def make_fake_tool(fake_templates: Path) -> Callable[..., BuildTool]:
    """Factory for BuildTools that run the fake watch-mode script."""
    script = fake_templates.parent / "fake_tool.py"

    def make(name: str = "fake", delay: float = 0.02, react: bool = True) -> BuildTool:
        return BuildTool(
            name=name,
            template="fake",
            command=(
                sys.executable,
                "-u",
                str(script),
                str(delay),
                "react" if react else "ignore",
            ),
        )

    return make
