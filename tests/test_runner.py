# Copyright (c) Syntropy Systems
"""Tests for the process supervisor."""

from __future__ import annotations

import io
import os
import sys
import threading
import time
from pathlib import Path

import pytest

from watchbench import runner as runner_module
from watchbench.errors import SetupError, SupervisorClosedError
from watchbench.runner import ProcessSupervisor

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")

SLEEPER = [sys.executable, "-c", "import time; time.sleep(60)"]


class _LockedBytesIO(io.BytesIO):
    """BytesIO that can be read while the drain thread writes to it."""

    def __init__(self) -> None:
        super().__init__()
        self.lock = threading.Lock()

    def write(self, data: bytes) -> int:  # type: ignore[override]
        with self.lock:
            return super().write(data)

    def text(self) -> str:
        with self.lock:
            return self.getvalue().decode()


def _wait_for(predicate, timeout: float = 10.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


class TestOutputForwarding:
    """Test that child output reaches the parent's streams."""

    def test_forwards_stdout_and_stderr(self, temp_dir: Path) -> None:
        """Test that both streams are drained into their own sinks."""
        out = _LockedBytesIO()
        err = _LockedBytesIO()
        script = (
            "import sys, time\n"
            "print('hello from stdout', flush=True)\n"
            "sys.stderr.write('hello from stderr\\n'); sys.stderr.flush()\n"
            "time.sleep(60)\n"
        )
        supervisor = ProcessSupervisor(
            [sys.executable, "-c", script],
            workdir=temp_dir,
            stdout=out,
            stderr=err,
        )
        supervisor.start()
        try:
            assert _wait_for(lambda: "hello from stdout" in out.text())
            assert _wait_for(lambda: "hello from stderr" in err.text())
            assert "hello from stderr" not in out.text()
        finally:
            supervisor.close()

    def test_runs_in_workdir_with_env(self, temp_dir: Path) -> None:
        """Test that the child sees its workdir and extra environment."""
        out = _LockedBytesIO()
        script = (
            "import os, time\n"
            "print(os.getcwd(), os.environ['WATCHBENCH_TEST'], flush=True)\n"
            "time.sleep(60)\n"
        )
        supervisor = ProcessSupervisor(
            [sys.executable, "-c", script],
            workdir=temp_dir,
            env={"WATCHBENCH_TEST": "marker-value"},
            stdout=out,
            stderr=io.BytesIO(),
        )
        with supervisor:
            assert _wait_for(lambda: "marker-value" in out.text())
            assert str(temp_dir) in out.text()

    def test_drain_ends_when_child_exits(self, temp_dir: Path) -> None:
        """Test that the drain thread stops on its own at EOF."""
        out = _LockedBytesIO()
        supervisor = ProcessSupervisor(
            [sys.executable, "-c", "print('done')"],
            workdir=temp_dir,
            stdout=out,
            stderr=io.BytesIO(),
        )
        supervisor.start()
        assert supervisor._drain_thread is not None
        supervisor._drain_thread.join(timeout=10.0)

        assert not supervisor._drain_thread.is_alive()
        assert "done" in out.text()
        supervisor.close()
        assert supervisor.exit_code == 0


class TestClose:
    """Test supervisor shutdown."""

    def test_close_kills_process(self, temp_dir: Path) -> None:
        """Test that close() terminates a running child."""
        supervisor = ProcessSupervisor(
            SLEEPER, workdir=temp_dir, stdout=io.BytesIO(), stderr=io.BytesIO()
        )
        supervisor.start()
        assert supervisor.is_running

        supervisor.close()

        assert not supervisor.is_running
        assert supervisor.exit_code is not None
        assert supervisor.exit_code != 0

    def test_concurrent_close_kills_once(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that many concurrent close() calls send exactly one kill."""
        kills: list[tuple[int, int]] = []
        lock = threading.Lock()
        real_killpg = os.killpg

        def counting_killpg(pgid: int, sig: int) -> None:
            with lock:
                kills.append((pgid, sig))
            real_killpg(pgid, sig)

        monkeypatch.setattr(runner_module.os, "killpg", counting_killpg)

        supervisor = ProcessSupervisor(
            SLEEPER, workdir=temp_dir, stdout=io.BytesIO(), stderr=io.BytesIO()
        )
        supervisor.start()
        assert supervisor._drain_thread is not None

        barrier = threading.Barrier(8)

        def close_it() -> None:
            _ = barrier.wait()
            supervisor.close()

        threads = [threading.Thread(target=close_it) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert len(kills) == 1
        assert not supervisor._drain_thread.is_alive()
        assert not supervisor.is_running

    def test_close_kills_entire_process_group(self, temp_dir: Path) -> None:
        """Test that close() kills grandchildren too."""
        marker_file = temp_dir / "child_alive.txt"
        script = f"""
import subprocess
import sys
import time

child = subprocess.Popen([
    sys.executable, '-c',
    "import time; f=open({str(marker_file)!r}, 'a'); [f.write(str(i)) or f.flush() or time.sleep(0.1) for i in range(1000)]"
])
time.sleep(60)
"""
        supervisor = ProcessSupervisor(
            [sys.executable, "-c", script],
            workdir=temp_dir,
            stdout=io.BytesIO(),
            stderr=io.BytesIO(),
        )
        supervisor.start()
        assert _wait_for(marker_file.exists)

        supervisor.close()

        time.sleep(0.5)
        final_size = marker_file.stat().st_size
        time.sleep(0.3)
        assert marker_file.stat().st_size == final_size, "Grandchild should be dead"

    def test_close_before_start(self, temp_dir: Path) -> None:
        """Test that closing a never-started supervisor is harmless."""
        supervisor = ProcessSupervisor(SLEEPER, workdir=temp_dir)
        supervisor.close()
        supervisor.close()

        assert supervisor.closed
        assert supervisor.pid is None
        assert not supervisor.is_running

    def test_start_after_close_raises(self, temp_dir: Path) -> None:
        """Test that a closed supervisor refuses to start again."""
        supervisor = ProcessSupervisor(
            SLEEPER, workdir=temp_dir, stdout=io.BytesIO(), stderr=io.BytesIO()
        )
        supervisor.start()
        supervisor.close()

        with pytest.raises(SupervisorClosedError):
            supervisor.start()
        assert not supervisor.is_running


class TestStartFailure:
    """Test launch errors."""

    def test_missing_executable(self, temp_dir: Path) -> None:
        """Test that a missing program is reported as a setup error."""
        supervisor = ProcessSupervisor(
            ["watchbench-no-such-program"], workdir=temp_dir
        )

        with pytest.raises(SetupError, match="watchbench-no-such-program"):
            supervisor.start()

        supervisor.close()
