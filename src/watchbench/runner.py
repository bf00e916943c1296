# Copyright (c) Syntropy Systems
"""Process supervisor for watch-mode build tools."""
from __future__ import annotations

import contextlib
import ctypes
import logging
import os
import selectors
import signal
import subprocess
import sys
import threading
from typing import IO, TYPE_CHECKING

from typing_extensions import Self

from watchbench.errors import SetupError, SupervisorClosedError

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

logger = logging.getLogger(__name__)

READ_CHUNK = 65536

# Select timeout for the drain loop, bounds how long close() waits for it
DRAIN_POLL_INTERVAL = 0.1


def setup_pdeathsig() -> None:
    """Set PDEATHSIG so child dies when parent dies.

    This prevents orphan build tools when the benchmark crashes.
    Only works on Linux.
    """
    if sys.platform != "linux":
        return
    try:
        libc = ctypes.CDLL("libc.so.6", use_errno=True)
        pr_set_pdeathsig = 1
        libc.prctl(pr_set_pdeathsig, signal.SIGKILL)
    except (AttributeError, OSError):
        # Can't set PDEATHSIG, continue without it
        return


class ProcessSupervisor:
    """Runs a long-lived command and forwards its output.

    Features:
    - Uses start_new_session=True so the whole process group can be killed
    - Sets PDEATHSIG on Linux to prevent orphans
    - Forwards stdout/stderr to the parent's streams from a drain thread
    - close() is idempotent and safe to call from several threads
    """

    command_argv: list[str]
    workdir: Path
    env: dict[str, str]
    _stdout_sink: IO[bytes]
    _stderr_sink: IO[bytes]
    _process: subprocess.Popen[bytes] | None
    _drain_thread: threading.Thread | None
    _shutdown: threading.Event
    _close_lock: threading.Lock
    _closed: bool

    def __init__(
        self,
        command_argv: list[str],
        workdir: Path,
        env: dict[str, str] | None = None,
        stdout: IO[bytes] | None = None,
        stderr: IO[bytes] | None = None,
    ) -> None:
        """Initialize a supervisor.

        Args:
            command_argv: Command as list of argv tokens (no shell)
            workdir: Working directory to run the command in
            env: Additional environment variables
            stdout: Binary sink for the child's stdout (default: our stdout)
            stderr: Binary sink for the child's stderr (default: our stderr)

        """
        self.command_argv = command_argv
        self.workdir = workdir

        # Merge environment
        self.env = os.environ.copy()
        if env:
            self.env.update(env)

        self._stdout_sink = stdout if stdout is not None else sys.stdout.buffer
        self._stderr_sink = stderr if stderr is not None else sys.stderr.buffer
        self._process = None
        self._drain_thread = None
        self._shutdown = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False

    def start(self) -> None:
        """Start the process and its drain thread. Returns immediately."""
        if self._closed:
            msg = "Supervisor is closed"
            raise SupervisorClosedError(msg)
        if self._process is not None:
            return

        try:
            self._process = subprocess.Popen(  # noqa: S603
                self.command_argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.env,
                cwd=str(self.workdir),
                start_new_session=True,  # Creates new process group
                preexec_fn=setup_pdeathsig if sys.platform == "linux" else None,  # noqa: PLW1509
            )
        except OSError as e:
            msg = f"Could not start {self.command_argv[0]!r} in {self.workdir}: {e}"
            raise SetupError(msg) from e

        logger.info(
            "Started %s (pid %d) in %s",
            " ".join(self.command_argv),
            self._process.pid,
            self.workdir,
        )

        self._drain_thread = threading.Thread(
            target=self._drain_loop,
            name="process-io-thread",
            daemon=True,
        )
        self._drain_thread.start()

    def _drain_loop(self) -> None:
        """Copy whatever the child has written to our own streams."""
        process = self._process
        if process is None or process.stdout is None or process.stderr is None:
            return

        selector = selectors.DefaultSelector()
        try:
            _ = selector.register(process.stdout, selectors.EVENT_READ, self._stdout_sink)
            _ = selector.register(process.stderr, selectors.EVENT_READ, self._stderr_sink)

            while not self._shutdown.is_set() and selector.get_map():
                for key, _ in selector.select(timeout=DRAIN_POLL_INTERVAL):
                    chunk = os.read(key.fd, READ_CHUNK)
                    if not chunk:
                        selector.unregister(key.fileobj)
                        continue
                    sink: IO[bytes] = key.data
                    _ = sink.write(chunk)
                    sink.flush()
        except (OSError, ValueError):
            # Pipe closed underneath us
            pass
        finally:
            selector.close()

    def close(self) -> None:
        """Kill the process group and wait for the drain thread to exit.

        Only the first call does anything.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        process = self._process
        if process is not None:
            self._kill(process)

        self._shutdown.set()
        if self._drain_thread is not None:
            self._drain_thread.join()

        if process is not None:
            for stream in (process.stdout, process.stderr):
                if stream is not None:
                    with contextlib.suppress(OSError):
                        stream.close()

    def _kill(self, process: subprocess.Popen[bytes]) -> None:
        if process.poll() is None:
            # With start_new_session the process group id is the child's pid
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except (OSError, ProcessLookupError):
                logger.debug("Process group %d already gone", process.pid)

        # Wait for process to die
        with contextlib.suppress(subprocess.TimeoutExpired):
            _ = process.wait(timeout=5.0)

        logger.info("Stopped %s (exit code %s)", self.command_argv[0], process.returncode)

    @property
    def pid(self) -> int | None:
        """Get the process ID."""
        if self._process is None:
            return None
        return self._process.pid

    @property
    def exit_code(self) -> int | None:
        """Get the exit code if finished."""
        if self._process is None:
            return None
        return self._process.poll()

    @property
    def is_running(self) -> bool:
        """Check if the process is still running."""
        if self._process is None:
            return False
        return self._process.poll() is None

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
