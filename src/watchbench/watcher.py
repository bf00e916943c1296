# Copyright (c) Syntropy Systems
"""File change signals backed by watchdog."""
from __future__ import annotations

import logging
import os
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from typing_extensions import Self
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

if TYPE_CHECKING:
    from types import TracebackType

    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1024

_SIGNAL_EVENTS = frozenset({EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED})


def _as_str(path: bytes | str) -> str:
    return os.fsdecode(path)


class Subscription(FileSystemEventHandler):
    """Change signals for a single file.

    Signals carry no payload. They only say that the file changed
    after the subscription was registered.
    """

    path: Path
    _signals: queue.Queue[int]
    _target: str

    def __init__(self, path: Path, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        super().__init__()
        self.path = path
        self._target = os.path.normcase(str(path))
        self._signals = queue.Queue(maxsize=maxsize)

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory or event.event_type not in _SIGNAL_EVENTS:
            return False
        paths = [_as_str(event.src_path)]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(_as_str(dest_path))
        return any(os.path.normcase(p) == self._target for p in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Queue a signal when the watched file is created, modified or moved."""
        if not self._matches(event):
            return
        try:
            self._signals.put_nowait(1)
        except queue.Full:
            # Signals are only counted; a full queue already says "changed"
            pass

    def clear(self) -> int:
        """Discard buffered signals, returning how many were dropped."""
        dropped = 0
        while True:
            try:
                _ = self._signals.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1

    def poll(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for the next signal."""
        try:
            _ = self._signals.get(timeout=timeout)
        except queue.Empty:
            return False
        return True


class ChangeWatcher:
    """Delivers change signals for individual files.

    Events arrive on watchdog's observer thread and are handed over
    through each subscription's bounded queue.
    """

    _observer: BaseObserver
    _lock: threading.Lock
    _closed: bool

    def __init__(self) -> None:
        self._observer = Observer()
        self._observer.daemon = True
        self._lock = threading.Lock()
        self._closed = False
        self._observer.start()

    def register(self, path: Path, maxsize: int = DEFAULT_QUEUE_SIZE) -> Subscription:
        """Start watching ``path``. The file itself does not need to exist yet."""
        path = Path(os.path.abspath(path))
        directory = path.parent
        directory.mkdir(parents=True, exist_ok=True)

        subscription = Subscription(path, maxsize=maxsize)
        with self._lock:
            if self._closed:
                msg = "Watcher is closed"
                raise RuntimeError(msg)
            _ = self._observer.schedule(subscription, str(directory), recursive=False)

        logger.debug("Watching %s", path)
        return subscription

    def close(self) -> None:
        """Stop the observer thread."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._observer.stop()
        self._observer.join()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def observer_backend() -> str:
    """Name of the observer class watchdog picked for this platform."""
    return Observer.__name__
