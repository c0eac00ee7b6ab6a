"""Utility functions for embedded ClickHouse."""

import shutil
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any


class Timer:
    """Context manager measuring how long a download or startup took.

    ``str(timer)`` renders e.g. ``"Download took 12.3s"`` for log messages.
    """

    def __init__(self, description: str = "Operation"):
        self.description = description
        self.start_time: float | None = None
        self.end_time: float | None = None

    def __enter__(self) -> "Timer":
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.monotonic()

    @property
    def elapsed(self) -> float:
        """Return elapsed seconds, still counting while inside the block."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    def __str__(self) -> str:
        return f"{self.description} took {format_duration(self.elapsed)}"


def format_duration(seconds: float) -> str:
    """Format duration in a human-readable way."""
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


class ReadWriteLock:
    """Shared/exclusive lock built on a condition variable.

    Any number of readers may hold the lock at once; a writer holds it
    alone. Waiting writers block new readers so a steady stream of reads
    cannot starve a start/stop transition. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


def remove_directory(path: str | Path) -> None:
    """Recursively delete a directory; a missing directory is not an error."""
    dir_path = Path(path)
    if dir_path.exists():
        shutil.rmtree(dir_path)
