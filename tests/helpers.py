"""Shared helpers for the rolling logger tests."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List


class FakeClock:
    """Controllable wall clock; returns the same instant until moved."""

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment

    def advance(self, **kwargs: float) -> datetime:
        with self._lock:
            self._now += timedelta(**kwargs)
            return self._now


class RunningClock:
    """Clock that starts at ``start`` and then follows real elapsed time."""

    def __init__(self, start: datetime) -> None:
        self._start = start
        self._origin = time.monotonic()

    def __call__(self) -> datetime:
        return self._start + timedelta(seconds=time.monotonic() - self._origin)


def backup_path(directory: Path, moment: datetime, reason: str, *, local: bool = False) -> Path:
    """Expected backup path of ``foobar.log`` rotated at ``moment``."""

    moment = moment.astimezone() if local else moment.astimezone(timezone.utc)
    stamp = moment.strftime("%Y-%m-%dT%H-%M-%S") + f".{moment.microsecond // 1000:03d}"
    return directory / f"foobar-{stamp}-{reason}.log"


def file_names(directory: Path) -> List[str]:
    return sorted(entry.name for entry in directory.iterdir())


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
