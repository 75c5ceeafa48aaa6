"""Background rotation at fixed minute-of-hour marks."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Sequence

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


def _wall_clock(moment: datetime, local_time: bool) -> datetime:
    return moment.astimezone() if local_time else moment.astimezone(timezone.utc)


def _candidates(moment: datetime, marks: Iterable[int], hours: Iterable[int]) -> list:
    base = moment.replace(minute=0, second=0, microsecond=0)
    return [base + timedelta(hours=hour, minutes=minute) for hour in hours for minute in marks]


def next_mark_after(moment: datetime, marks: Sequence[int], *, local_time: bool = False) -> datetime:
    """Return the first mark instant strictly after ``moment``."""

    if not marks:
        raise ValueError("At least one minute mark is required")
    moment = _wall_clock(moment, local_time)
    return min(c for c in _candidates(moment, marks, (0, 1)) if c > moment)


def latest_mark_at_or_before(
    moment: datetime, marks: Sequence[int], *, local_time: bool = False
) -> datetime:
    """Return the most recent mark instant not later than ``moment``."""

    if not marks:
        raise ValueError("At least one minute mark is required")
    moment = _wall_clock(moment, local_time)
    return max(c for c in _candidates(moment, marks, (-1, 0)) if c <= moment)


class MinuteScheduler:
    """Call ``rotate(target)`` each time the clock crosses a minute mark.

    The thread sleeps on a :class:`threading.Event` so :meth:`stop` wakes it
    immediately. Sleeps are capped at ``poll_interval`` seconds and the target
    is re-checked against ``clock`` after every wake, which keeps the schedule
    correct when the wall clock jumps.
    """

    def __init__(
        self,
        marks: Sequence[int],
        rotate: Callable[[datetime], None],
        *,
        clock: Callable[[], datetime],
        on_error: Callable[[BaseException], None],
        local_time: bool = False,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        name: str = "rollfile-minute-scheduler",
    ) -> None:
        if not marks:
            raise ValueError("At least one minute mark is required")
        self.marks = tuple(sorted(set(marks)))
        self._rotate = rotate
        self._clock = clock
        self._on_error = on_error
        self._local_time = local_time
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._name = name

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the thread and wait for it to exit; no final rotation runs."""

        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    # ------------------------------------------------------------------
    def _run(self) -> None:
        target = next_mark_after(self._clock(), self.marks, local_time=self._local_time)
        LOGGER.debug("Next scheduled rotation at %s", target.isoformat())
        while not self._stop.is_set():
            remaining = (target - self._clock()).total_seconds()
            if remaining > 0:
                if self._stop.wait(min(remaining, self._poll_interval)):
                    break
                continue

            try:
                self._rotate(target)
            except Exception as exc:
                self._on_error(exc)

            now = self._clock()
            target = next_mark_after(max(now, target), self.marks, local_time=self._local_time)
            LOGGER.debug("Next scheduled rotation at %s", target.isoformat())


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "MinuteScheduler",
    "latest_mark_at_or_before",
    "next_mark_after",
]
