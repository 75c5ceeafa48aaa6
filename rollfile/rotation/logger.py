"""The rolling log file: trigger evaluation and the active-file lifecycle."""

from __future__ import annotations

import errno
import logging
import os
import stat
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

from ..config import RollingConfig
from ..errors import LoggerClosedError, WriteTooLargeError
from .backups import COMPRESS_SUFFIX, REASON_SIZE, REASON_TIME, format_backup_name, split_filename
from .retention import RetentionPolicy, run_retention
from .scheduler import MinuteScheduler, latest_mark_at_or_before

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_NEW_FILE_MODE = 0o600
_DIR_MODE = 0o755


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _log_background_error(exc: BaseException) -> None:
    LOGGER.error("Background rotation task failed: %s", exc, exc_info=exc)


class RollingLogger:
    """Append-only byte sink that rotates its file into timestamped backups.

    The active file is opened lazily on the first :meth:`write` or
    :meth:`rotate`. A single lock serializes trigger evaluation, rotation and
    the write itself, so no caller ever observes a half-rotated file. Backup
    retention and compression run on background threads after each rotation;
    minute-mark rotations run on a scheduler thread started here when
    ``rotate_at_minutes`` is configured.

    ``clock`` must return timezone-aware datetimes. ``on_error`` receives
    exceptions raised by background work; by default they are logged.
    """

    def __init__(
        self,
        config: Optional[RollingConfig] = None,
        *,
        clock: Optional[Clock] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self.config = config or RollingConfig()
        self.path = self.config.resolved_filename()
        self.max_size = self.config.effective_max_size
        self._prefix, self._ext = split_filename(self.path)
        self._clock: Clock = clock or _utc_now
        self._on_error = on_error or _log_background_error
        self._policy = RetentionPolicy(
            max_backups=self.config.max_backups,
            max_age=self.config.max_age,
            compress=self.config.compress,
        )

        self._lock = threading.Lock()
        self._file: Optional[BinaryIO] = None
        self._size = 0
        self._last_rotation: Optional[datetime] = None
        self._closed = False

        self._retention_lock = threading.Lock()
        self._background_lock = threading.Lock()
        self._background: List[threading.Thread] = []

        self._scheduler: Optional[MinuteScheduler] = None
        if self.config.rotate_at_minutes:
            self._scheduler = MinuteScheduler(
                self.config.rotate_at_minutes,
                self._rotate_at_mark,
                clock=self._clock,
                on_error=self._report_error,
                local_time=self.config.local_time,
            )
            self._scheduler.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def write(self, data: bytes) -> int:
        """Append ``data`` to the active file, rotating first if a trigger fires.

        Short file writes are retried until all of ``data`` is on disk, so the
        return value is always ``len(data)``. A write that makes no progress
        raises :class:`OSError` with the tracked size re-read from the file.
        """

        length = len(data)
        with self._lock:
            if self._closed:
                raise LoggerClosedError(f"Logger for {self.path} is closed")
            if length > self.max_size:
                raise WriteTooLargeError(length, self.max_size)

            if self._file is None:
                self._open_existing_or_new()

            now = self._clock()
            if self._time_due(now):
                self._rotate(REASON_TIME, now)
            elif self._size + length > self.max_size:
                self._rotate(REASON_SIZE, now)

            view = memoryview(data)
            written = 0
            try:
                while written < length:
                    count = self._file.write(view[written:])
                    if not count:
                        raise OSError(
                            errno.EIO, f"short write to {self.path}: {written} of {length} bytes"
                        )
                    written += count
            except OSError:
                self._size = os.fstat(self._file.fileno()).st_size
                raise
            self._size += written
            return written

    def rotate(self) -> None:
        """Force a rotation now.

        The backup is tagged ``time`` when an interval or minute-mark rotation
        is independently due, otherwise ``size``.
        """

        with self._lock:
            if self._closed:
                raise LoggerClosedError(f"Logger for {self.path} is closed")
            if self._file is None:
                self._open_existing_or_new()
            now = self._clock()
            self._rotate(REASON_TIME if self._time_due(now) else REASON_SIZE, now)

    def close(self) -> None:
        """Stop the scheduler and close the active file. Safe to call twice."""

        scheduler: Optional[MinuteScheduler] = None
        try:
            with self._lock:
                if self._closed:
                    return
                self._closed = True
                scheduler, self._scheduler = self._scheduler, None
                self._close_file()
        finally:
            # Joined outside the lock: the scheduler thread may be waiting on it.
            if scheduler is not None:
                scheduler.stop()

    def flush(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.flush()

    def writable(self) -> bool:
        return not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> int:
        """Bytes currently held by the active file."""

        with self._lock:
            return self._size

    def wait_for_background(self, timeout: Optional[float] = None) -> bool:
        """Join outstanding retention threads; ``True`` if all finished."""

        with self._background_lock:
            threads = list(self._background)
        for thread in threads:
            thread.join(timeout)
        with self._background_lock:
            self._background = [t for t in self._background if t.is_alive()]
            return not self._background

    def __enter__(self) -> "RollingLogger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RollingLogger(path={str(self.path)!r}, max_size={self.max_size})"

    # ------------------------------------------------------------------
    # Internal helpers; callers hold self._lock
    # ------------------------------------------------------------------
    def _time_due(self, now: datetime) -> bool:
        if self._last_rotation is None:
            return False
        interval = self.config.rotation_interval
        if interval and now - self._last_rotation >= interval:
            return True
        if self.config.rotate_at_minutes:
            mark = latest_mark_at_or_before(
                now, self.config.rotate_at_minutes, local_time=self.config.local_time
            )
            return mark > self._last_rotation
        return False

    def _open_existing_or_new(self) -> None:
        self.path.parent.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
        try:
            info = self.path.stat()
        except FileNotFoundError:
            self._open_new(_NEW_FILE_MODE)
            self._last_rotation = self._clock()
        else:
            self._file = self.path.open("ab", buffering=0)
            self._size = info.st_size
            self._last_rotation = datetime.fromtimestamp(info.st_mtime, tz=timezone.utc)
        # Picks up backups a previous run left uncompressed or unexpired.
        self._start_retention()

    def _open_new(self, mode: int) -> None:
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, mode)
        self._file = os.fdopen(fd, "ab", buffering=0)
        self._size = 0

    def _close_file(self) -> None:
        handle, self._file = self._file, None
        if handle is not None:
            handle.close()

    def _backup_path(self, now: datetime, reason: str) -> Path:
        # Two rotations within one millisecond would otherwise share a name,
        # including with a backup that has already been compressed.
        stamp = now
        while True:
            backup = self.path.with_name(
                format_backup_name(
                    self._prefix, self._ext, stamp, reason, local_time=self.config.local_time
                )
            )
            archive = backup.with_name(backup.name + COMPRESS_SUFFIX)
            if not backup.exists() and not archive.exists():
                return backup
            stamp += timedelta(milliseconds=1)

    def _rotate(self, reason: str, now: datetime) -> None:
        self._close_file()

        mode = _NEW_FILE_MODE
        if self.path.exists():
            mode = stat.S_IMODE(self.path.stat().st_mode)
            backup = self._backup_path(now, reason)
            try:
                self.path.rename(backup)
            except OSError:
                self._file = self.path.open("ab", buffering=0)
                raise
            LOGGER.debug("Rotated %s to %s (%s)", self.path.name, backup.name, reason)

        self._open_new(mode)
        os.chmod(self.path, mode)
        self._last_rotation = now
        self._start_retention()

    def _rotate_at_mark(self, mark: datetime) -> None:
        with self._lock:
            if self._closed:
                return
            if self._file is None:
                if not self.path.exists():
                    # Nothing written yet, so there is nothing to rotate.
                    return
                self._open_existing_or_new()
            if self._last_rotation is not None and self._last_rotation >= mark:
                return
            self._rotate(REASON_TIME, self._clock())

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------
    def _start_retention(self) -> None:
        policy = self._policy
        if not (policy.max_backups or policy.max_age or policy.compress):
            return
        thread = threading.Thread(
            target=self._retention_pass,
            args=(self._clock(),),
            name=f"rollfile-retention-{self._prefix}",
            daemon=True,
        )
        with self._background_lock:
            self._background = [t for t in self._background if t.is_alive()]
            self._background.append(thread)
        thread.start()

    def _retention_pass(self, now: datetime) -> None:
        with self._retention_lock:
            try:
                run_retention(
                    self.path,
                    self._policy,
                    now,
                    self._report_error,
                    local_time=self.config.local_time,
                )
            except Exception as exc:
                self._report_error(exc)

    def _report_error(self, exc: BaseException) -> None:
        try:
            self._on_error(exc)
        except Exception:
            LOGGER.exception("Error handler raised while reporting %r", exc)


__all__ = ["Clock", "RollingLogger"]
