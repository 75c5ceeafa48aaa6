"""Bridge from the standard :mod:`logging` package to :class:`RollingLogger`."""

from __future__ import annotations

import logging
from typing import Optional

from .config import RollingConfig
from .rotation.logger import RollingLogger


class RollingFileHandler(logging.Handler):
    """Logging handler that writes formatted records to a rolling file.

    Either pass an existing ``sink`` or a ``config`` from which one is built.
    Closing the handler closes the sink.
    """

    terminator = "\n"

    def __init__(
        self,
        config: Optional[RollingConfig] = None,
        *,
        sink: Optional[RollingLogger] = None,
        encoding: str = "utf-8",
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        if sink is not None and config is not None:
            raise ValueError("Pass either a config or a sink, not both")
        self.sink = sink or RollingLogger(config)
        self.encoding = encoding

    def emit(self, record: logging.LogRecord) -> None:
        try:
            payload = (self.format(record) + self.terminator).encode(self.encoding)
            self.sink.write(payload)
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        self.acquire()
        try:
            if not self.sink.closed:
                self.sink.flush()
        finally:
            self.release()

    def close(self) -> None:
        self.acquire()
        try:
            self.sink.close()
        finally:
            self.release()
            super().close()


__all__ = ["RollingFileHandler"]
