"""Exception hierarchy shared by the rolling-file sink."""

from __future__ import annotations


class RollfileError(RuntimeError):
    """Base class for errors raised by :mod:`rollfile`."""


class ConfigError(RollfileError, ValueError):
    """Raised when a configuration value is missing or out of range."""


class LoggerClosedError(RollfileError):
    """Raised when writing to or rotating a logger that has been closed."""


class WriteTooLargeError(RollfileError):
    """Raised when a single write can never fit in the active file."""

    def __init__(self, length: int, max_size: int) -> None:
        super().__init__(f"write length {length} exceeds maximum file size {max_size}")
        self.length = length
        self.max_size = max_size


__all__ = [
    "ConfigError",
    "LoggerClosedError",
    "RollfileError",
    "WriteTooLargeError",
]
