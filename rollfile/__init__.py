"""Rolling-file log sink with size, interval and minute-mark rotation."""

from .config import DEFAULT_MAX_SIZE, RollingConfig, load_config
from .errors import ConfigError, LoggerClosedError, RollfileError, WriteTooLargeError
from .handler import RollingFileHandler
from .rotation import RollingLogger

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DEFAULT_MAX_SIZE",
    "LoggerClosedError",
    "RollfileError",
    "RollingConfig",
    "RollingFileHandler",
    "RollingLogger",
    "WriteTooLargeError",
    "load_config",
]
