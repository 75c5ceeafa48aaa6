"""Configuration model for :class:`rollfile.rotation.logger.RollingLogger`."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigError

MEGABYTE = 1024 * 1024
DEFAULT_MAX_SIZE = 100 * MEGABYTE

_KNOWN_KEYS = (
    "filename",
    "max_size",
    "max_size_mb",
    "max_age",
    "max_backups",
    "local_time",
    "compress",
    "rotation_interval",
    "rotate_at_minutes",
)

# Flat key spellings used by existing configs; ``maxsize`` is in megabytes.
_LEGACY_KEYS = {
    "maxsize": "max_size_mb",
    "maxage": "max_age",
    "maxbackups": "max_backups",
    "localtime": "local_time",
}


def default_filename() -> Path:
    """Return ``<tempdir>/<program-name>-rollfile.log``."""

    program = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "python"
    return Path(tempfile.gettempdir()) / f"{program}-rollfile.log"


@dataclass(frozen=True)
class RollingConfig:
    """Immutable settings for a rolling log file.

    ``max_size`` is expressed in bytes; ``0`` selects :data:`DEFAULT_MAX_SIZE`.
    ``max_backups`` and ``max_age`` (days) use ``0`` to mean unlimited. A zero
    ``rotation_interval`` and an empty ``rotate_at_minutes`` disable the
    corresponding time triggers.
    """

    filename: Optional[Path] = None
    max_size: int = 0
    max_backups: int = 0
    max_age: float = 0
    local_time: bool = False
    compress: bool = False
    rotation_interval: timedelta = timedelta(0)
    rotate_at_minutes: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.filename is not None:
            object.__setattr__(self, "filename", Path(self.filename))
        if self.max_size < 0:
            raise ConfigError(f"max_size must not be negative: {self.max_size}")
        if self.max_backups < 0:
            raise ConfigError(f"max_backups must not be negative: {self.max_backups}")
        if self.max_age < 0:
            raise ConfigError(f"max_age must not be negative: {self.max_age}")
        if not isinstance(self.rotation_interval, timedelta):
            raise ConfigError("rotation_interval must be a datetime.timedelta")
        if self.rotation_interval < timedelta(0):
            raise ConfigError("rotation_interval must not be negative")

        marks = tuple(sorted({int(minute) for minute in self.rotate_at_minutes}))
        for minute in marks:
            if not 0 <= minute <= 59:
                raise ConfigError(f"rotate_at_minutes values must be within 0-59, got {minute}")
        object.__setattr__(self, "rotate_at_minutes", marks)

    # ------------------------------------------------------------------
    @property
    def effective_max_size(self) -> int:
        return self.max_size or DEFAULT_MAX_SIZE

    def resolved_filename(self) -> Path:
        return self.filename if self.filename is not None else default_filename()

    # ------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "RollingConfig":
        """Build a config from a plain mapping such as a decoded JSON object."""

        raw = _normalize_keys(raw)
        unknown = sorted(set(raw) - set(_KNOWN_KEYS))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        if "max_size" in raw and "max_size_mb" in raw:
            raise ConfigError("Use either max_size or max_size_mb, not both")

        kwargs: Dict[str, Any] = {}
        try:
            if raw.get("filename"):
                kwargs["filename"] = Path(str(raw["filename"]))
            if "max_size" in raw:
                kwargs["max_size"] = int(raw["max_size"])
            if "max_size_mb" in raw:
                kwargs["max_size"] = int(float(raw["max_size_mb"]) * MEGABYTE)
            if "max_backups" in raw:
                kwargs["max_backups"] = int(raw["max_backups"])
            if "max_age" in raw:
                kwargs["max_age"] = float(raw["max_age"])
            if "local_time" in raw:
                kwargs["local_time"] = bool(raw["local_time"])
            if "compress" in raw:
                kwargs["compress"] = bool(raw["compress"])
            if "rotation_interval" in raw:
                kwargs["rotation_interval"] = timedelta(seconds=float(raw["rotation_interval"]))
            if "rotate_at_minutes" in raw:
                kwargs["rotate_at_minutes"] = tuple(int(m) for m in raw["rotate_at_minutes"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid configuration value: {exc}") from exc
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: str) -> "RollingConfig":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Configuration is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration must be a JSON object")
        return cls.from_mapping(raw)


def _normalize_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _LEGACY_KEYS.get(key, key)
        if name in normalized:
            raise ConfigError(f"Configuration key {key} duplicates {name}")
        normalized[name] = value
    return normalized


def load_config(path: os.PathLike[str] | str) -> RollingConfig:
    """Read a JSON configuration file."""

    return RollingConfig.from_json(Path(path).read_text(encoding="utf-8"))


__all__ = [
    "DEFAULT_MAX_SIZE",
    "MEGABYTE",
    "RollingConfig",
    "default_filename",
    "load_config",
]
