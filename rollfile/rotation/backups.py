"""Backup filename scheme.

Backups are named ``<prefix>-<YYYY>-<MM>-<DD>T<hh>-<mm>-<ss>.<mmm>-<reason><ext>``
where ``prefix`` is the active file's basename without its extension and
``ext`` includes the leading dot (it may be empty). Compressed backups carry
an extra :data:`COMPRESS_SUFFIX`. Colons never appear in the name so it is
valid on every filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

COMPRESS_SUFFIX = ".gz"
REASON_SIZE = "size"
REASON_TIME = "time"
REASONS = (REASON_SIZE, REASON_TIME)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"
_TIMESTAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2})\.(\d{3})$")


@dataclass(frozen=True)
class ParsedName:
    """Identity recovered from a backup filename."""

    timestamp: datetime
    reason: str
    compressed: bool


@dataclass(frozen=True)
class Backup:
    """A backup discovered on disk.

    ``path`` is the logical (uncompressed) path. ``physical_paths`` lists the
    files that actually exist for it: the plain file, the ``.gz`` file, or both
    while a compression is in flight or was interrupted.
    """

    path: Path
    timestamp: datetime
    reason: str
    physical_paths: Tuple[Path, ...]

    @property
    def compressed_path(self) -> Path:
        return self.path.with_name(self.path.name + COMPRESS_SUFFIX)

    @property
    def key(self) -> Path:
        """Sort and identity key: the compressed path when one exists."""

        if self.compressed_path in self.physical_paths:
            return self.compressed_path
        return self.path

    @property
    def compressed(self) -> bool:
        return self.compressed_path in self.physical_paths

    @property
    def has_plain_file(self) -> bool:
        return self.path in self.physical_paths


def split_filename(path: Path) -> Tuple[str, str]:
    """Return ``(prefix, ext)`` for the active file at ``path``."""

    name = Path(path).name
    ext = Path(name).suffix
    return name[: len(name) - len(ext)], ext


def format_timestamp(timestamp: datetime, local_time: bool = False) -> str:
    moment = timestamp.astimezone() if local_time else timestamp.astimezone(timezone.utc)
    return f"{moment.strftime(_TIMESTAMP_FORMAT)}.{moment.microsecond // 1000:03d}"


def parse_timestamp(text: str, local_time: bool = False) -> Optional[datetime]:
    """Parse a name timestamp, returning ``None`` when it is malformed."""

    match = _TIMESTAMP_RE.match(text)
    if match is None:
        return None
    try:
        naive = datetime.strptime(match.group(1), _TIMESTAMP_FORMAT)
    except ValueError:
        return None
    naive = naive.replace(microsecond=int(match.group(2)) * 1000)
    if local_time:
        return naive.astimezone()
    return naive.replace(tzinfo=timezone.utc)


def format_backup_name(
    prefix: str,
    ext: str,
    timestamp: datetime,
    reason: str,
    *,
    local_time: bool = False,
) -> str:
    if reason not in REASONS:
        raise ValueError(f"Unknown rotation reason: {reason!r}")
    return f"{prefix}-{format_timestamp(timestamp, local_time)}-{reason}{ext}"


def parse_backup_name(
    name: str,
    prefix: str,
    ext: str,
    *,
    local_time: bool = False,
) -> Optional[ParsedName]:
    """Decode ``name`` or return ``None`` if it is not one of our backups."""

    compressed = name.endswith(COMPRESS_SUFFIX)
    if compressed:
        name = name[: -len(COMPRESS_SUFFIX)]

    head = f"{prefix}-"
    if not name.startswith(head):
        return None

    for reason in REASONS:
        tail = f"-{reason}{ext}"
        if name.endswith(tail) and len(name) > len(head) + len(tail):
            timestamp = parse_timestamp(name[len(head) : -len(tail)], local_time)
            if timestamp is None:
                return None
            return ParsedName(timestamp=timestamp, reason=reason, compressed=compressed)
    return None


__all__ = [
    "Backup",
    "COMPRESS_SUFFIX",
    "ParsedName",
    "REASONS",
    "REASON_SIZE",
    "REASON_TIME",
    "format_backup_name",
    "format_timestamp",
    "parse_backup_name",
    "parse_timestamp",
    "split_filename",
]
