"""Backup discovery and retention planning.

Backups are discovered by scanning the active file's directory on every pass
rather than being indexed in memory, so files added or removed by other tools
are always seen. The cost is one directory listing per pass.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from .backups import COMPRESS_SUFFIX, Backup, ParsedName, parse_backup_name, split_filename
from .compression import compress_backup

LOGGER = logging.getLogger(__name__)

ErrorSink = Callable[[BaseException], None]


@dataclass(frozen=True)
class RetentionPolicy:
    max_backups: int = 0
    max_age: float = 0
    compress: bool = False


@dataclass
class RetentionPlan:
    """Outcome of planning: which backups survive, go, or get compressed."""

    keep: List[Backup] = field(default_factory=list)
    delete: List[Backup] = field(default_factory=list)
    compress: List[Backup] = field(default_factory=list)


def discover_backups(active_path: Path, *, local_time: bool = False) -> List[Backup]:
    """Return the backups belonging to ``active_path``, newest first.

    Directories, the active file and names that do not decode are ignored. A
    plain file and its ``.gz`` twin collapse into a single :class:`Backup`.
    """

    active_path = Path(active_path)
    directory = active_path.parent
    prefix, ext = split_filename(active_path)

    grouped: Dict[str, Tuple[ParsedName, List[Path]]] = {}
    try:
        with os.scandir(directory) as scan:
            entries = list(scan)
    except FileNotFoundError:
        return []

    for entry in entries:
        if entry.name == active_path.name or entry.is_dir():
            continue
        parsed = parse_backup_name(entry.name, prefix, ext, local_time=local_time)
        if parsed is None:
            continue
        logical = entry.name[: -len(COMPRESS_SUFFIX)] if parsed.compressed else entry.name
        _, paths = grouped.setdefault(logical, (parsed, []))
        paths.append(directory / entry.name)

    backups = [
        Backup(
            path=directory / logical,
            timestamp=parsed.timestamp,
            reason=parsed.reason,
            physical_paths=tuple(sorted(paths)),
        )
        for logical, (parsed, paths) in grouped.items()
    ]
    backups.sort(key=lambda backup: (backup.timestamp, str(backup.key)), reverse=True)
    return backups


def plan_retention(backups: List[Backup], policy: RetentionPolicy, now: datetime) -> RetentionPlan:
    """Split ``backups`` (newest first) into keep/delete/compress sets."""

    plan = RetentionPlan()
    cutoff = now - timedelta(days=policy.max_age) if policy.max_age > 0 else None

    for index, backup in enumerate(backups):
        if policy.max_backups > 0 and index >= policy.max_backups:
            plan.delete.append(backup)
        elif cutoff is not None and backup.timestamp < cutoff:
            plan.delete.append(backup)
        else:
            plan.keep.append(backup)

    if policy.compress:
        plan.compress = [backup for backup in plan.keep if backup.has_plain_file]
    return plan


def apply_plan(plan: RetentionPlan, on_error: ErrorSink) -> None:
    """Delete and compress according to ``plan``.

    Files that disappeared in the meantime are skipped. Any other failure is
    handed to ``on_error`` and the remaining work still runs.
    """

    for backup in plan.delete:
        for path in backup.physical_paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                on_error(exc)
                continue
            LOGGER.debug("Removed expired backup %s", path.name)

    for backup in plan.compress:
        try:
            compress_backup(backup.path)
        except Exception as exc:
            on_error(exc)


def run_retention(
    active_path: Path,
    policy: RetentionPolicy,
    now: datetime,
    on_error: ErrorSink,
    *,
    local_time: bool = False,
) -> RetentionPlan:
    """Discover, plan and apply one retention pass."""

    try:
        backups = discover_backups(active_path, local_time=local_time)
    except OSError as exc:
        on_error(exc)
        return RetentionPlan()
    plan = plan_retention(backups, policy, now)
    apply_plan(plan, on_error)
    return plan


__all__ = [
    "ErrorSink",
    "RetentionPlan",
    "RetentionPolicy",
    "apply_plan",
    "discover_backups",
    "plan_retention",
    "run_retention",
]
