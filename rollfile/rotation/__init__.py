"""Rotation engine primitives exposed as a convenience import."""

from .backups import (
    COMPRESS_SUFFIX,
    REASON_SIZE,
    REASON_TIME,
    Backup,
    format_backup_name,
    parse_backup_name,
)
from .compression import compress_backup
from .logger import RollingLogger
from .retention import RetentionPlan, RetentionPolicy, discover_backups, plan_retention
from .scheduler import MinuteScheduler

__all__ = [
    "Backup",
    "COMPRESS_SUFFIX",
    "MinuteScheduler",
    "REASON_SIZE",
    "REASON_TIME",
    "RetentionPlan",
    "RetentionPolicy",
    "RollingLogger",
    "compress_backup",
    "discover_backups",
    "format_backup_name",
    "parse_backup_name",
    "plan_retention",
]
