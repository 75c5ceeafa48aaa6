"""Command line interface: copy standard input into a rolling log file."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, List, Optional

from .config import RollingConfig, load_config
from .errors import ConfigError, RollfileError
from .rotation.logger import RollingLogger

LOGGER = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> RollingConfig:
    """Merge the optional JSON config file with command line overrides."""

    config = load_config(args.config) if args.config else RollingConfig()
    overrides = {}
    if args.filename:
        overrides["filename"] = Path(args.filename)
    if args.max_size is not None:
        overrides["max_size"] = args.max_size
    if args.max_backups is not None:
        overrides["max_backups"] = args.max_backups
    if args.max_age is not None:
        overrides["max_age"] = args.max_age
    if args.compress:
        overrides["compress"] = True
    if args.local_time:
        overrides["local_time"] = True
    if args.interval is not None:
        overrides["rotation_interval"] = timedelta(seconds=args.interval)
    if args.at_minutes:
        overrides["rotate_at_minutes"] = tuple(args.at_minutes)
    return replace(config, **overrides) if overrides else config


def build_logger(config: RollingConfig) -> RollingLogger:
    return RollingLogger(config)


def pump(source: BinaryIO, sink: RollingLogger) -> int:
    """Write every line of ``source`` to ``sink``; return the line count."""

    count = 0
    for line in iter(source.readline, b""):
        sink.write(line)
        count += 1
    return count


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rollfile",
        description="Append standard input to a size/time rotated log file",
    )
    parser.add_argument("filename", nargs="?", help="Active log file path")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--max-size", type=int, help="Rotate before exceeding this many bytes")
    parser.add_argument("--max-backups", type=int, help="Number of backups to keep (0 keeps all)")
    parser.add_argument("--max-age", type=float, help="Delete backups older than this many days")
    parser.add_argument("--compress", action="store_true", help="Gzip rotated backups")
    parser.add_argument("--local-time", action="store_true", help="Use local time in backup names")
    parser.add_argument("--interval", type=float, help="Rotate every N seconds")
    parser.add_argument(
        "--at-minute",
        type=int,
        action="append",
        dest="at_minutes",
        help="Rotate when the clock reaches this minute of the hour. Can be provided multiple times.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log rotation activity to stderr")
    return parser


def main(argv: List[str] | None = None, stdin: Optional[BinaryIO] = None) -> int:
    parser = _parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except (ConfigError, OSError) as exc:
        parser.error(str(exc))

    source = stdin if stdin is not None else sys.stdin.buffer
    logger = build_logger(config)
    try:
        lines = pump(source, logger)
    except (RollfileError, OSError) as exc:
        LOGGER.error("Writing to %s failed: %s", logger.path, exc)
        return 1
    finally:
        logger.close()
    LOGGER.debug("Copied %d lines to %s", lines, logger.path)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
