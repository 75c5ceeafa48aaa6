"""Integration tests for the logging handler bridge."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from rollfile.config import RollingConfig
from rollfile.handler import RollingFileHandler
from rollfile.rotation.logger import RollingLogger

from .helpers import FakeClock


@pytest.fixture
def app_logger():
    logger = logging.getLogger("rollfile.tests.handler")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_handler_writes_formatted_records(app_logger: logging.Logger, log_path: Path) -> None:
    handler = RollingFileHandler(RollingConfig(filename=log_path))
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    app_logger.addHandler(handler)

    app_logger.info("hello %s", "world")
    app_logger.debug("filtered out")
    app_logger.warning("café")

    assert log_path.read_text("utf-8") == "INFO hello world\nWARNING café\n"


def test_handler_rotates_through_the_sink(
    app_logger: logging.Logger, tmp_path: Path, log_path: Path, clock: FakeClock
) -> None:
    sink = RollingLogger(RollingConfig(filename=log_path, max_size=34), clock=clock)
    handler = RollingFileHandler(sink=sink)
    app_logger.addHandler(handler)

    for index in range(6):
        clock.advance(seconds=1)
        app_logger.info("event-%02d padding", index)

    files = sorted(p.name for p in tmp_path.iterdir())
    assert len(files) == 3
    assert log_path.read_text("utf-8") == "event-04 padding\nevent-05 padding\n"


def test_handler_reports_oversize_records(
    app_logger: logging.Logger, log_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    handler = RollingFileHandler(RollingConfig(filename=log_path, max_size=8))
    seen = []
    monkeypatch.setattr(handler, "handleError", seen.append)
    app_logger.addHandler(handler)

    app_logger.info("this line is far too long")

    assert len(seen) == 1
    assert not log_path.exists()


def test_close_closes_the_sink(log_path: Path) -> None:
    handler = RollingFileHandler(RollingConfig(filename=log_path))
    handler.close()
    assert handler.sink.closed


def test_config_and_sink_are_exclusive(log_path: Path) -> None:
    sink = RollingLogger(RollingConfig(filename=log_path))
    with pytest.raises(ValueError):
        RollingFileHandler(RollingConfig(filename=log_path), sink=sink)
    sink.close()
