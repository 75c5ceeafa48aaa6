from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from .helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, 0, 250000, tzinfo=timezone.utc))


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "foobar.log"
