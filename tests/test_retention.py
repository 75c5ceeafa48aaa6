"""Unit tests for backup discovery and retention planning."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List

from rollfile.rotation.backups import Backup
from rollfile.rotation.retention import (
    RetentionPolicy,
    apply_plan,
    discover_backups,
    plan_retention,
    run_retention,
)

from .helpers import backup_path

NOW = datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def _make_backups(directory: Path, days_ago: List[int], reason: str = "size") -> List[Path]:
    paths = []
    for days in days_ago:
        path = backup_path(directory, NOW - timedelta(days=days), reason)
        path.write_bytes(f"{days}".encode())
        paths.append(path)
    return paths


def test_discover_sorts_newest_first_and_skips_noise(tmp_path: Path, log_path: Path) -> None:
    log_path.write_bytes(b"active")
    oldest, middle, newest = _make_backups(tmp_path, [3, 2, 1])
    (tmp_path / "foobar.log.foo").write_bytes(b"x")
    (tmp_path / "other-2024-03-09T12-00-00.000-size.log").write_bytes(b"x")
    backup_path(tmp_path, NOW, "size").mkdir()

    backups = discover_backups(log_path)

    assert [b.path for b in backups] == [newest, middle, oldest]
    assert all(not b.compressed for b in backups)


def test_discover_merges_plain_and_compressed_twins(tmp_path: Path, log_path: Path) -> None:
    (plain,) = _make_backups(tmp_path, [1])
    twin = plain.with_name(plain.name + ".gz")
    twin.write_bytes(b"partial")

    backups = discover_backups(log_path)

    assert len(backups) == 1
    backup = backups[0]
    assert backup.path == plain
    assert backup.key == twin
    assert set(backup.physical_paths) == {plain, twin}
    assert backup.compressed and backup.has_plain_file


def test_discover_missing_directory_returns_nothing(tmp_path: Path) -> None:
    assert discover_backups(tmp_path / "gone" / "foobar.log") == []


def test_plan_keeps_the_newest_by_count(tmp_path: Path, log_path: Path) -> None:
    _make_backups(tmp_path, [5, 4, 3, 2, 1])
    backups = discover_backups(log_path)

    plan = plan_retention(backups, RetentionPolicy(max_backups=2), NOW)

    assert plan.keep == backups[:2]
    assert plan.delete == backups[2:]
    assert plan.compress == []


def test_plan_deletes_by_age_regardless_of_count(tmp_path: Path, log_path: Path) -> None:
    _make_backups(tmp_path, [10, 3, 1])
    backups = discover_backups(log_path)

    plan = plan_retention(backups, RetentionPolicy(max_backups=5, max_age=2), NOW)

    assert [b.timestamp for b in plan.keep] == [NOW - timedelta(days=1)]
    assert len(plan.delete) == 2


def test_plan_without_limits_deletes_nothing(tmp_path: Path, log_path: Path) -> None:
    _make_backups(tmp_path, [300, 200, 100])
    plan = plan_retention(discover_backups(log_path), RetentionPolicy(), NOW)
    assert plan.delete == []
    assert len(plan.keep) == 3


def test_plan_compresses_only_surviving_plain_files(tmp_path: Path, log_path: Path) -> None:
    newest, older, oldest = _make_backups(tmp_path, [1, 2, 3])
    compressed = older.with_name(older.name + ".gz")
    older.rename(compressed)
    backups = discover_backups(log_path)

    plan = plan_retention(backups, RetentionPolicy(max_backups=2, compress=True), NOW)

    assert [b.path for b in plan.compress] == [newest]
    assert [b.path for b in plan.delete] == [oldest]


def test_apply_plan_removes_every_physical_file(tmp_path: Path, log_path: Path) -> None:
    keep, drop = _make_backups(tmp_path, [1, 2])
    drop.with_name(drop.name + ".gz").write_bytes(b"gz")
    errors: List[BaseException] = []

    plan = plan_retention(discover_backups(log_path), RetentionPolicy(max_backups=1), NOW)
    apply_plan(plan, errors.append)

    assert errors == []
    assert sorted(p.name for p in tmp_path.iterdir()) == [keep.name]


def test_apply_plan_tolerates_vanished_files(tmp_path: Path, log_path: Path) -> None:
    _make_backups(tmp_path, [1, 2, 3])
    plan = plan_retention(discover_backups(log_path), RetentionPolicy(max_backups=1), NOW)
    for backup in plan.delete:
        backup.path.unlink()

    errors: List[BaseException] = []
    apply_plan(plan, errors.append)

    assert errors == []


def test_apply_plan_reports_unexpected_errors(tmp_path: Path, log_path: Path) -> None:
    _make_backups(tmp_path, [1])
    plan = plan_retention(discover_backups(log_path), RetentionPolicy(max_backups=1), NOW)
    blocker = backup_path(tmp_path, NOW - timedelta(days=9), "size")
    blocker.mkdir()
    (blocker / "child").write_bytes(b"x")
    plan.delete.append(Backup(blocker, NOW, "size", (blocker,)))

    errors: List[BaseException] = []
    apply_plan(plan, errors.append)

    assert len(errors) == 1
    assert isinstance(errors[0], OSError)
    assert blocker.exists()


def test_run_retention_compresses_and_trims(tmp_path: Path, log_path: Path) -> None:
    log_path.write_bytes(b"active")
    newest, _, _ = _make_backups(tmp_path, [1, 2, 3])
    errors: List[BaseException] = []

    run_retention(log_path, RetentionPolicy(max_backups=1, compress=True), NOW, errors.append)

    assert errors == []
    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(
        [log_path.name, newest.name + ".gz"]
    )
