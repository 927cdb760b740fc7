"""Tests for the backup store."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

import pytest

from sshd_harden.backup import BackupStore
from sshd_harden.exceptions import BackupError
from sshd_harden.types import BackupRecord


def ticking_clock(start: datetime, step: timedelta = timedelta(seconds=1)):
    times: Iterator[datetime] = (start + step * i for i in range(1000))
    return lambda: next(times)


def test_create_copies_content(backup_store: BackupStore, sshd_config: Path):
    record = backup_store.create(sshd_config)

    assert record.path.read_bytes() == sshd_config.read_bytes()
    assert record.path.parent == backup_store.directory
    assert record.name.startswith("sshd_config.backup_")


def test_create_names_embed_timestamp(temp_backup_dir: Path, sshd_config: Path):
    store = BackupStore(temp_backup_dir, clock=lambda: datetime(2024, 1, 1, 12, 0, 0, 123))

    record = store.create(sshd_config)

    assert record.name == "sshd_config.backup_20240101_120000"
    assert record.created_at == datetime(2024, 1, 1, 12, 0, 0)


def test_create_makes_missing_directory(tmp_path: Path, sshd_config: Path):
    store = BackupStore(tmp_path / "a" / "b")
    store.create(sshd_config)
    assert len(store.records()) == 1


def test_retention_bound(temp_backup_dir: Path, sshd_config: Path):
    store = BackupStore(temp_backup_dir, clock=ticking_clock(datetime(2024, 1, 1)))

    for _ in range(12):
        store.create(sshd_config)

    assert len(list(temp_backup_dir.iterdir())) == 5


def test_retention_keeps_newest(temp_backup_dir: Path, sshd_config: Path):
    start = datetime(2024, 1, 1, 12, 0, 0)
    store = BackupStore(temp_backup_dir, clock=ticking_clock(start, timedelta(minutes=1)))

    created = [store.create(sshd_config) for _ in range(7)]

    surviving = {r.created_at for r in store.records()}
    assert surviving == {r.created_at for r in created[2:]}
    assert store.latest() == created[-1]


def test_same_second_snapshots_are_ordered(temp_backup_dir: Path, sshd_config: Path):
    store = BackupStore(temp_backup_dir, clock=lambda: datetime(2024, 1, 1, 12, 0, 0))

    first = store.create(sshd_config)
    second = store.create(sshd_config)
    third = store.create(sshd_config)

    assert second.name == "sshd_config.backup_20240101_120000_001"
    assert [r.name for r in store.records()] == [third.name, second.name, first.name]
    assert store.latest() == third


def test_latest_without_backups(temp_backup_dir: Path):
    assert BackupStore(temp_backup_dir).latest() is None
    assert BackupStore(temp_backup_dir / "missing").latest() is None


def test_unrelated_files_are_ignored(temp_backup_dir: Path, sshd_config: Path):
    (temp_backup_dir / "notes.txt").write_text("keep me")
    (temp_backup_dir / "ssh_config.backup_20240101_120000").write_text("other target")
    store = BackupStore(temp_backup_dir, retention=1, clock=ticking_clock(datetime(2024, 2, 1)))

    store.create(sshd_config)
    store.create(sshd_config)

    names = sorted(p.name for p in temp_backup_dir.iterdir())
    assert names == [
        "notes.txt",
        "ssh_config.backup_20240101_120000",
        "sshd_config.backup_20240201_000001",
    ]


def test_enforce_retention_with_explicit_limit(temp_backup_dir: Path, sshd_config: Path):
    store = BackupStore(temp_backup_dir, clock=ticking_clock(datetime(2024, 1, 1)))
    for _ in range(4):
        store.create(sshd_config)

    removed = store.enforce_retention(limit=2)

    assert len(removed) == 2
    assert len(store.records()) == 2


def test_enforce_retention_tolerates_delete_failure(
    temp_backup_dir: Path, sshd_config: Path, monkeypatch: pytest.MonkeyPatch
):
    store = BackupStore(temp_backup_dir, clock=ticking_clock(datetime(2024, 1, 1)))
    for _ in range(3):
        store.create(sshd_config)

    def refuse(self: Path, missing_ok: bool = False) -> None:
        raise PermissionError("read-only")

    monkeypatch.setattr(Path, "unlink", refuse)

    assert store.enforce_retention(limit=1) == []
    assert len(store.records()) == 3


def test_create_failure_raises_backup_error(tmp_path: Path, sshd_config: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = BackupStore(blocker / "backups")

    with pytest.raises(BackupError):
        store.create(sshd_config)


def test_create_missing_source(backup_store: BackupStore, tmp_path: Path):
    with pytest.raises(BackupError):
        backup_store.create(tmp_path / "missing")
    assert backup_store.records() == []


def test_restore_is_byte_identical(backup_store: BackupStore, sshd_config: Path):
    original = sshd_config.read_bytes()
    record = backup_store.create(sshd_config)
    sshd_config.write_text("Port broken\n")

    backup_store.restore(record, sshd_config)

    assert sshd_config.read_bytes() == original
    assert record.path.exists()


def test_restore_missing_backup(backup_store: BackupStore, sshd_config: Path):
    record = BackupRecord(backup_store.directory / "sshd_config.backup_20240101_000000", datetime.now())
    with pytest.raises(BackupError):
        backup_store.restore(record, sshd_config)


def test_retention_must_be_positive(temp_backup_dir: Path):
    with pytest.raises(ValueError):
        BackupStore(temp_backup_dir, retention=0)


def test_clock_stepping_back_keeps_new_snapshot(temp_backup_dir: Path, sshd_config: Path):
    times = iter(
        [datetime(2024, 6, 1, 12, minute) for minute in range(1, 6)]
        + [datetime(2024, 6, 1, 11, 0)]
    )
    store = BackupStore(temp_backup_dir, clock=lambda: next(times))
    for _ in range(5):
        store.create(sshd_config)

    record = store.create(sshd_config)

    assert record.path.exists()
    assert record.name == "sshd_config.backup_20240601_110000"
    assert len(store.records()) == 5


def test_default_clock_is_utc(backup_store: BackupStore, sshd_config: Path):
    record = backup_store.create(sshd_config)

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    assert abs(now - record.created_at) < timedelta(minutes=1)


def test_aware_clock_is_stamped_in_utc(temp_backup_dir: Path, sshd_config: Path):
    plus_two = timezone(timedelta(hours=2))
    store = BackupStore(temp_backup_dir, clock=lambda: datetime(2024, 1, 1, 14, 0, tzinfo=plus_two))

    record = store.create(sshd_config)

    assert record.name == "sshd_config.backup_20240101_120000"
