"""Timestamped configuration snapshots with bounded retention."""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from sshd_harden.exceptions import BackupError
from sshd_harden.types import BackupRecord
from sshd_harden.utils.file import atomic_copy, copy_file

logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_RETENTION = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BackupStore:
    """Manage ``<target>.backup_<timestamp>`` snapshots in one directory.

    Only files following that naming scheme are listed, evicted or restored,
    so unrelated files sharing the directory are left alone. Snapshots taken
    within the same second get a ``_NNN`` suffix, which sorts after the bare
    name and keeps ordering total. Timestamps are UTC so a local clock change
    cannot reorder them.
    """

    def __init__(
        self,
        directory: Path,
        target_name: str = "sshd_config",
        retention: int = DEFAULT_RETENTION,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize backup store.

        Args:
            directory: Directory holding the snapshots
            target_name: File name of the configuration being protected
            retention: Number of snapshots to keep
            clock: Source of snapshot timestamps, naive UTC
        """
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self.directory = directory
        self.target_name = target_name
        self.retention = retention
        self._clock = clock
        self._pattern = re.compile(
            rf"^{re.escape(target_name)}\.backup_(\d{{8}}_\d{{6}})(?:_(\d{{3}}))?$"
        )

    def _record(self, path: Path) -> Optional[BackupRecord]:
        match = self._pattern.match(path.name)
        if not match or not path.is_file():
            return None
        try:
            created_at = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return BackupRecord(path=path, created_at=created_at)

    def records(self) -> List[BackupRecord]:
        """Return snapshots of the target, newest first."""
        if not self.directory.is_dir():
            return []
        found = [r for r in map(self._record, self.directory.iterdir()) if r is not None]
        return sorted(found, key=lambda r: (r.created_at, r.name), reverse=True)

    def latest(self) -> Optional[BackupRecord]:
        """Return the most recent snapshot, or None if there is none."""
        records = self.records()
        return records[0] if records else None

    def _next_path(self, stamp: str) -> Path:
        base = self.directory / f"{self.target_name}.backup_{stamp}"
        if not base.exists():
            return base
        for n in range(1, 1000):
            candidate = base.with_name(f"{base.name}_{n:03d}")
            if not candidate.exists():
                return candidate
        raise BackupError(f"Too many backups for timestamp {stamp}")

    def create(self, source: Path) -> BackupRecord:
        """Snapshot ``source`` and apply retention.

        Raises:
            BackupError: If the snapshot cannot be written. Callers must not
                modify ``source`` afterwards.
        """
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        now = now.replace(microsecond=0)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            backup_path = self._next_path(now.strftime(TIMESTAMP_FORMAT))
            copy_file(source, backup_path)
        except OSError as e:
            logger.error("Backup creation failed", source=str(source), error=str(e))
            raise BackupError(f"Cannot back up {source} to {self.directory}: {e}") from e

        record = BackupRecord(path=backup_path, created_at=now)
        logger.info("Backup created", path=str(backup_path))
        self.enforce_retention(protect=record)
        return record

    def enforce_retention(
        self, limit: Optional[int] = None, protect: Optional[BackupRecord] = None
    ) -> List[BackupRecord]:
        """Delete all but the newest ``limit`` snapshots.

        ``protect`` is always kept and counts towards the limit, even when
        its timestamp sorts older than the others. Deletion failures are
        logged and skipped.

        Returns:
            The records that were removed
        """
        keep = self.retention if limit is None else limit
        candidates = self.records()
        if protect is not None:
            candidates = [r for r in candidates if r.path != protect.path]
            keep = max(keep - 1, 0)
        removed: List[BackupRecord] = []
        for record in candidates[keep:]:
            try:
                record.path.unlink()
            except OSError as e:
                logger.warning("Could not remove old backup", path=str(record.path), error=str(e))
                continue
            removed.append(record)
            logger.debug("Old backup removed", path=str(record.path))
        return removed

    def restore(self, record: BackupRecord, destination: Path) -> None:
        """Copy a snapshot back over ``destination``.

        The snapshot itself is kept.

        Raises:
            BackupError: If the snapshot is missing or cannot be copied
        """
        if not record.path.is_file():
            raise BackupError(f"Backup not found: {record.path}")
        try:
            atomic_copy(record.path, destination)
        except OSError as e:
            raise BackupError(f"Cannot restore {record.path} to {destination}: {e}") from e
        logger.info("Configuration restored", backup=str(record.path), path=str(destination))
