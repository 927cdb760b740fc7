"""Syntax verification of a persisted configuration, with rollback."""

from pathlib import Path
from typing import Optional

import structlog

from sshd_harden.backup import BackupStore
from sshd_harden.exceptions import BackupError, FatalError, VerificationFailure
from sshd_harden.types import BackupRecord, GateState
from sshd_harden.utils.command import CommandExecutor, join_command

logger = structlog.get_logger(__name__)


class VerificationGate:
    """Check a configuration with ``sshd -t`` and roll back when it fails.

    States move ``unverified -> valid`` or
    ``unverified -> invalid -> rolled_back``. A service restart may only be
    offered while the gate is ``valid``.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        backup_store: BackupStore,
        sshd_binary: str = "sshd",
    ) -> None:
        self.executor = executor
        self.backup_store = backup_store
        self.sshd_binary = sshd_binary
        self.state = GateState.UNVERIFIED

    @property
    def can_restart(self) -> bool:
        return self.state == GateState.VALID

    def check(self, path: Path) -> None:
        """Run the syntax checker against ``path``.

        Raises:
            VerificationFailure: If the checker exits non-zero or cannot run
        """
        cmd = join_command([self.sshd_binary, "-t", "-f", str(path)])
        result = self.executor.execute(cmd, needs_root=True, check=False)
        if not result.success:
            detail = (result.stderr or result.stdout).strip() or f"exit code {result.return_code}"
            raise VerificationFailure(f"sshd rejected {path}: {detail}")

    def verify(self, path: Path, record: Optional[BackupRecord] = None) -> GateState:
        """Verify ``path`` and restore a backup when it is invalid.

        Args:
            path: Configuration file to check
            record: Snapshot to restore on failure; the latest one if omitted

        Returns:
            ``GateState.VALID`` or ``GateState.ROLLED_BACK``

        Raises:
            FatalError: If the file is invalid and no backup can be restored.
                The file is left with its current content.
        """
        self.state = GateState.UNVERIFIED
        try:
            self.check(path)
        except VerificationFailure as e:
            self.state = GateState.INVALID
            logger.error("Configuration verification failed", path=str(path), error=str(e))
            return self._roll_back(path, record)

        self.state = GateState.VALID
        logger.info("Configuration verified", path=str(path))
        return self.state

    def _roll_back(self, path: Path, record: Optional[BackupRecord]) -> GateState:
        if record is None:
            record = self.backup_store.latest()
        if record is None:
            logger.critical(
                "No backup available, configuration left unverified on disk",
                path=str(path),
            )
            raise FatalError(
                f"{path} failed verification and no backup exists in "
                f"{self.backup_store.directory}; fix it manually before restarting sshd"
            )

        try:
            self.backup_store.restore(record, path)
        except BackupError as e:
            logger.critical("Rollback failed", path=str(path), backup=str(record.path), error=str(e))
            raise FatalError(f"Rollback of {path} failed: {e}") from e

        self.state = GateState.ROLLED_BACK
        logger.warning("Configuration rolled back", path=str(path), backup=str(record.path))
        return self.state
