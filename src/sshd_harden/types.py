"""Type definitions for sshd-harden."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional


class InitSystem(str, Enum):
    """Supported init systems."""

    SYSTEMD = "systemd"
    SYSVINIT = "sysvinit"
    OPENRC = "openrc"
    UNKNOWN = "unknown"


class GroupName(str, Enum):
    """Setting groups known to the catalog, in catalog order."""

    BASIC = "basic"
    ADVANCED = "advanced"
    ENCRYPTION = "encryption"


class GateState(str, Enum):
    """States of the verification gate."""

    UNVERIFIED = "unverified"
    VALID = "valid"
    INVALID = "invalid"
    ROLLED_BACK = "rolled_back"


class ChangeKind(str, Enum):
    """How a directive landed in the document."""

    INSERTED = "inserted"
    REPLACED = "replaced"


class CommandResult(NamedTuple):
    """Result of command execution."""

    success: bool
    stdout: str
    stderr: str
    return_code: int = 0


class BackupRecord(NamedTuple):
    """A snapshot of the configuration file on disk."""

    path: Path
    created_at: datetime

    @property
    def name(self) -> str:
        return self.path.name


class DirectiveChange(NamedTuple):
    """One directive written by the application engine."""

    group: str
    name: str
    value: str
    kind: ChangeKind
    previous: Optional[str] = None

    @property
    def changed(self) -> bool:
        """False when a replacement wrote the value already present."""
        return self.kind == ChangeKind.INSERTED or self.previous != self.value


class HardeningReport(NamedTuple):
    """Outcome of a hardening run."""

    backup: Optional[BackupRecord]
    changes: List[DirectiveChange]
    state: GateState
    restarted: bool = False
    dry_run: bool = False

    @property
    def changed_count(self) -> int:
        return sum(1 for change in self.changes if change.changed)
