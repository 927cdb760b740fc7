"""sshd-harden - safe, idempotent hardening of sshd_config."""

__version__ = "1.0.0"
__license__ = "MIT"

from sshd_harden.backup import BackupStore
from sshd_harden.catalog import CATALOG, Directive, SettingGroup, get_group, iter_groups
from sshd_harden.config import HardenerConfig, RunPlan
from sshd_harden.document import ConfigDocument
from sshd_harden.engine import ApplicationEngine
from sshd_harden.exceptions import (
    BackupError,
    ConfigIOError,
    ConfigurationError,
    FatalError,
    HardenerError,
    PreconditionError,
    ValidationError,
    VerificationFailure,
)
from sshd_harden.hardener import SSHHardener
from sshd_harden.verification import VerificationGate

__all__ = [
    "ApplicationEngine",
    "BackupError",
    "BackupStore",
    "CATALOG",
    "ConfigDocument",
    "ConfigIOError",
    "ConfigurationError",
    "Directive",
    "FatalError",
    "HardenerConfig",
    "HardenerError",
    "PreconditionError",
    "RunPlan",
    "SSHHardener",
    "SettingGroup",
    "ValidationError",
    "VerificationFailure",
    "VerificationGate",
    "get_group",
    "iter_groups",
]
