"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
import structlog

from sshd_harden.backup import BackupStore
from sshd_harden.config import BackupConfig, HardenerConfig, LoggingConfig, SSHDConfig
from sshd_harden.system_info import SystemInfo
from sshd_harden.types import CommandResult, InitSystem
from sshd_harden.utils.command import CommandExecutor

SAMPLE_CONFIG = """\
# OpenSSH server configuration
#Port 22
Port 22
#PermitRootLogin prohibit-password
PermitRootLogin yes
UsePAM yes
Subsystem sftp /usr/lib/openssh/sftp-server
"""


class FakeExecutor(CommandExecutor):
    """Executor that records commands instead of running them."""

    def __init__(self) -> None:
        super().__init__()
        self.commands: List[str] = []
        self.results: Dict[str, CommandResult] = {}
        self.missing: Set[str] = set()
        self.interrupts: Set[str] = set()

    def execute(
        self,
        cmd: str,
        needs_root: bool = False,
        check: bool = True,
        timeout: int = 30,
    ) -> CommandResult:
        self.commands.append(cmd)
        if any(cmd.startswith(prefix) for prefix in self.interrupts):
            raise KeyboardInterrupt
        for prefix, result in self.results.items():
            if cmd.startswith(prefix):
                return result
        return CommandResult(True, "", "", 0)

    def check_command_available(self, command: str) -> bool:
        return command not in self.missing

    def fail(self, prefix: str, stderr: str = "error", code: int = 255) -> None:
        self.results[prefix] = CommandResult(False, "", stderr, code)


class StubSystem(SystemInfo):
    """SystemInfo with fixed, root-capable systemd host values."""

    def __init__(self, executor: Optional[CommandExecutor] = None) -> None:
        self.executor = executor or FakeExecutor()
        self.is_root = True
        self.has_sudo = True
        self.can_be_root = True
        self.init_system = InitSystem.SYSTEMD


@pytest.fixture(autouse=True)
def reset_logging():
    """Keep structlog configuration from leaking between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def sshd_config(tmp_path: Path) -> Path:
    """Create a sample sshd_config file."""
    path = tmp_path / "ssh" / "sshd_config"
    path.parent.mkdir()
    path.write_text(SAMPLE_CONFIG)
    return path


@pytest.fixture
def temp_backup_dir(tmp_path: Path) -> Path:
    """Create temporary backup directory."""
    backup_dir = tmp_path / "backups"
    backup_dir.mkdir()
    return backup_dir


@pytest.fixture
def backup_store(temp_backup_dir: Path) -> BackupStore:
    return BackupStore(temp_backup_dir)


@pytest.fixture
def test_config(tmp_path: Path, sshd_config: Path, temp_backup_dir: Path) -> HardenerConfig:
    """Create test configuration pointing at temporary paths."""
    return HardenerConfig(
        sshd=SSHDConfig(config_path=sshd_config, binary="sshd", service_name=None),
        backup=BackupConfig(directory=temp_backup_dir, retention=5),
        logging=LoggingConfig(level="DEBUG", file=tmp_path / "hardening.log"),
    )


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def system(executor: FakeExecutor) -> StubSystem:
    return StubSystem(executor)
