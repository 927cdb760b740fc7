"""System information detection for sshd-harden."""

import os
import shlex
from typing import List, Optional

from sshd_harden.config import HardenerConfig
from sshd_harden.types import InitSystem
from sshd_harden.utils.command import CommandExecutor


class SystemInfo:
    """Detect and store system capabilities."""

    def __init__(self, executor: Optional[CommandExecutor] = None) -> None:
        """Initialize system information detection.

        Args:
            executor: Executor used for probing commands
        """
        self.executor = executor or CommandExecutor()
        self.is_root = os.geteuid() == 0
        self.init_system = self._detect_init_system()
        self.has_sudo = self._check_sudo()
        self.can_be_root = self.is_root or self.has_sudo

    def _detect_init_system(self) -> InitSystem:
        """Detect init system."""
        if os.path.isdir("/run/systemd/system"):
            return InitSystem.SYSTEMD

        checks = [
            ("rc-service", InitSystem.OPENRC),
            ("service", InitSystem.SYSVINIT),
        ]
        for cmd, system in checks:
            if self.executor.check_command_available(cmd):
                return system

        return InitSystem.UNKNOWN

    def _check_sudo(self) -> bool:
        """Check if current user can use sudo."""
        if self.is_root:
            return True

        if not self.executor.check_command_available("sudo"):
            return False

        result = self.executor.execute("sudo -n true 2>/dev/null", check=False)
        return result.success

    def get_service_command(self, service: str, action: str) -> str:
        """Get service control command for this init system."""
        service = shlex.quote(service)
        if self.init_system == InitSystem.SYSTEMD:
            return f"systemctl {action} {service}"
        elif self.init_system == InitSystem.SYSVINIT:
            return f"service {service} {action}"
        elif self.init_system == InitSystem.OPENRC:
            return f"rc-service {service} {action}"
        return ""

    def detect_ssh_service(self) -> Optional[str]:
        """Return the name the SSH daemon is registered under."""
        for name in ["sshd", "ssh", "openssh"]:
            cmd = self.get_service_command(name, "status")
            if not cmd:
                return None
            result = self.executor.execute(cmd, check=False)
            if result.success or "loaded" in result.stdout.lower():
                return name
        return None

    def check_requirements(self, config: HardenerConfig) -> List[str]:
        """Check if system meets minimum requirements."""
        issues: List[str] = []

        if not self.can_be_root:
            issues.append("No root access available (need root or sudo)")

        if not config.sshd.config_path.is_file():
            issues.append(f"SSH config not found at {config.sshd.config_path}")

        if not self.executor.check_command_available(config.sshd.binary):
            issues.append(f"sshd binary not found: {config.sshd.binary}")

        return issues
