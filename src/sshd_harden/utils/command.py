"""Command execution utilities."""

import shlex
import subprocess
from typing import Sequence

import structlog

from sshd_harden.exceptions import CommandExecutionError
from sshd_harden.types import CommandResult

logger = structlog.get_logger(__name__)


def join_command(args: Sequence[str]) -> str:
    """Build a shell command line from arguments, quoting each one."""
    return " ".join(shlex.quote(str(arg)) for arg in args)


class CommandExecutor:
    """Execute system commands with proper error handling."""

    def __init__(self, use_sudo: bool = False) -> None:
        """Initialize command executor.

        Args:
            use_sudo: Whether to prepend sudo to commands requiring root
        """
        self.use_sudo = use_sudo

    def execute(
        self,
        cmd: str,
        needs_root: bool = False,
        check: bool = True,
        timeout: int = 30,
    ) -> CommandResult:
        """Execute command with optional sudo.

        Args:
            cmd: Command to execute
            needs_root: Whether command requires root privileges
            check: Whether to raise exception on failure
            timeout: Command timeout in seconds

        Returns:
            CommandResult with execution details

        Raises:
            CommandExecutionError: If command fails and check=True
        """
        if needs_root and self.use_sudo:
            cmd = f"sudo {cmd}"

        logger.debug("executing_command", command=cmd)
        try:
            result = subprocess.run(
                cmd,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            error_msg = f"Command timed out after {timeout}s: {cmd}"
            if check:
                raise CommandExecutionError(error_msg) from e
            return CommandResult(False, "", error_msg, -1)
        except OSError as e:
            error_msg = f"Command execution failed: {cmd}\nError: {e}"
            if check:
                raise CommandExecutionError(error_msg) from e
            return CommandResult(False, "", error_msg, -1)

        cmd_result = CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
        )

        if check and not cmd_result.success:
            raise CommandExecutionError(f"Command failed: {cmd}\nError: {result.stderr}")

        return cmd_result

    def check_command_available(self, command: str) -> bool:
        """Check if command is available on system."""
        result = self.execute(f"command -v {shlex.quote(command)}", check=False)
        return result.success
