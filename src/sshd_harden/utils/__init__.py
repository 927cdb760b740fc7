"""Utility modules for sshd-harden."""

from sshd_harden.utils.command import CommandExecutor, join_command
from sshd_harden.utils.file import atomic_copy, atomic_write, copy_file
from sshd_harden.utils.validation import Validator

__all__ = [
    "CommandExecutor",
    "Validator",
    "atomic_copy",
    "atomic_write",
    "copy_file",
    "join_command",
]
