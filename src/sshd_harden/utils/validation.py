"""Input validation utilities."""

import os
import pwd
import re
import socket
from pathlib import Path
from typing import List

from sshd_harden.exceptions import ValidationError

USERNAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*\$?$")


class Validator:
    """Validate inputs and system state."""

    @staticmethod
    def validate_port(port: int) -> None:
        """Validate port number.

        Args:
            port: Port number to validate

        Raises:
            ValidationError: If port is invalid
        """
        if not (1 <= port <= 65535):
            raise ValidationError(f"Invalid port: {port}. Must be between 1-65535")

    @staticmethod
    def validate_user_exists(username: str) -> bool:
        """Check if user exists on system.

        Args:
            username: Username to check

        Returns:
            True if user exists, False otherwise
        """
        try:
            pwd.getpwnam(username)
            return True
        except KeyError:
            return False

    @staticmethod
    def validate_users(usernames: List[str]) -> List[str]:
        """Validate list of usernames.

        Args:
            usernames: List of usernames to validate

        Returns:
            List of validation error messages
        """
        errors: List[str] = []

        if not usernames:
            errors.append("No users specified")
            return errors

        for username in usernames:
            if not username or not username.strip():
                errors.append("Empty username found")
                continue

            if len(username) > 32:
                errors.append(f"Username too long: {username}")

            if not USERNAME_PATTERN.match(username):
                errors.append(f"Invalid username format: {username}")

        return errors

    @staticmethod
    def check_port_available(port: int) -> bool:
        """Check if port is available.

        Args:
            port: Port number to check

        Returns:
            True if port is available, False if in use
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.settimeout(1)
                result = s.connect_ex(("127.0.0.1", port))
                return result != 0
        except OSError:
            return False

    @staticmethod
    def validate_path_writable(path: Path) -> bool:
        """Check if path is writable, or could be created.

        The closest existing ancestor must be a writable directory.

        Args:
            path: Path to check

        Returns:
            True if path is writable
        """
        while not path.exists():
            if path.parent == path:
                return False
            path = path.parent
        return path.is_dir() and os.access(path, os.W_OK)
