"""Custom exceptions for sshd-harden."""


class HardenerError(Exception):
    """Base exception for all hardener errors."""

    pass


class ConfigurationError(HardenerError):
    """Raised when a directive, group or run plan is invalid."""

    pass


class ConfigIOError(HardenerError):
    """Raised when the sshd configuration cannot be read, written or renamed."""

    pass


class BackupError(HardenerError):
    """Raised when a snapshot cannot be created or restored."""

    pass


class VerificationFailure(HardenerError):
    """Raised when the syntax checker rejects a configuration."""

    pass


class FatalError(HardenerError):
    """Raised when no known-good configuration can be recovered.

    The operator has to inspect the system manually.
    """

    pass


class PreconditionError(HardenerError):
    """Raised when privileges or required external tools are missing."""

    pass


class ValidationError(HardenerError):
    """Raised when user input fails validation."""

    pass


class CommandExecutionError(HardenerError):
    """Raised when command execution fails."""

    pass


class ServiceControlError(HardenerError):
    """Raised when service control operation fails."""

    pass
