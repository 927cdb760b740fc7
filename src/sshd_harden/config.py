"""Configuration management for sshd-harden."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sshd_harden.types import GroupName


class SSHDConfig(BaseSettings):
    """Location of the daemon configuration and its tooling."""

    config_path: Path = Field(
        default=Path("/etc/ssh/sshd_config"), description="sshd configuration file"
    )
    binary: str = Field(default="sshd", description="sshd binary used for -t checks")
    service_name: Optional[str] = Field(
        default=None, description="Service to restart; detected when unset"
    )

    model_config = SettingsConfigDict(
        env_prefix="SSHD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class BackupConfig(BaseSettings):
    """Backup configuration."""

    directory: Path = Field(default=Path("/etc/ssh/backups"))
    retention: int = Field(default=5, ge=1, le=100)

    model_config = SettingsConfigDict(
        env_prefix="BACKUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    file: Optional[Path] = Field(default=Path("/var/log/ssh_hardening.log"))

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def __init__(self, **data: object) -> None:
        """Initialize logging configuration."""
        super().__init__(**data)
        # /var/log is root-only; fall back to the user's home
        if os.geteuid() != 0 and "file" not in self.model_fields_set:
            self.file = Path.home() / ".ssh_hardening.log"

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Upper-case and check the level name."""
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class HardenerConfig(BaseSettings):
    """Main configuration container."""

    sshd: SSHDConfig = Field(default_factory=SSHDConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def from_env(cls) -> "HardenerConfig":
        """Create configuration from environment variables."""
        return cls(
            sshd=SSHDConfig(),
            backup=BackupConfig(),
            logging=LoggingConfig(),
        )

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues: List[str] = []

        if self.backup.directory.resolve() == self.sshd.config_path.parent.resolve():
            issues.append("Backup directory must not be the sshd configuration directory")

        if not self.sshd.binary.strip():
            issues.append("No sshd binary configured")

        return issues


class RunPlan(BaseModel):
    """Explicit inputs of a hardening run.

    Built by the CLI (or any other front end) instead of prompting from inside
    the engine.
    """

    selected_groups: Set[GroupName] = Field(default_factory=lambda: {GroupName.BASIC})
    confirmations: Dict[str, bool] = Field(default_factory=dict)
    allow_users: List[str] = Field(default_factory=list)
    overrides: Dict[str, str] = Field(default_factory=dict)

    @field_validator("allow_users", mode="before")
    @classmethod
    def parse_allow_users(cls, v: object) -> List[str]:
        """Parse allowed users from a comma/space separated string or list."""
        if isinstance(v, str):
            return [u for u in v.replace(",", " ").split() if u]
        if isinstance(v, (list, tuple)):
            return [str(u).strip() for u in v if str(u).strip()]
        return []

    def confirmed(self, key: str) -> bool:
        """Return whether the operator approved the step ``key``."""
        return self.confirmations.get(key, False)
