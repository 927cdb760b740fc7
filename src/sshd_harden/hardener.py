"""Main SSH hardening implementation."""

from pathlib import Path
from typing import List, Optional

import structlog

from sshd_harden.backup import BackupStore
from sshd_harden.catalog import iter_groups
from sshd_harden.config import HardenerConfig, RunPlan
from sshd_harden.document import ConfigDocument
from sshd_harden.engine import ApplicationEngine
from sshd_harden.exceptions import (
    BackupError,
    ConfigurationError,
    FatalError,
    HardenerError,
    PreconditionError,
    ServiceControlError,
    ValidationError,
)
from sshd_harden.system_info import SystemInfo
from sshd_harden.types import BackupRecord, DirectiveChange, GateState, HardeningReport
from sshd_harden.utils.command import CommandExecutor
from sshd_harden.utils.validation import Validator
from sshd_harden.verification import VerificationGate

logger = structlog.get_logger(__name__)

RESTART = "restart"


class SSHHardener:
    """Main SSH hardening orchestrator.

    A run snapshots the live configuration, applies the planned groups to an
    in-memory document, saves it atomically and hands it to the
    verification gate. Nothing touches the live file before the snapshot
    succeeds, and the service is only restarted behind a valid gate.
    """

    def __init__(
        self,
        config: HardenerConfig,
        dry_run: bool = False,
        executor: Optional[CommandExecutor] = None,
        system: Optional[SystemInfo] = None,
    ) -> None:
        """Initialize SSH hardener.

        Args:
            config: Configuration object
            dry_run: If True, apply changes in memory only
            executor: Command executor; built from system privileges if omitted
            system: System information; detected if omitted
        """
        self.config = config
        self.dry_run = dry_run

        self.system = system or SystemInfo()
        self.executor = executor or CommandExecutor(use_sudo=not self.system.is_root)
        self.validator = Validator()
        self.engine = ApplicationEngine()
        self.backups = BackupStore(
            config.backup.directory,
            target_name=config.sshd.config_path.name,
            retention=config.backup.retention,
        )

    @property
    def config_path(self) -> Path:
        return self.config.sshd.config_path

    def new_gate(self) -> VerificationGate:
        return VerificationGate(self.executor, self.backups, self.config.sshd.binary)

    def preflight(self, plan: Optional[RunPlan] = None) -> None:
        """Run preflight safety checks.

        Raises:
            PreconditionError: If privileges, the config file or sshd are missing
            ConfigurationError: If configuration or plan values are invalid
        """
        logger.info("Starting preflight checks")
        issues: List[str] = []
        warnings: List[str] = []

        issues.extend(self.system.check_requirements(self.config))
        config_issues = self.config.validate_config()

        if not self.validator.validate_path_writable(self.config.backup.directory):
            issues.append(f"Backup directory is not writable: {self.config.backup.directory}")

        if plan is not None:
            config_issues.extend(self._check_plan(plan, warnings))

        for warning in warnings:
            logger.warning("Preflight warning", warning=warning)

        if config_issues:
            for issue in config_issues:
                logger.error("Preflight issue", issue=issue)
            raise ConfigurationError("; ".join(config_issues))

        if issues and self.dry_run:
            for issue in issues:
                logger.warning("Preflight issue ignored in dry run", issue=issue)
        elif issues:
            for issue in issues:
                logger.error("Preflight issue", issue=issue)
            raise PreconditionError("; ".join(issues))

        logger.info("Preflight checks passed", warnings=len(warnings))

    @staticmethod
    def _unknown_overrides(plan: RunPlan) -> List[str]:
        known = set()
        for group in iter_groups(plan.selected_groups):
            known.update(group.names)
        return sorted(name for name in plan.overrides if name not in known)

    def _check_plan(self, plan: RunPlan, warnings: List[str]) -> List[str]:
        issues: List[str] = []

        for name in self._unknown_overrides(plan):
            issues.append(f"Override {name} is not part of any selected setting group")

        port = plan.overrides.get("Port")
        if port is not None:
            try:
                self.validator.validate_port(int(port))
            except ValueError:
                issues.append(f"Invalid port: {port}")
            except ValidationError as e:
                issues.append(str(e))
            else:
                if not self.validator.check_port_available(int(port)):
                    warnings.append(f"Port {port} is already in use")

        if plan.allow_users:
            issues.extend(self.validator.validate_users(plan.allow_users))
            for user in plan.allow_users:
                if not self.validator.validate_user_exists(user):
                    warnings.append(f"User {user} does not exist on this system")

        return issues

    def apply_plan(self, document: ConfigDocument, plan: RunPlan) -> List[DirectiveChange]:
        """Apply the plan's groups and allowed users to ``document``.

        Raises:
            ConfigurationError: If an override names no directive of the
                selected groups
        """
        unknown = self._unknown_overrides(plan)
        if unknown:
            raise ConfigurationError(
                f"Overrides not in any selected setting group: {', '.join(unknown)}"
            )
        groups = [group.with_overrides(plan.overrides) for group in iter_groups(plan.selected_groups)]
        changes = self.engine.apply_all(document, groups)
        if plan.allow_users:
            changes.append(self.engine.allow_users(document, plan.allow_users))
        return changes

    def run(self, plan: RunPlan) -> HardeningReport:
        """Execute SSH hardening process.

        Returns:
            Report of what changed and where the verification gate ended

        Raises:
            PreconditionError: If preflight checks fail
            BackupError: If the snapshot fails; nothing was modified
            ConfigIOError: If the configuration cannot be read or saved
            FatalError: If verification fails and nothing can be restored
        """
        logger.info(
            "Starting SSH hardening",
            groups=",".join(sorted(g.value for g in plan.selected_groups)),
            dry_run=self.dry_run,
        )

        gate = self.new_gate()
        backup = None
        written = False

        try:
            self.preflight(plan)

            if self.dry_run:
                document = ConfigDocument.load(self.config_path)
                changes = self.apply_plan(document, plan)
                logger.info("Dry run complete, nothing written", changes=len(changes))
                return HardeningReport(None, changes, GateState.UNVERIFIED, dry_run=True)

            backup = self.backups.create(self.config_path)

            document = ConfigDocument.load(self.config_path)
            changes = self.apply_plan(document, plan)
            written = True
            document.save(self.config_path)

            state = gate.verify(self.config_path, record=backup)
            report = HardeningReport(backup, changes, state)

            if state == GateState.ROLLED_BACK:
                logger.error("Changes were rolled back", backup=str(backup.path))
                return report

            if plan.confirmed(RESTART):
                report = self.restart_service(report)

            logger.info("SSH hardening completed", changed=report.changed_count)
            return report

        except FatalError as e:
            logger.critical("Hardening halted", error=str(e))
            raise

        except HardenerError as e:
            logger.error("Hardening failed", error=str(e), kind=type(e).__name__)
            raise

        except KeyboardInterrupt:
            logger.warning("Interrupted by user")
            if written and gate.state not in (GateState.VALID, GateState.ROLLED_BACK):
                self._restore_interrupted(backup)
            raise

    def _restore_interrupted(self, backup: BackupRecord) -> None:
        """Put the snapshot back over a saved but unverified configuration."""
        try:
            self.backups.restore(backup, self.config_path)
        except BackupError as e:
            logger.critical("Rollback after interrupt failed", error=str(e))
            raise FatalError(f"Rollback of {self.config_path} failed: {e}") from e
        logger.warning("Unverified configuration rolled back", backup=str(backup.path))

    def restart_service(self, report: HardeningReport) -> HardeningReport:
        """Restart the SSH service behind a valid verification gate.

        Raises:
            HardenerError: If the report's configuration was not verified
            ServiceControlError: If the service cannot be restarted
        """
        if report.state != GateState.VALID:
            raise HardenerError(
                f"Refusing to restart sshd: configuration state is {report.state.value}"
            )

        service = self.config.sshd.service_name or self.system.detect_ssh_service()
        if not service:
            raise ServiceControlError("SSH service not found")

        cmd = self.system.get_service_command(service, "restart")
        if not cmd:
            raise ServiceControlError(f"Cannot control service on {self.system.init_system.value}")

        result = self.executor.execute(cmd, needs_root=True, check=False)
        if not result.success:
            logger.error("Service restart failed", service=service, error=result.stderr.strip())
            raise ServiceControlError(f"Service restart failed: {result.stderr}")

        logger.info("SSH service restarted", service=service)
        return report._replace(restarted=True)

    def _refuse_dry_run(self, action: str) -> None:
        if self.dry_run:
            raise ConfigurationError(
                f"{action} writes the live configuration and cannot run in dry run mode"
            )

    def verify_only(self) -> GateState:
        """Verify the live configuration, rolling back if it is invalid.

        Raises:
            ConfigurationError: In dry run
        """
        self._refuse_dry_run("verify-only")
        return self.new_gate().verify(self.config_path)

    def rollback(self) -> None:
        """Restore the latest backup over the live configuration.

        Raises:
            ConfigurationError: In dry run
            FatalError: If no backup exists
            BackupError: If the restore fails
        """
        self._refuse_dry_run("rollback")
        record = self.backups.latest()
        if record is None:
            logger.critical("No backup to roll back to", directory=str(self.backups.directory))
            raise FatalError(f"No backup found in {self.backups.directory}")

        logger.info("Rolling back changes", backup=str(record.path))
        self.backups.restore(record, self.config_path)
