"""CLI entry point for sshd-harden."""

import argparse
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from sshd_harden import __version__
from sshd_harden.catalog import CATALOG
from sshd_harden.config import HardenerConfig, RunPlan
from sshd_harden.exceptions import FatalError, HardenerError
from sshd_harden.hardener import RESTART, SSHHardener
from sshd_harden.log import configure_logging
from sshd_harden.types import GateState, GroupName, HardeningReport

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ROLLED_BACK = 2
EXIT_FATAL = 3
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="sshd-harden",
        description="sshd-harden - apply a hardening catalog to sshd_config safely",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic settings only
  sudo sshd-harden

  # Everything, with allowed users, restart without asking
  sudo sshd-harden --advanced --encryption --allow-users alice,bob --restart --yes

  # Show what would change
  sshd-harden --advanced --dry-run

  # Check the live configuration / restore the last backup
  sudo sshd-harden --verify-only
  sudo sshd-harden --rollback

Environment variables:
  SSHD_CONFIG_PATH      - sshd configuration file
  SSHD_BINARY           - sshd binary used for syntax checks
  BACKUP_DIRECTORY      - Backup directory
  BACKUP_RETENTION      - Number of backups to keep
  LOG_LEVEL / LOG_FILE  - Logging
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    groups = parser.add_argument_group("setting groups")
    groups.add_argument("--no-basic", action="store_true", help="Skip the basic security group")
    groups.add_argument("--advanced", action="store_true", help="Apply advanced security settings")
    groups.add_argument("--encryption", action="store_true", help="Apply encryption settings")
    groups.add_argument("--port", type=int, help="SSH port (overrides the catalog value)")
    groups.add_argument(
        "--allow-users",
        type=str,
        help="Comma-separated list of users allowed to log in (sets AllowUsers)",
    )

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "--list-settings", action="store_true", help="Print the setting catalog and exit"
    )
    actions.add_argument(
        "--verify-only",
        action="store_true",
        help="Verify the live configuration, rolling back if it is invalid",
    )
    actions.add_argument(
        "--rollback", action="store_true", help="Restore the most recent backup"
    )

    parser.add_argument("--restart", action="store_true", help="Restart sshd after verification")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument(
        "--dry-run", action="store_true", help="Show changes without writing anything"
    )
    parser.add_argument("--config-file", type=Path, help="sshd configuration file")
    parser.add_argument("--backup-dir", type=Path, help="Custom backup directory")
    parser.add_argument("--log-file", type=Path, help="Append-only log file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress non-error output")

    args = parser.parse_args(argv)
    if args.dry_run and (args.rollback or args.verify_only):
        parser.error("--dry-run cannot be combined with --rollback or --verify-only")
    return args


def load_config(args: argparse.Namespace) -> HardenerConfig:
    """Load configuration from environment, then apply CLI overrides."""
    config = HardenerConfig.from_env()

    if args.config_file:
        config.sshd.config_path = args.config_file

    if args.backup_dir:
        config.backup.directory = args.backup_dir

    if args.log_file:
        config.logging.file = args.log_file

    if args.verbose:
        config.logging.level = "DEBUG"

    return config


def build_plan(args: argparse.Namespace) -> RunPlan:
    """Translate CLI flags into a run plan."""
    selected = set()
    if not args.no_basic:
        selected.add(GroupName.BASIC)
    if args.advanced:
        selected.add(GroupName.ADVANCED)
    if args.encryption:
        selected.add(GroupName.ENCRYPTION)

    overrides = {}
    if args.port is not None:
        overrides["Port"] = str(args.port)

    return RunPlan(
        selected_groups=selected,
        confirmations={RESTART: args.restart},
        allow_users=args.allow_users or [],
        overrides=overrides,
    )


def ask(question: str) -> bool:
    return input(f"{question} (y/n): ").strip().lower() in ("y", "yes")


def print_catalog() -> None:
    for group in CATALOG.values():
        print(f"\n=== {group.title} Settings ({group.key.value}) ===")
        for directive in group.directives:
            print(f"  {directive.name:<24} {directive.value:<40} {directive.description}")
    print()


def print_report(report: HardeningReport) -> None:
    print("\n📋 Changes:")
    for change in report.changes:
        if not change.changed:
            marker = "="
        elif change.previous is None:
            marker = "+"
        else:
            marker = "~"
        previous = f" (was {change.previous})" if change.changed and change.previous else ""
        print(f"  {marker} [{change.group}] {change.name} {change.value}{previous}")
    if report.backup:
        print(f"\n  Backup: {report.backup.path}")


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """Main entry point for CLI.

    Raises:
        SystemExit: Always exits with appropriate code
    """
    args = parse_args(argv)

    if args.list_settings:
        print_catalog()
        sys.exit(EXIT_OK)

    if not sys.platform.startswith("linux"):
        print("Error: This tool only supports Linux systems", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    interactive = not (args.yes or args.quiet)

    try:
        config = load_config(args)
        configure_logging(config.logging.level, config.logging.file, quiet=args.quiet)

        hardener = SSHHardener(config, dry_run=args.dry_run)

        if args.rollback:
            if interactive and not ask(f"Restore latest backup over {config.sshd.config_path}?"):
                print("Aborted.")
                sys.exit(EXIT_OK)
            hardener.rollback()
            print("✅ Configuration restored from backup")
            sys.exit(EXIT_OK)

        if args.verify_only:
            state = hardener.verify_only()
            if state == GateState.ROLLED_BACK:
                print("⚠️  Configuration was invalid and has been rolled back", file=sys.stderr)
                sys.exit(EXIT_ROLLED_BACK)
            print("✅ Configuration is valid")
            sys.exit(EXIT_OK)

        plan = build_plan(args)

        if not args.quiet:
            print("╔══════════════════════════════════════╗")
            print("║  SSHD HARDEN                         ║")
            print(f"║  Version {__version__:<28}║")
            print("╚══════════════════════════════════════╝\n")

            if args.dry_run:
                print("🔍 DRY RUN MODE - No changes will be applied\n")

            groups = [CATALOG[key].title for key in CATALOG if key in plan.selected_groups]
            print("📋 Configuration Summary:")
            print(f"  Config File: {config.sshd.config_path}")
            print(f"  Groups: {', '.join(groups) or 'none'}")
            print(f"  Allowed Users: {', '.join(plan.allow_users) or 'unchanged'}")
            print(f"  Backup Directory: {config.backup.directory}\n")

        if interactive and not args.dry_run and not ask("Proceed with hardening?"):
            print("Aborted.")
            sys.exit(EXIT_OK)

        report = hardener.run(plan)

        if not args.quiet:
            print_report(report)

        if report.state == GateState.ROLLED_BACK:
            print(
                "\n⚠️  sshd rejected the new configuration; the previous file was restored.",
                file=sys.stderr,
            )
            sys.exit(EXIT_ROLLED_BACK)

        if report.state == GateState.VALID and not report.restarted and interactive:
            if ask("Restart SSH service now?"):
                report = hardener.restart_service(report)

        if not args.quiet and not args.dry_run:
            print("\n✅ HARDENING COMPLETE")
            if not report.restarted:
                print("  • sshd was not restarted; changes apply on next restart")
            print("  • Test SSH access in a new session before closing this one\n")

        sys.exit(EXIT_OK)

    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user", file=sys.stderr)
        sys.exit(EXIT_INTERRUPTED)

    except FatalError as e:
        print(f"\n❌ FATAL: {e}", file=sys.stderr)
        print("   The configuration could not be recovered automatically.", file=sys.stderr)
        sys.exit(EXIT_FATAL)

    except HardenerError as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    except Exception as e:
        print(f"\n❌ Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
