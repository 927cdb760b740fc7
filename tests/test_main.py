"""Tests for the CLI entry point."""

from pathlib import Path
from typing import List

import pytest

from sshd_harden import main as cli
from sshd_harden.document import ConfigDocument
from sshd_harden.hardener import SSHHardener
from sshd_harden.types import GroupName


@pytest.fixture
def run_cli(monkeypatch: pytest.MonkeyPatch, executor, system, sshd_config: Path, tmp_path: Path):
    def factory(config, dry_run=False):
        return SSHHardener(config, dry_run=dry_run, executor=executor, system=system)

    monkeypatch.setattr(cli, "SSHHardener", factory)

    def run(*args: str) -> int:
        argv: List[str] = [
            "--config-file",
            str(sshd_config),
            "--backup-dir",
            str(tmp_path / "backups"),
            "--log-file",
            str(tmp_path / "hardening.log"),
            *args,
        ]
        with pytest.raises(SystemExit) as exc:
            cli.main(argv)
        return exc.value.code

    return run


def test_build_plan_from_flags():
    args = cli.parse_args(["--advanced", "--port", "2200", "--allow-users", "a,b", "--restart"])

    plan = cli.build_plan(args)

    assert plan.selected_groups == {GroupName.BASIC, GroupName.ADVANCED}
    assert plan.overrides == {"Port": "2200"}
    assert plan.allow_users == ["a", "b"]
    assert plan.confirmed("restart")


def test_list_settings(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--list-settings"])

    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "Basic Security" in out
    assert "KexAlgorithms" in out


def test_run_with_yes(run_cli, sshd_config: Path, executor, tmp_path: Path):
    assert run_cli("--yes", "--encryption") == cli.EXIT_OK

    document = ConfigDocument.load(sshd_config)
    assert document.get("Port") == "2222"
    assert document.get("MACs") == "hmac-sha2-512-etm@openssh.com"
    assert "[INFO] Configuration verified" in (tmp_path / "hardening.log").read_text()
    assert not any(cmd.startswith("systemctl restart") for cmd in executor.commands)


def test_interactive_abort(run_cli, sshd_config: Path, monkeypatch: pytest.MonkeyPatch):
    before = sshd_config.read_bytes()
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    assert run_cli() == cli.EXIT_OK
    assert sshd_config.read_bytes() == before


def test_interactive_restart(run_cli, executor, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "y")

    assert run_cli() == cli.EXIT_OK
    assert executor.commands[-1] == "systemctl restart sshd"


def test_rolled_back_exit_code(run_cli, executor, sshd_config: Path):
    before = sshd_config.read_bytes()
    executor.fail("sshd -t")

    assert run_cli("--yes", "--restart") == cli.EXIT_ROLLED_BACK
    assert sshd_config.read_bytes() == before


def test_fatal_exit_code(run_cli, executor):
    executor.fail("sshd -t")
    assert run_cli("--verify-only") == cli.EXIT_FATAL


def test_error_exit_code(run_cli, executor):
    executor.missing.add("sshd")
    assert run_cli("--yes") == cli.EXIT_ERROR


def test_rollback_command(run_cli, sshd_config: Path):
    before = sshd_config.read_bytes()
    assert run_cli("--yes") == cli.EXIT_OK

    assert run_cli("--rollback", "--yes") == cli.EXIT_OK
    assert sshd_config.read_bytes() == before


@pytest.mark.parametrize("action", ["--rollback", "--verify-only"])
def test_dry_run_rejected_with_writing_actions(run_cli, sshd_config: Path, executor, action):
    assert run_cli("--yes") == cli.EXIT_OK
    after_run = sshd_config.read_bytes()
    executor.fail("sshd -t")

    assert run_cli(action, "--dry-run", "--yes") == 2
    assert sshd_config.read_bytes() == after_run
