import pytest

import cli.main as cli_main
from cli.__main__ import build_parser
from cli.main import render_command, run_cli, setup_command, steps_command, verify_command
from core.api.provisioner import Provisioner
from core.models import CheckResult
from core.settings import Settings

from tests.conftest import FakeRunner


def test_parser_defaults_and_step_lists():
    args = build_parser().parse_args([])
    assert args.command == "setup"
    assert args.only is None and not args.dry_run

    args = build_parser().parse_args(["setup", "--dry-run", "--only", "bun, node,", "--skip", "docker"])
    assert args.dry_run
    assert args.only == ["bun", "node"]
    assert args.skip == ["docker"]


def test_parser_rejects_unknown_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["teardown"])


def test_steps_command_lists_every_step(provisioner: Provisioner, capsys):
    assert steps_command(provisioner) == 0
    out = capsys.readouterr().out
    assert "system-packages" in out
    assert "wslconfig" in out and "(optional)" in out


@pytest.mark.asyncio
async def test_setup_command_exit_codes(provisioner: Provisioner, runner: FakeRunner, capsys):
    assert await setup_command(provisioner, only=["directories"]) == 0
    out = capsys.readouterr().out
    assert "Setup complete!" in out
    assert "Next Steps" in out

    runner.respond("apt-get update", return_code=100)
    assert await setup_command(provisioner, only=["system-packages"]) == 1
    assert "halted at 'system-packages'" in capsys.readouterr().out

    assert await setup_command(provisioner, only=["not-a-step"]) == 2


@pytest.mark.asyncio
async def test_render_command_prints_without_writing(provisioner: Provisioner, settings: Settings, capsys):
    assert await render_command(provisioner) == 0
    out = capsys.readouterr().out
    assert f"# {settings.buildit_mcp_file}" in out
    assert "networkingMode=mirrored" in out
    assert not settings.buildit_mcp_file.exists()


@pytest.mark.asyncio
async def test_render_command_write(provisioner: Provisioner, settings: Settings):
    assert await render_command(provisioner, write=True) == 0
    assert settings.buildit_mcp_file.exists()
    assert settings.buildit_claude_settings.exists()


@pytest.mark.asyncio
async def test_verify_command_exit_code(provisioner: Provisioner, monkeypatch, capsys):
    async def verify(include_mcp: bool = False):
        return [CheckResult("git installed", True), CheckResult("ibah API responding", False)]

    monkeypatch.setattr(provisioner, "verify", verify)
    assert await verify_command(provisioner) == 1
    assert "1/2 checks passed" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_cli_uses_supplied_settings(settings: Settings, monkeypatch, capsys):
    monkeypatch.setattr(
        cli_main,
        "Provisioner",
        lambda settings, dry_run: Provisioner(settings=settings, runner=FakeRunner(), dry_run=dry_run),
    )
    assert await run_cli("steps", settings=settings) == 0
    assert "shell-profile" in capsys.readouterr().out
    assert await run_cli("teardown", settings=settings) == 2


@pytest.mark.asyncio
async def test_run_cli_invalid_environment(monkeypatch):
    monkeypatch.setenv("BUILDIT_WSL_PROCESSORS", "many")
    assert await run_cli("steps") == 2
