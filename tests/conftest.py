from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from core.api.provisioner import Provisioner
from core.settings import Settings
from core.system.runner import CommandResult, CommandRunner, format_command


class FakeRunner(CommandRunner):
    """CommandRunner that records commands instead of spawning processes.

    `installed` controls `which()`; `responses` maps a substring of the
    formatted command to (return_code, stdout). The first match wins and
    unmatched commands succeed with empty output.
    """

    def __init__(self, installed: Optional[Set[str]] = None, dry_run: bool = False):
        super().__init__(dry_run=dry_run, env={"PATH": "/usr/bin", "USER": "dev"})
        self.installed: Set[str] = set(installed or ())
        self.responses: List[Tuple[str, int, str]] = []
        self.executed: List[str] = []
        self.inputs: Dict[str, str] = {}

    def respond(self, pattern: str, return_code: int = 0, stdout: str = "") -> "FakeRunner":
        self.responses.append((pattern, return_code, stdout))
        return self

    def which(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.installed else None

    def ran(self, pattern: str) -> bool:
        return any(pattern in command for command in self.executed)

    async def _execute(self, command, *, cwd=None, env=None, timeout=None, input=None, inherit_stdin=False):
        display = format_command(command)
        self.executed.append(display)
        if input is not None:
            self.inputs[display] = input
        for pattern, return_code, stdout in self.responses:
            if pattern in display:
                return CommandResult(command=display, return_code=return_code, stdout=stdout)
        return CommandResult(command=display, return_code=0)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    home = tmp_path / "home"
    home.mkdir()
    return Settings(
        home=home,
        windows_home=tmp_path / "winhome",
        wsl_conf_path=tmp_path / "etc" / "wsl.conf",
        windows_users_root=tmp_path / "Users",
        compose_settle_seconds=0,
        postgres_wait_attempts=3,
        postgres_wait_interval=0,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def provisioner(settings: Settings, runner: FakeRunner) -> Provisioner:
    return Provisioner(settings=settings, runner=runner)
