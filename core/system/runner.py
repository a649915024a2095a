"""
Command Runner

Async subprocess execution for the provisioning steps. Argv lists are exec'd
directly; plain strings go through `bash -o pipefail -c` (for pipelines such
as `curl ... | bash`).

In dry-run mode mutating commands are logged and recorded but never started.
Probes (`succeeds`, `output`) are read-only and always run.
"""
from __future__ import annotations

import asyncio
import logging
import os
import shlex
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]

SHELL = ["bash", "-o", "pipefail", "-c"]


@dataclass
class CommandResult:
    """Result of a command execution."""
    command: str
    return_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0
    dry_run: bool = False
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.return_code == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "return_code": self.return_code,
            "stdout": self.stdout[:1000],
            "stderr": self.stderr[:1000],
            "success": self.success,
            "duration_ms": self.duration_ms,
            "dry_run": self.dry_run,
            "timed_out": self.timed_out,
        }


class CommandError(RuntimeError):
    """Raised when a checked command exits non-zero or times out."""

    def __init__(self, result: CommandResult):
        self.result = result
        reason = "timed out" if result.timed_out else f"exited with {result.return_code}"
        stderr = result.stderr.strip().splitlines()
        tail = f": {stderr[-1]}" if stderr else ""
        super().__init__(f"Command {reason}: {result.command}{tail}")


def format_command(command: Command) -> str:
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


class CommandRunner:
    """
    Run provisioning commands.

    The runner owns its own copy of the environment so steps can extend PATH
    (e.g. after installing Bun) for the commands that follow, without touching
    the interpreter's `os.environ`.

    Example:
        runner = CommandRunner()
        await runner.run(["sudo", "apt-get", "update", "-qq"])
        if await runner.succeeds(["gh", "auth", "status"]):
            ...
    """

    def __init__(
        self,
        dry_run: bool = False,
        env: Optional[Mapping[str, str]] = None,
        default_timeout: Optional[float] = None,
    ):
        self.dry_run = dry_run
        self.env: Dict[str, str] = dict(os.environ if env is None else env)
        self.default_timeout = default_timeout
        self.history: List[CommandResult] = []

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    def which(self, name: str) -> Optional[str]:
        """Resolve an executable against the runner's PATH."""
        return shutil.which(name, path=self.env.get("PATH"))

    def prepend_path(self, directory: Union[str, Path]) -> None:
        entry = str(directory)
        parts = [p for p in self.env.get("PATH", "").split(os.pathsep) if p]
        if entry in parts:
            return
        self.env["PATH"] = os.pathsep.join([entry, *parts])
        logger.debug("PATH += %s", entry)

    def set_env(self, key: str, value: str) -> None:
        self.env[key] = value

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(
        self,
        command: Command,
        *,
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        input: Optional[str] = None,
        check: bool = True,
    ) -> CommandResult:
        """
        Run a mutating command.

        Args:
            command: Argv list, or a string to run through the shell
            cwd: Working directory
            env: Extra environment variables for this call only
            timeout: Seconds before the process is killed
            input: Text written to the process' stdin
            check: Raise CommandError on failure

        Returns:
            CommandResult with execution details

        Raises:
            CommandError: If check is True and the command failed
        """
        display = format_command(command)
        if self.dry_run:
            logger.info("🧪 [dry-run] %s", display)
            result = CommandResult(command=display, return_code=0, dry_run=True)
            self.history.append(result)
            return result

        logger.info("▶️  %s", display)
        result = await self._execute(
            command, cwd=cwd, env=env, timeout=timeout, input=input, inherit_stdin=True
        )
        self.history.append(result)
        if check and not result.success:
            raise CommandError(result)
        return result

    async def succeeds(self, command: Command, **kwargs: Any) -> bool:
        """Run a read-only probe and report whether it exited zero."""
        result = await self.probe(command, **kwargs)
        return result.success

    async def output(self, command: Command, **kwargs: Any) -> str:
        """Run a read-only probe and return its stripped stdout ("" on failure)."""
        result = await self.probe(command, **kwargs)
        return result.stdout.strip() if result.success else ""

    async def probe(self, command: Command, **kwargs: Any) -> CommandResult:
        """Run a read-only command, even in dry-run mode. Never raises on failure."""
        result = await self._execute(command, **kwargs)
        logger.debug("probe %s -> %d", result.command, result.return_code)
        return result

    async def _execute(
        self,
        command: Command,
        *,
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        input: Optional[str] = None,
        inherit_stdin: bool = False,
    ) -> CommandResult:
        display = format_command(command)
        run_env = dict(self.env)
        if env:
            run_env.update(env)
        timeout = timeout if timeout is not None else self.default_timeout
        started_at = datetime.now()

        def _elapsed() -> float:
            return (datetime.now() - started_at).total_seconds() * 1000

        # Mutating commands keep the terminal so sudo can prompt for a password
        stdin: Optional[int] = asyncio.subprocess.DEVNULL
        if input is not None:
            stdin = asyncio.subprocess.PIPE
        elif inherit_stdin:
            stdin = None
        # A failure anywhere in a pipeline fails the whole command
        argv = SHELL + [command] if isinstance(command, str) else [str(part) for part in command]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=stdin,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=run_env,
            )
        except OSError as e:
            # Missing executable or bad cwd: report like a shell would (127)
            return CommandResult(
                command=display,
                return_code=127,
                stderr=str(e),
                duration_ms=_elapsed(),
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input.encode() if input is not None else None),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return CommandResult(
                command=display,
                return_code=-1,
                stderr="Process timed out",
                duration_ms=_elapsed(),
                timed_out=True,
            )

        return CommandResult(
            command=display,
            return_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace") if stdout else "",
            stderr=stderr.decode(errors="replace") if stderr else "",
            duration_ms=_elapsed(),
        )
