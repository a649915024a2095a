"""
Core API for the buildit development environment setup

This is the main black-box API that can be used by any interface (CLI, web server, etc.)
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from core.models import CheckResult, SetupReport, SetupStep, StepResult, StepStatus
from core.settings import Settings
from core.steps import get_setup_steps
from core.system import CommandRunner
from core.templates import (
    merge_claude_settings,
    merge_mcp_config,
    render_wsl_conf,
    render_wslconfig,
    to_json,
)
from core.utils.fs import read_text_or_none
from core.verify import SetupVerifier

logger = logging.getLogger(__name__)

CONFIG_STEPS = ["mcp-config", "claude-settings", "wslconfig", "wsl-conf"]

_STATUS_LOG = {
    StepStatus.DONE: (logging.INFO, "✅"),
    StepStatus.SKIPPED: (logging.INFO, "✅"),
    StepStatus.WARNED: (logging.WARNING, "⚠️ "),
    StepStatus.FAILED: (logging.ERROR, "❌"),
}


class Provisioner:
    """
    Core API for provisioning a WSL machine for buildit + ibah.

    This class provides an interface-agnostic API for:
    - Running the setup steps (all, or a selection) with fail-fast semantics
    - Verifying the resulting machine state
    - Rendering the generated configuration files

    Usage:
        provisioner = Provisioner(dry_run=True)
        report = await provisioner.run(skip=["wslconfig"])
        checks = await provisioner.verify()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Optional[CommandRunner] = None,
        dry_run: bool = False,
    ):
        """
        Args:
            settings: Provisioning settings (defaults to `Settings.from_env()`)
            runner: Command runner (defaults to a new runner honouring dry_run)
            dry_run: Log mutating commands and file writes instead of performing them
        """
        self.settings = settings or Settings.from_env()
        self.runner = runner or CommandRunner(dry_run=dry_run)
        if dry_run:
            self.runner.dry_run = True
        self.last_report: Optional[SetupReport] = None
        self._running = False
        self._windows_home: Optional[Path] = None
        self._windows_home_resolved = False

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    def is_running(self) -> bool:
        return self._running

    def list_steps(self) -> List[SetupStep]:
        return get_setup_steps(self)

    async def windows_home(self) -> Optional[Path]:
        """
        Locate the Windows user profile directory from inside WSL.

        Uses `settings.windows_home` when set, otherwise asks `cmd.exe` for
        %USERPROFILE% and converts it with `wslpath`. The answer is cached.
        """
        if self._windows_home_resolved:
            return self._windows_home

        home = self.settings.windows_home
        if home is None:
            raw = (await self.runner.output(["cmd.exe", "/C", "echo %USERPROFILE%"])).replace("\r", "").strip()
            if raw and "%USERPROFILE%" not in raw:
                converted = await self.runner.output(["wslpath", raw])
                home = Path(converted) if converted else None

        if home is None:
            logger.debug("Windows home directory not detected")
        self._windows_home = home
        self._windows_home_resolved = True
        return home

    def select_steps(
        self, only: Optional[Iterable[str]], skip: Optional[Iterable[str]]
    ) -> List[SetupStep]:
        steps = self.list_steps()
        known = {step.name for step in steps}
        only_set = set(only) if only else set()
        skip_set = set(skip) if skip else set()
        unknown = (only_set | skip_set) - known
        if unknown:
            raise ValueError(
                f"Unknown step(s): {', '.join(sorted(unknown))}. "
                f"Valid steps: {', '.join(step.name for step in steps)}"
            )
        return [
            step
            for step in steps
            if (not only_set or step.name in only_set) and step.name not in skip_set
        ]

    async def run(
        self, only: Optional[Iterable[str]] = None, skip: Optional[Iterable[str]] = None
    ) -> SetupReport:
        """
        Run the setup steps in order.

        A failing required step halts the run; a failing optional step is
        recorded as a warning and the run continues.

        Args:
            only: Run just these steps
            skip: Leave these steps out

        Returns:
            SetupReport with one result per executed step

        Raises:
            ValueError: If a step name is unknown
            RuntimeError: If a run is already in progress
        """
        if self._running:
            raise RuntimeError("A setup run is already in progress.")
        steps = self.select_steps(only, skip)

        self._running = True
        report = SetupReport(started_at=datetime.now(), dry_run=self.dry_run)
        self.last_report = report
        logger.info("🚀 Running %d setup step(s)%s", len(steps), " (dry-run)" if self.dry_run else "")
        try:
            for step in steps:
                result = await self._run_step(step)
                report.results.append(result)
                if result.status is StepStatus.FAILED:
                    report.halted_at = step.name
                    logger.error("❌ Setup halted at step '%s'", step.name)
                    break
        finally:
            report.finished_at = datetime.now()
            self._running = False
        return report

    async def _run_step(self, step: SetupStep) -> StepResult:
        logger.info("ℹ️  %s...", step.title)
        started_at = datetime.now()
        try:
            outcome = await step.action()
            status, message, details = outcome.status, outcome.message, outcome.details
        except Exception as e:
            status = StepStatus.WARNED if step.optional else StepStatus.FAILED
            message, details = f"{step.title} failed: {e}", []
            if not step.optional:
                logger.debug("Step %s raised", step.name, exc_info=True)

        level, icon = _STATUS_LOG[status]
        logger.log(level, "%s %s", icon, message)
        for line in details:
            logger.log(level, "    %s", line)

        return StepResult(
            name=step.name,
            title=step.title,
            status=status,
            message=message,
            optional=step.optional,
            details=list(details),
            duration_ms=(datetime.now() - started_at).total_seconds() * 1000,
        )

    async def write_configs(self) -> SetupReport:
        """Run only the steps that write configuration files."""
        return await self.run(only=CONFIG_STEPS)

    async def verify(self, include_mcp: bool = False) -> List[CheckResult]:
        """Check the machine against the expected end state."""
        return await SetupVerifier(self).run(include_mcp=include_mcp)

    async def render_configs(self) -> Dict[str, str]:
        """
        Render every generated configuration file without writing anything.

        The `.wslconfig` target is the detected Windows home when there is one.

        Returns:
            Mapping of target path to file content
        """
        settings = self.settings
        windows_home = await self.windows_home()
        wslconfig_target = (
            str(windows_home / ".wslconfig")
            if windows_home is not None
            else "%USERPROFILE%\\.wslconfig"
        )
        return {
            str(settings.buildit_mcp_file): to_json(
                merge_mcp_config(read_text_or_none(settings.buildit_mcp_file), settings)
            ),
            str(settings.buildit_claude_settings): to_json(
                merge_claude_settings(read_text_or_none(settings.buildit_claude_settings), settings)
            ),
            wslconfig_target: render_wslconfig(settings),
            str(settings.wsl_conf_path): render_wsl_conf(),
        }

    def service_endpoints(self) -> Dict[str, str]:
        settings = self.settings
        credentials = f"({settings.postgres_user} / {settings.local_dev_password})"
        return {
            "ibah API": settings.ibah_server_url,
            "ibah Dashboard": settings.ibah_dashboard_url,
            "RabbitMQ Admin": f"{settings.rabbitmq_admin_url}  {credentials}",
            "PostgreSQL": f"{settings.postgres_address}  {credentials}",
        }

    def next_steps(self) -> List[str]:
        settings = self.settings
        return [
            f"If .env needs API keys, edit: {settings.ibah_repo / '.env'}",
            f"cd {settings.buildit_repo} && claude",
            "The ibah MCP tools (ibah-search, ibah-query) will be available",
            "If WSL networking was just configured, restart WSL from PowerShell: wsl --shutdown",
        ]
