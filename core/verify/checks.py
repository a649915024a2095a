"""
Post-setup verification.

Each check is an independent read-only probe; they run concurrently and never
raise, a failing probe is simply reported as not ok.
"""
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

import httpx

from core.mcp import IbahMCPClient
from core.models import CheckResult, ProvisionContext
from core.settings import Settings
from core.steps.infrastructure import running_containers
from core.templates import has_mirrored_networking
from core.utils.fs import read_text_or_none

logger = logging.getLogger(__name__)

MCPClientFactory = Callable[[Settings], IbahMCPClient]

TOOL_CHECKS = [
    ("git installed", ["git", "--version"]),
    ("docker installed", ["docker", "--version"]),
    ("docker compose installed", ["docker", "compose", "version"]),
    ("bun installed", ["bun", "--version"]),
    ("node installed", ["node", "--version"]),
    ("gh installed", ["gh", "--version"]),
    ("claude installed", ["claude", "--version"]),
    ("gh authenticated", ["gh", "auth", "status"]),
]


class SetupVerifier:
    """Checks that a provisioned machine is in the expected end state."""

    def __init__(
        self,
        context: ProvisionContext,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        mcp_client_factory: MCPClientFactory = IbahMCPClient,
        http_timeout: float = 5.0,
    ):
        self.context = context
        self.settings = context.settings
        self.http_transport = http_transport
        self.mcp_client_factory = mcp_client_factory
        self.http_timeout = http_timeout

    async def run(self, include_mcp: bool = False) -> List[CheckResult]:
        containers = await running_containers(self.context)
        settings = self.settings
        checks: List[Awaitable[CheckResult]] = [
            *[self._command_check(name, command) for name, command in TOOL_CHECKS],
            self._path_check("ibah repo exists", settings.ibah_repo / ".git", directory=True),
            self._path_check("buildit repo exists", settings.buildit_repo / ".git", directory=True),
            self._path_check("ibah node_modules", settings.ibah_repo / "node_modules", directory=True),
            self._path_check("ibah .env exists", settings.ibah_repo / ".env"),
            *[self._container_check(name, containers) for name in settings.ibah_containers],
            self._api_check(),
            self._path_check("MCP config exists", settings.buildit_mcp_file),
            self._wsl_networking_check(),
        ]
        if include_mcp:
            checks.append(self._mcp_tools_check())

        results = list(await asyncio.gather(*checks))
        passed = sum(1 for r in results if r.ok)
        logger.info("🔍 Verification: %d/%d checks passed", passed, len(results))
        return results

    async def _command_check(self, name: str, command: Sequence[str]) -> CheckResult:
        result = await self.context.runner.probe(list(command))
        lines = (result.stdout or result.stderr).strip().splitlines()
        return CheckResult(name, result.success, lines[0] if lines else "")

    async def _path_check(self, name: str, path: Path, directory: bool = False) -> CheckResult:
        ok = path.is_dir() if directory else path.is_file()
        return CheckResult(name, ok, str(path))

    async def _container_check(self, container: str, running: List[str]) -> CheckResult:
        return CheckResult(f"{container} running", container in running)

    async def _api_check(self) -> CheckResult:
        async with httpx.AsyncClient(timeout=self.http_timeout, transport=self.http_transport) as client:
            for url in self.settings.ibah_health_urls:
                try:
                    response = await client.get(url)
                except httpx.HTTPError as e:
                    logger.debug("ibah API probe %s failed: %s", url, e)
                    continue
                if response.status_code < 400:
                    return CheckResult("ibah API responding", True, f"{url} -> {response.status_code}")
        return CheckResult("ibah API responding", False, self.settings.ibah_server_url)

    async def _wsl_networking_check(self) -> CheckResult:
        candidates: List[Path] = []
        windows_home = await self.context.windows_home()
        if windows_home is not None:
            candidates.append(windows_home / ".wslconfig")
        users_root = self.settings.windows_users_root
        if users_root.is_dir():
            candidates.extend(sorted(users_root.glob("*/.wslconfig")))

        for path in candidates:
            text = read_text_or_none(path)
            if text is not None and has_mirrored_networking(text):
                return CheckResult("WSL mirrored networking", True, str(path))
        return CheckResult("WSL mirrored networking", False)

    async def _mcp_tools_check(self) -> CheckResult:
        try:
            names = await self.mcp_client_factory(self.settings).list_tool_names()
        except Exception as e:
            return CheckResult("ibah MCP tools available", False, str(e))
        return CheckResult("ibah MCP tools available", bool(names), ", ".join(names))
