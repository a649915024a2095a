import httpx
import pytest

from core.api.provisioner import Provisioner
from core.settings import Settings
from core.templates import render_wslconfig
from core.verify import SetupVerifier

from tests.conftest import FakeRunner


def _healthy_machine(settings: Settings) -> FakeRunner:
    runner = FakeRunner()
    runner.respond("docker ps", stdout="\n".join(settings.ibah_containers))
    runner.respond("git --version", stdout="git version 2.43.0\n")
    for path in (settings.ibah_repo / ".git", settings.buildit_repo / ".git", settings.ibah_repo / "node_modules"):
        path.mkdir(parents=True)
    (settings.ibah_repo / ".env").write_text("")
    settings.buildit_mcp_file.write_text("{}")
    settings.windows_home.mkdir()
    (settings.windows_home / ".wslconfig").write_text(render_wslconfig(settings))
    return runner


def _transport(statuses: dict) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(statuses.get(request.url.path, 404))
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_all_checks_pass_on_healthy_machine(settings: Settings):
    runner = _healthy_machine(settings)
    verifier = SetupVerifier(
        Provisioner(settings=settings, runner=runner),
        http_transport=_transport({"/api/v1/health": 200}),
    )
    checks = await verifier.run()
    failed = [c.name for c in checks if not c.ok]
    assert failed == []
    by_name = {c.name: c for c in checks}
    assert by_name["git installed"].detail == "git version 2.43.0"
    assert "ibah-dashboard running" in by_name
    assert "ibah MCP tools available" not in by_name


@pytest.mark.asyncio
async def test_api_check_falls_back_to_root(settings: Settings):
    runner = _healthy_machine(settings)
    verifier = SetupVerifier(
        Provisioner(settings=settings, runner=runner),
        http_transport=_transport({"/": 200}),
    )
    by_name = {c.name: c for c in await verifier.run()}
    assert by_name["ibah API responding"].ok
    assert by_name["ibah API responding"].detail.endswith("-> 200")


@pytest.mark.asyncio
async def test_failures_are_reported_not_raised(settings: Settings):
    runner = FakeRunner()
    runner.respond("gh auth status", return_code=1)
    runner.respond("docker ps", stdout="ibah-postgres\n")

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    verifier = SetupVerifier(
        Provisioner(settings=settings, runner=runner),
        http_transport=httpx.MockTransport(refuse),
    )
    by_name = {c.name: c for c in await verifier.run()}
    assert not by_name["gh authenticated"].ok
    assert by_name["ibah-postgres running"].ok
    assert not by_name["ibah-worker running"].ok
    assert not by_name["ibah API responding"].ok
    assert not by_name["ibah repo exists"].ok
    assert not by_name["MCP config exists"].ok


@pytest.mark.asyncio
async def test_wsl_check_scans_windows_users(tmp_path):
    settings = Settings(home=tmp_path, windows_users_root=tmp_path / "Users")
    profile = tmp_path / "Users" / "someone"
    profile.mkdir(parents=True)
    (profile / ".wslconfig").write_text("[wsl2]\nnetworkingMode=mirrored\n")
    runner = FakeRunner().respond("cmd.exe", return_code=127)

    verifier = SetupVerifier(
        Provisioner(settings=settings, runner=runner),
        http_transport=_transport({}),
    )
    by_name = {c.name: c for c in await verifier.run()}
    assert by_name["WSL mirrored networking"].ok
    assert by_name["WSL mirrored networking"].detail == str(profile / ".wslconfig")


class _FakeMCPClient:
    def __init__(self, settings):
        self.settings = settings

    async def list_tool_names(self):
        return ["ibah-query", "ibah-search"]


class _BrokenMCPClient(_FakeMCPClient):
    async def list_tool_names(self):
        raise RuntimeError("bun: command not found")


@pytest.mark.asyncio
async def test_mcp_tools_check(settings: Settings):
    provisioner = Provisioner(settings=settings, runner=FakeRunner())

    ok = SetupVerifier(provisioner, http_transport=_transport({}), mcp_client_factory=_FakeMCPClient)
    check = {c.name: c for c in await ok.run(include_mcp=True)}["ibah MCP tools available"]
    assert check.ok and check.detail == "ibah-query, ibah-search"

    broken = SetupVerifier(provisioner, http_transport=_transport({}), mcp_client_factory=_BrokenMCPClient)
    check = {c.name: c for c in await broken.run(include_mcp=True)}["ibah MCP tools available"]
    assert not check.ok
    assert "command not found" in check.detail
