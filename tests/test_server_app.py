from fastapi.testclient import TestClient

import server.app as server_app
from core.api.provisioner import Provisioner
from core.settings import Settings

from tests.conftest import FakeRunner


def _patch_provisioner(monkeypatch, settings: Settings, runner: FakeRunner) -> list:
    created = []

    def factory(dry_run: bool = False) -> Provisioner:
        system = Provisioner(settings=settings, runner=runner, dry_run=dry_run)
        created.append(system)
        return system

    monkeypatch.setattr(server_app, "Provisioner", factory)
    return created


def test_health_status_and_steps(monkeypatch, settings: Settings, runner: FakeRunner):
    _patch_provisioner(monkeypatch, settings, runner)

    with TestClient(server_app.create_app()) as client:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "healthy", "system_ready": True}

        r = client.get("/status")
        assert r.status_code == 200
        body = r.json()
        assert body["running"] is False
        assert body["ibah_repo"] == str(settings.ibah_repo)
        assert body["last_run"] is None

        r = client.get("/steps")
        assert r.status_code == 200
        body = r.json()
        assert body["count"] == len(body["steps"])
        assert body["steps"][0] == {
            "name": "system-packages",
            "title": "System packages",
            "optional": False,
        }


def test_setup_runs_in_background_and_reports(monkeypatch, settings: Settings, runner: FakeRunner):
    _patch_provisioner(monkeypatch, settings, runner)

    with TestClient(server_app.create_app()) as client:
        r = client.get("/report")
        assert r.status_code == 404
        assert r.json()["detail"] == "No setup run has been started yet"

        r = client.post("/setup", json={"only": ["directories", "mcp-config"]})
        assert r.status_code == 202
        assert r.json() == {"accepted": True, "steps": ["directories", "mcp-config"], "dry_run": False}

        r = client.get("/report")
        assert r.status_code == 200
        body = r.json()
        assert [result["name"] for result in body["results"]] == ["directories", "mcp-config"]
        assert body["halted"] is False

        r = client.get("/status")
        assert r.json()["last_run"]["counts"]["done"] == 2

    assert settings.buildit_mcp_file.exists()


def test_setup_rejects_unknown_steps_and_concurrent_runs(monkeypatch, settings: Settings, runner: FakeRunner):
    created = _patch_provisioner(monkeypatch, settings, runner)

    with TestClient(server_app.create_app()) as client:
        r = client.post("/setup", json={"skip": ["nope"]})
        assert r.status_code == 400
        assert "nope" in r.json()["detail"]

        created[0]._running = True
        r = client.post("/setup")
        assert r.status_code == 409


def test_scheduled_setup_blocks_second_request(monkeypatch, settings: Settings, runner: FakeRunner):
    created = _patch_provisioner(monkeypatch, settings, runner)
    server = server_app.BuilditSetupServer()
    pending_during_run = []

    with TestClient(server.create_app()) as client:
        real_run = created[0].run

        async def run(only=None, skip=None):
            pending_during_run.append(server.setup_pending)
            return await real_run(only=only, skip=skip)

        monkeypatch.setattr(created[0], "run", run)

        # A run accepted but not yet started still counts as in progress
        server.setup_pending = True
        assert client.get("/status").json()["running"] is True
        assert client.post("/setup").status_code == 409

        server.setup_pending = False
        r = client.post("/setup", json={"only": ["directories"]})
        assert r.status_code == 202
        assert pending_during_run == [True]
        assert server.setup_pending is False
        assert client.get("/status").json()["running"] is False


def test_dry_run_server(monkeypatch, settings: Settings, runner: FakeRunner):
    _patch_provisioner(monkeypatch, settings, runner)

    with TestClient(server_app.create_app(dry_run=True)) as client:
        r = client.post("/setup", json={"only": ["mcp-config"]})
        assert r.json()["dry_run"] is True
        assert client.get("/report").json()["dry_run"] is True

    assert not settings.buildit_mcp_file.exists()


def test_configs_and_services(monkeypatch, settings: Settings, runner: FakeRunner):
    _patch_provisioner(monkeypatch, settings, runner)

    with TestClient(server_app.create_app()) as client:
        files = client.get("/configs").json()["files"]
        assert str(settings.wsl_conf_path) in files
        assert "[automount]" in files[str(settings.wsl_conf_path)]

        body = client.get("/services").json()
        assert body["services"]["ibah Dashboard"] == settings.ibah_dashboard_url
        assert body["next_steps"]


def test_verify_endpoint(monkeypatch, settings: Settings, runner: FakeRunner):
    _patch_provisioner(monkeypatch, settings, runner)

    async def fake_verify(self, include_mcp: bool = False):
        from core.models import CheckResult
        return [CheckResult("git installed", True, "git version 2"), CheckResult("gh authenticated", False)]

    monkeypatch.setattr(Provisioner, "verify", fake_verify)

    with TestClient(server_app.create_app()) as client:
        r = client.get("/verify")
        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is False
        assert body["passed"] == 1
        assert body["checks"][0]["name"] == "git installed"


def test_unavailable_provisioner_returns_503(monkeypatch):
    def broken(dry_run: bool = False):
        raise ValueError("BUILDIT_WSL_PROCESSORS must be an integer")

    monkeypatch.setattr(server_app, "Provisioner", broken)

    with TestClient(server_app.create_app()) as client:
        assert client.get("/health").json()["system_ready"] is False
        assert client.get("/steps").status_code == 503


def test_unknown_route_returns_json_404():
    with TestClient(server_app.create_app()) as client:
        r = client.get("/does-not-exist")
        assert r.status_code == 404
        assert r.json()["error"] == "Not Found"
