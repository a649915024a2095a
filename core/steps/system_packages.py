import logging
import shlex
from pathlib import Path
from typing import Dict, List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped, warned
from core.utils.fs import read_text_or_none

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")
DOCKER_KEYRING = "/etc/apt/keyrings/docker.gpg"
DOCKER_SOURCES = "/etc/apt/sources.list.d/docker.list"
DOCKER_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]


def read_os_release(path: Path = OS_RELEASE) -> Dict[str, str]:
    """Parse an os-release file into a dict (quotes stripped)."""
    values: Dict[str, str] = {}
    for line in (read_text_or_none(path) or "").splitlines():
        key, sep, value = line.partition("=")
        if not sep or key.startswith("#"):
            continue
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def build_system_package_steps(context: ProvisionContext) -> List[SetupStep]:
    runner = context.runner
    settings = context.settings

    async def install_packages() -> StepOutcome:
        await runner.run(["sudo", "apt-get", "update", "-qq"])
        await runner.run(["sudo", "apt-get", "install", "-y", "-qq", *settings.apt_packages])
        return done("System packages installed", details=list(settings.apt_packages))

    async def install_docker() -> StepOutcome:
        if runner.which("docker"):
            version = await runner.output(["docker", "--version"])
            return skipped(f"Docker already installed ({version or 'unknown version'})")

        arch = await runner.output(["dpkg", "--print-architecture"]) or "amd64"
        codename = read_os_release().get("VERSION_CODENAME", "")
        if not codename and not context.dry_run:
            raise RuntimeError(f"Could not read VERSION_CODENAME from {OS_RELEASE}")

        await runner.run(["sudo", "install", "-m", "0755", "-d", "/etc/apt/keyrings"])
        await runner.run(
            "curl -fsSL https://download.docker.com/linux/ubuntu/gpg"
            f" | sudo gpg --dearmor --yes -o {DOCKER_KEYRING}"
        )
        await runner.run(["sudo", "chmod", "a+r", DOCKER_KEYRING])
        source = (
            f"deb [arch={arch} signed-by={DOCKER_KEYRING}] "
            f"https://download.docker.com/linux/ubuntu {codename} stable\n"
        )
        await runner.run(["sudo", "tee", DOCKER_SOURCES], input=source)
        await runner.run(["sudo", "apt-get", "update", "-qq"])
        await runner.run(["sudo", "apt-get", "install", "-y", "-qq", *DOCKER_PACKAGES])

        user = runner.env.get("USER", "")
        if user:
            await runner.run(["sudo", "usermod", "-aG", "docker", user])
        return done(
            "Docker installed",
            details=["You may need to restart WSL for docker group membership to take effect"],
        )

    async def check_compose() -> StepOutcome:
        if await runner.succeeds(["docker", "compose", "version"]):
            return done("Docker Compose v2 available")
        return warned(
            "Docker Compose v2 plugin not found. Install: sudo apt-get install docker-compose-plugin"
        )

    return [
        SetupStep("system-packages", "System packages", install_packages),
        SetupStep("docker", "Docker", install_docker),
        SetupStep("docker-compose", "Docker Compose v2", check_compose, optional=True),
    ]
