import logging
from typing import List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped, warned
from core.utils.fs import append_line_once

logger = logging.getLogger(__name__)

BUN_INSTALLER = "curl -fsSL https://bun.sh/install | bash"
BREW_INSTALLER = (
    '/bin/bash -c "$(curl -fsSL '
    'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
)
GH_KEYRING = "/etc/apt/keyrings/githubcli-archive-keyring.gpg"
GH_KEYRING_URL = "https://cli.github.com/packages/githubcli-archive-keyring.gpg"
GH_SOURCES = "/etc/apt/sources.list.d/github-cli-stable.list"
CLAUDE_NPM_PACKAGE = "@anthropic-ai/claude-code"


def brew_shellenv_line(context: ProvisionContext) -> str:
    return f'eval "$({context.settings.linuxbrew_prefix}/bin/brew shellenv)"'


def build_toolchain_steps(context: ProvisionContext) -> List[SetupStep]:
    runner = context.runner
    settings = context.settings

    async def version_of(*command: str) -> str:
        output = await runner.output(list(command))
        return output.splitlines()[0] if output else "unknown"

    async def install_bun() -> StepOutcome:
        if runner.which("bun"):
            return skipped(f"Bun already installed ({await version_of('bun', '--version')})")
        await runner.run(BUN_INSTALLER)
        runner.set_env("BUN_INSTALL", str(settings.bun_install_dir))
        runner.prepend_path(settings.bun_install_dir / "bin")
        return done(f"Bun installed ({await version_of('bun', '--version')})")

    async def install_node() -> StepOutcome:
        if runner.which("node"):
            return skipped(f"Node.js already installed ({await version_of('node', '--version')})")
        if not runner.which("brew"):
            logger.info("ℹ️  Installing Linuxbrew...")
            await runner.run(BREW_INSTALLER, env={"NONINTERACTIVE": "1"})
            runner.prepend_path(settings.linuxbrew_prefix / "sbin")
            runner.prepend_path(settings.linuxbrew_prefix / "bin")
            append_line_once(settings.bashrc, brew_shellenv_line(context), dry_run=context.dry_run)
        await runner.run(["brew", "install", "node"])
        return done(f"Node.js installed ({await version_of('node', '--version')})")

    async def install_gh() -> StepOutcome:
        if runner.which("gh"):
            return skipped(f"GitHub CLI already installed ({await version_of('gh', '--version')})")
        if not runner.which("wget"):
            await runner.run(["sudo", "apt-get", "install", "wget", "-y"])
        arch = await runner.output(["dpkg", "--print-architecture"]) or "amd64"
        await runner.run(["sudo", "mkdir", "-p", "-m", "755", "/etc/apt/keyrings"])
        await runner.run(f"wget -nv -O- {GH_KEYRING_URL} | sudo tee {GH_KEYRING} > /dev/null")
        await runner.run(["sudo", "chmod", "go+r", GH_KEYRING])
        source = f"deb [arch={arch} signed-by={GH_KEYRING}] https://cli.github.com/packages stable main\n"
        await runner.run(["sudo", "tee", GH_SOURCES], input=source)
        await runner.run(["sudo", "apt-get", "update", "-qq"])
        await runner.run(["sudo", "apt-get", "install", "gh", "-y", "-qq"])
        return done("GitHub CLI installed")

    async def check_gh_auth() -> StepOutcome:
        if await runner.succeeds(["gh", "auth", "status"]):
            login = await runner.output(["gh", "api", "user", "-q", ".login"])
            return done(f"GitHub CLI authenticated as {login or 'unknown'}")
        return warned("GitHub CLI not authenticated. Run: gh auth login")

    async def install_claude() -> StepOutcome:
        if runner.which("claude"):
            return skipped(f"Claude Code already installed ({await version_of('claude', '--version')})")
        await runner.run(["npm", "install", "-g", CLAUDE_NPM_PACKAGE])
        return done("Claude Code installed")

    return [
        SetupStep("bun", "Bun", install_bun),
        SetupStep("node", "Node.js (via Linuxbrew)", install_node),
        SetupStep("github-cli", "GitHub CLI", install_gh),
        SetupStep("github-auth", "GitHub CLI authentication", check_gh_auth, optional=True),
        SetupStep("claude-cli", "Claude Code CLI", install_claude),
    ]
