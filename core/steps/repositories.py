import logging
import shutil
from pathlib import Path
from typing import List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped, warned
from core.settings import IBAH_ENV_KEY_HINTS
from core.utils.fs import ensure_directory

logger = logging.getLogger(__name__)


def build_repository_steps(context: ProvisionContext) -> List[SetupStep]:
    runner = context.runner
    settings = context.settings

    async def create_directories() -> StepOutcome:
        created = [
            str(path)
            for path in [settings.dev_root, *settings.claude_subdirs]
            if ensure_directory(path, dry_run=context.dry_run)
        ]
        if not created:
            return skipped(f"Directory structure already present: {settings.dev_root}")
        return done(f"Directory structure ready: {settings.dev_root}", details=created)

    def clone_step(name: str, label: str, slug: str, path: Path) -> SetupStep:
        async def clone() -> StepOutcome:
            if (path / ".git").is_dir():
                return skipped(f"{label} repo already cloned at {path}")
            await runner.run(["gh", "repo", "clone", slug, str(path)])
            return done(f"{label} repo cloned to {path}")

        return SetupStep(name, f"Clone {slug}", clone)

    async def install_ibah_dependencies() -> StepOutcome:
        await runner.run(["bun", "install"], cwd=settings.ibah_repo)
        return done("ibah dependencies installed")

    async def create_ibah_env() -> StepOutcome:
        env_file = settings.ibah_repo / ".env"
        example = settings.ibah_repo / ".env.example"
        if env_file.is_file():
            return skipped("ibah .env already exists")
        if not example.is_file():
            return warned(f"No .env.example found, create {env_file} manually")

        if context.dry_run:
            logger.info("🧪 [dry-run] cp %s %s", example, env_file)
        else:
            shutil.copyfile(example, env_file)
        return warned(
            f"Created {env_file} from .env.example, edit it with your API keys",
            details=[
                f"Required key: {key}, {IBAH_ENV_KEY_HINTS[key]}" if key in IBAH_ENV_KEY_HINTS
                else f"Required key: {key}"
                for key in settings.ibah_required_env_keys
            ],
        )

    return [
        SetupStep("directories", "Project directories", create_directories),
        clone_step("clone-ibah", "ibah", settings.ibah_github_repo, settings.ibah_repo),
        clone_step("clone-buildit", "buildit", settings.buildit_github_repo, settings.buildit_repo),
        SetupStep("ibah-dependencies", "ibah dependencies", install_ibah_dependencies),
        SetupStep("ibah-env", "ibah environment file", create_ibah_env),
    ]
