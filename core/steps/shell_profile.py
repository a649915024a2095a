import logging
from typing import List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped
from core.steps.toolchain import brew_shellenv_line
from core.utils.fs import append_line_once

logger = logging.getLogger(__name__)


def profile_lines(context: ProvisionContext) -> List[str]:
    return [
        'export BUN_INSTALL="$HOME/.bun"',
        'export PATH="$BUN_INSTALL/bin:$PATH"',
        brew_shellenv_line(context),
    ]


def build_shell_profile_steps(context: ProvisionContext) -> List[SetupStep]:
    bashrc = context.settings.bashrc

    async def update_bashrc() -> StepOutcome:
        added = [
            line
            for line in profile_lines(context)
            if append_line_once(bashrc, line, dry_run=context.dry_run)
        ]
        for line in added:
            logger.info("✅ Added to .bashrc: %s", line)
        if not added:
            return skipped(f"PATH entries already present in {bashrc}")
        return done(f"PATH entries added to {bashrc}", details=added)

    return [SetupStep("shell-profile", "Shell profile PATH entries", update_bashrc)]
