import logging
from typing import List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped, warned
from core.templates import (
    has_mirrored_networking,
    render_wsl_conf,
    render_wslconfig,
    render_wslconfig_networking_hint,
)
from core.utils.fs import read_text_or_none, write_text_if_changed

logger = logging.getLogger(__name__)


def build_wsl_steps(context: ProvisionContext) -> List[SetupStep]:
    settings = context.settings

    async def configure_wslconfig() -> StepOutcome:
        windows_home = await context.windows_home()
        if windows_home is None:
            return warned(
                "Could not detect Windows home directory",
                details=[
                    "Manually create C:\\Users\\<you>\\.wslconfig with:",
                    *render_wslconfig(settings).splitlines(),
                ],
            )

        path = windows_home / ".wslconfig"
        existing = read_text_or_none(path)
        if existing is not None:
            if has_mirrored_networking(existing):
                return skipped(".wslconfig already has mirrored networking")
            return warned(
                ".wslconfig exists but doesn't have mirrored networking",
                details=[
                    f"Add/update the following in {path}:",
                    *render_wslconfig_networking_hint().splitlines(),
                ],
            )

        write_text_if_changed(path, render_wslconfig(settings), dry_run=context.dry_run)
        return done(
            f".wslconfig created at {path}",
            details=["Restart WSL for networking changes to take effect: wsl --shutdown"],
        )

    async def configure_wsl_conf() -> StepOutcome:
        path = settings.wsl_conf_path
        if path.exists():
            return skipped(f"{path} already exists")
        await context.runner.run(["sudo", "tee", str(path)], input=render_wsl_conf())
        return done(f"{path} created")

    return [
        SetupStep("wslconfig", "WSL networking (.wslconfig)", configure_wslconfig, optional=True),
        SetupStep("wsl-conf", "WSL boot configuration (wsl.conf)", configure_wsl_conf),
    ]
