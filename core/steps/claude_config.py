import logging
from typing import List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped, warned
from core.settings import PluginSpec
from core.system import CommandError
from core.templates import merge_claude_settings, merge_mcp_config, to_json
from core.utils.fs import read_text_or_none, write_text_if_changed

logger = logging.getLogger(__name__)


def build_claude_config_steps(context: ProvisionContext) -> List[SetupStep]:
    settings = context.settings

    async def write_mcp_config() -> StepOutcome:
        path = settings.buildit_mcp_file
        content = to_json(merge_mcp_config(read_text_or_none(path), settings))
        if not write_text_if_changed(path, content, dry_run=context.dry_run):
            return skipped(f"MCP config already up to date at {path}")
        return done(f"MCP config written to {path}")

    async def write_claude_settings() -> StepOutcome:
        path = settings.buildit_claude_settings
        content = to_json(merge_claude_settings(read_text_or_none(path), settings))
        if not write_text_if_changed(path, content, dry_run=context.dry_run):
            return skipped(f"Claude Code project settings already up to date at {path}")
        return done(f"Claude Code project settings written to {path}")

    def plugin_step(plugin: PluginSpec) -> SetupStep:
        async def install() -> StepOutcome:
            try:
                await context.runner.run(["claude", "plugin", "install", plugin.ref, "--yes"])
            except CommandError as e:
                return warned(
                    f"Plugin {plugin.name} may already be installed or failed, check manually",
                    details=[str(e)],
                )
            return done(f"Plugin installed: {plugin.name}")

        return SetupStep(f"plugin-{plugin.name}", f"Claude Code plugin {plugin.ref}", install, optional=True)

    return [
        SetupStep("mcp-config", "Claude Code MCP config for buildit", write_mcp_config),
        SetupStep("claude-settings", "Claude Code project settings", write_claude_settings),
        *[plugin_step(plugin) for plugin in settings.plugins],
    ]
