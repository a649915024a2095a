"""
CLI Application Logic

Provides the command-line interface for the buildit setup system.
"""
import logging
from typing import List, Optional

from core import Provisioner, Settings
from core.utils.report_formatter import (
    format_checks,
    format_next_steps,
    format_report,
    format_section,
    format_services,
)

logger = logging.getLogger(__name__)


async def setup_command(
    system: Provisioner,
    only: Optional[List[str]] = None,
    skip: Optional[List[str]] = None,
) -> int:
    try:
        report = await system.run(only=only, skip=skip)
    except ValueError as e:
        logger.error("❌ %s", e)
        return 2

    print(format_report(report))
    print()
    print(format_services(system.service_endpoints()))
    print(format_next_steps(system.next_steps()))
    return 1 if report.halted else 0


async def verify_command(system: Provisioner, include_mcp: bool = False) -> int:
    checks = await system.verify(include_mcp=include_mcp)
    print(format_section("Verification", []))
    print(format_checks(checks))
    return 0 if all(check.ok for check in checks) else 1


async def render_command(system: Provisioner, write: bool = False) -> int:
    if write:
        report = await system.write_configs()
        print(format_report(report))
        return 1 if report.halted else 0

    for path, content in (await system.render_configs()).items():
        print(f"# {path}")
        print(content)
    return 0


def steps_command(system: Provisioner) -> int:
    for step in system.list_steps():
        flag = " (optional)" if step.optional else ""
        print(f"{step.name:<24} {step.title}{flag}")
    return 0


async def interactive_session(system: Provisioner) -> None:
    """
    Run an interactive session against the provisioner.

    Args:
        system: Provisioner instance
    """
    logger.info("\n%s", "=" * 70)
    logger.info("💬 INTERACTIVE SETUP")
    logger.info("%s", "=" * 70)

    while True:
        try:
            step = input("🔄 Command (🚀 setup, 🔍 verify, 📝 render, 🗂️ steps, 👋 exit): ").strip().lower()

            if step == "setup":
                names = input("🆔 Steps to run (comma-separated, Enter for all): ").strip()
                only = [n.strip() for n in names.split(",") if n.strip()] or None
                await setup_command(system, only=only)
                continue

            if step == "verify":
                await verify_command(system)
                continue

            if step == "render":
                await render_command(system)
                continue

            if step == "steps":
                steps_command(system)
                continue

            if step == "exit":
                logger.info("\n👋 Goodbye!")
                break

            logger.warning("❓ Unknown command: %s", step)
        except (KeyboardInterrupt, EOFError):
            logger.info("\n👋 Goodbye!")
            break
        except Exception as e:
            logger.exception("❌ Error during command: %s", e)


async def run_cli(
    command: str = "setup",
    dry_run: bool = False,
    only: Optional[List[str]] = None,
    skip: Optional[List[str]] = None,
    include_mcp: bool = False,
    write: bool = False,
    interactive: bool = False,
    settings: Optional[Settings] = None,
) -> int:
    """
    Run the CLI application.

    Args:
        command: One of setup, verify, render, steps
        dry_run: Log mutating commands and writes instead of performing them
        only: Steps to run exclusively (setup)
        skip: Steps to leave out (setup)
        include_mcp: Also probe the ibah MCP server (verify)
        write: Write the config files instead of printing them (render)
        interactive: Start an interactive session instead of a single command
        settings: Settings to use (defaults to the environment)

    Returns:
        Process exit code
    """
    logger.info("=" * 70)
    logger.info("🚀 BUILDIT WSL DEVELOPMENT SETUP")
    logger.info("=" * 70)

    try:
        system = Provisioner(settings=settings or Settings.from_env(), dry_run=dry_run)
    except ValueError as e:
        logger.error("❌ Invalid configuration: %s", e)
        return 2

    if interactive:
        await interactive_session(system)
        return 0

    if command == "setup":
        return await setup_command(system, only=only, skip=skip)
    if command == "verify":
        return await verify_command(system, include_mcp=include_mcp)
    if command == "render":
        return await render_command(system, write=write)
    if command == "steps":
        return steps_command(system)

    logger.error("❓ Unknown command: %s", command)
    return 2
