import asyncio
import logging
from typing import List

from core.models import ProvisionContext, SetupStep, StepOutcome, done, skipped, warned

logger = logging.getLogger(__name__)


async def running_containers(context: ProvisionContext) -> List[str]:
    output = await context.runner.output(["docker", "ps", "--format", "{{.Names}}"])
    return [line.strip() for line in output.splitlines() if line.strip()]


async def wait_for_postgres(context: ProvisionContext) -> bool:
    """Poll pg_isready inside the postgres container until it answers or attempts run out."""
    settings = context.settings
    command = [
        "docker", "exec", settings.postgres_container,
        "pg_isready", "-U", settings.postgres_user,
    ]
    for attempt in range(1, settings.postgres_wait_attempts + 1):
        if await context.runner.succeeds(command):
            logger.debug("Postgres ready after %d attempt(s)", attempt)
            return True
        if attempt < settings.postgres_wait_attempts:
            await asyncio.sleep(settings.postgres_wait_interval)
    return False


def build_infrastructure_steps(context: ProvisionContext) -> List[SetupStep]:
    settings = context.settings

    async def start_infrastructure() -> StepOutcome:
        if settings.postgres_container in await running_containers(context):
            return skipped("ibah containers already running")

        await context.runner.run(
            ["docker", "compose", "up", "-d", "--build"], cwd=settings.ibah_infra_dir
        )
        if context.dry_run:
            return done("ibah infrastructure started (dry-run, readiness not checked)")

        logger.info("ℹ️  Waiting for services to be healthy...")
        await asyncio.sleep(settings.compose_settle_seconds)
        if await wait_for_postgres(context):
            return done("Postgres is healthy")

        message = f"Postgres failed to start, check: docker logs {settings.postgres_container}"
        logger.error("❌ %s", message)
        return warned(message)

    return [
        SetupStep(
            "ibah-infrastructure",
            "ibah infrastructure (Postgres, RabbitMQ, server, worker, dashboard)",
            start_infrastructure,
        ),
    ]
