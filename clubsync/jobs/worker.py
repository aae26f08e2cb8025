"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable, opens the database pool, and delegates to the matching scheduler.
"all" runs every scheduler side by side in one process.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from clubsync.config import settings
from clubsync.db.pool import db_pool
from clubsync.infrastructure.observability.logging import get_logger, setup_logging
from clubsync.jobs.background_sync_job import start_background_sync_scheduler
from clubsync.jobs.maintenance_job import (
    start_session_cleanup_scheduler,
    start_webhook_log_cleanup_scheduler,
    start_weekly_cleanup_scheduler,
)
from clubsync.jobs.tracker import scheduler_tracker
from clubsync.repositories.sync_record_repository import ensure_sync_records_schema

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "background_sync": start_background_sync_scheduler,
    "session_cleanup": start_session_cleanup_scheduler,
    "webhook_log_cleanup": start_webhook_log_cleanup_scheduler,
    "weekly_cleanup": start_weekly_cleanup_scheduler,
}


async def run_all_jobs() -> None:
    """Run every registered scheduler concurrently in this process."""
    await asyncio.gather(*(job() for job in JOB_REGISTRY.values()))


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "all").strip().lower()


def _resolve_job(name: str) -> JobCoroutine:
    if name == "all":
        return run_all_jobs
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: all, {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )
    return JOB_REGISTRY[name]


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    job = _resolve_job(name)

    logger.info("Starting background worker", job=name, environment=settings.environment)
    await job()


async def worker_status() -> dict:
    """Database health plus the run record of every scheduler in this process."""
    return {
        "database": await db_pool.health_check(),
        "jobs": scheduler_tracker.get_status(),
    }


async def _serve(job_name: str) -> None:
    await db_pool.initialize()
    try:
        await ensure_sync_records_schema()
        await run_worker(job_name)
    finally:
        logger.info("Background worker stopping", **await worker_status())
        await db_pool.close()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    _resolve_job(job_name)
    asyncio.run(_serve(job_name))


if __name__ == "__main__":
    main()
