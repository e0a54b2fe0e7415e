"""Periodic leaderboard refresh."""

import logging
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ezhil.config import get_settings
from ezhil.database import session_scope
from ezhil.services.leaderboard import refresh_contributors

logger = logging.getLogger(__name__)
settings = get_settings()

LEADERBOARD_JOB_ID = "refresh_leaderboard"

scheduler: AsyncIOScheduler | None = None


async def refresh_leaderboard_job() -> None:
    """Rebuild the contributors table; failures wait for the next run."""
    started = datetime.now(UTC)
    try:
        async with session_scope() as db:
            count = await refresh_contributors(db)
    except Exception as e:
        logger.error(f"Leaderboard refresh failed: {e}", exc_info=True)
        return

    elapsed = (datetime.now(UTC) - started).total_seconds()
    logger.info(f"Leaderboard refresh took {elapsed:.2f}s for {count} contributors")


def build_scheduler(interval_minutes: int | None = None) -> AsyncIOScheduler:
    """
    Create a scheduler with the leaderboard job registered.

    The job fires once on start and then every ``interval_minutes``
    (``LEADERBOARD_REFRESH_MINUTES`` by default). Overlapping runs are
    skipped rather than queued.
    """
    minutes = interval_minutes or settings.leaderboard_refresh_minutes

    new_scheduler = AsyncIOScheduler(
        timezone=UTC,
        job_defaults={"coalesce": True, "max_instances": 1},
    )
    new_scheduler.add_job(
        refresh_leaderboard_job,
        trigger=IntervalTrigger(minutes=minutes),
        next_run_time=datetime.now(UTC),
        id=LEADERBOARD_JOB_ID,
        name="Recompute contributor impact points",
        replace_existing=True,
    )
    return new_scheduler


def setup_scheduler() -> AsyncIOScheduler:
    """Start the background scheduler."""
    global scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logger.info(
        f"Scheduler started; leaderboard refresh every "
        f"{settings.leaderboard_refresh_minutes} min"
    )
    return scheduler


def shutdown_scheduler() -> None:
    """Stop the scheduler if it is running."""
    global scheduler

    if scheduler is None:
        return
    scheduler.shutdown(wait=False)
    scheduler = None
    logger.info("Scheduler shut down")
