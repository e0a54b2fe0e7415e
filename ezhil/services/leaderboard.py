"""Leaderboard refresh: materialises contributor standings."""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.models import Contributor
from ezhil.services.impact import compute_standings
from ezhil.services.report_store import ReportStore

logger = logging.getLogger(__name__)


async def refresh_contributors(db: AsyncSession) -> int:
    """
    Recompute every contributor's standing from all reports.

    The contributors table is replaced in one transaction.

    Returns:
        Number of contributors written
    """
    reports = await ReportStore(db).all_reports()
    standings = compute_standings(reports)

    await db.execute(delete(Contributor))
    db.add_all(
        Contributor(
            user_id=s.user_id,
            user_name=s.user_name,
            area=s.area,
            report_count=s.report_count,
            impact_points=s.impact_points,
            level=s.level,
        )
        for s in standings
    )
    await db.commit()

    logger.info(f"Leaderboard refreshed: {len(standings)} contributors from {len(reports)} reports")
    return len(standings)


async def top_contributors(db: AsyncSession, limit: int) -> list[Contributor]:
    """Highest impact first."""
    result = await db.execute(
        select(Contributor)
        .order_by(Contributor.impact_points.desc(), Contributor.user_id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def last_refresh(db: AsyncSession):
    """When the leaderboard was last rebuilt, or None."""
    result = await db.execute(select(func.max(Contributor.refreshed_at)))
    return result.scalar()
