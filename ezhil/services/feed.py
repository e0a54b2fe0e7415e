"""Builds dashboard and summary snapshots from the report feed."""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.config import get_settings
from ezhil.schemas.dashboard import DashboardResponse, SummaryResponse
from ezhil.services.impact import POINTS_PER_REPORT
from ezhil.services.report_store import ReportStore
from ezhil.services.scoring import aggregate_reports

logger = logging.getLogger(__name__)
settings = get_settings()

RECENT_ON_SUMMARY = 3


async def build_dashboard(store: ReportStore) -> DashboardResponse:
    """Aggregate the newest ``dashboard_feed_limit`` reports."""
    reports = await store.recent_reports(limit=settings.dashboard_feed_limit)
    aggregate = aggregate_reports(reports, focus_threshold=settings.focus_area_threshold)
    return DashboardResponse(
        **aggregate.model_dump(),
        feed_limit=settings.dashboard_feed_limit,
        generated_at=datetime.now(UTC),
    )


async def build_summary(store: ReportStore, user_id: str | None = None) -> SummaryResponse:
    """Home screen summary over the newest ``summary_feed_limit`` reports."""
    reports = await store.recent_reports(limit=settings.summary_feed_limit)
    aggregate = aggregate_reports(reports, focus_threshold=settings.focus_area_threshold)

    user_impact = None
    if user_id:
        user_impact = await store.count_reports(user_id=user_id) * POINTS_PER_REPORT

    return SummaryResponse(
        report_count=len(reports),
        focus_area=aggregate.focus_area,
        recent_reports=reports[:RECENT_ON_SUMMARY],
        user_impact=user_impact,
        generated_at=datetime.now(UTC),
    )


async def publish_feed_update(db: AsyncSession) -> None:
    """Recompute snapshots and push them to live subscribers."""
    from ezhil.websocket.manager import manager

    if manager.connection_count == 0:
        return

    # Reserved before the reads; clients drop anything older than what they have.
    sequence = manager.next_sequence()
    store = ReportStore(db)
    snapshots = {
        "dashboard": await build_dashboard(store),
        "summary": await build_summary(store),
    }
    await manager.publish(snapshots, sequence=sequence)
