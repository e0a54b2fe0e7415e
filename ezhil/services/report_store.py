"""Report store: persistence and lifecycle transitions for waste reports."""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.models import Report
from ezhil.schemas.report import (
    AI_FAILED,
    CLASSIFIED,
    PENDING_AI,
    RESOLVED,
    Classification,
    ReportOut,
    can_transition,
)

logger = logging.getLogger(__name__)

# Common localities offered as suggestions on the submission form.
MADURAI_AREAS = sorted(
    [
        "Anna Nagar", "KK Nagar", "Simmakkal", "Goripalayam", "Tallakulam",
        "Mattuthavani", "Aarapalayam", "Periyar Bus Stand", "Thirunagar",
        "Tirupparankunram", "Villapuram", "South Gate", "Sellur", "Narimedu",
        "Bibikulam", "Reserve Line", "Iyer Bungalow", "Othakadai", "Teppakulam",
        "Mahaboob Palayam", "Kalavasal", "Bypass Road", "Palanganatham",
    ]
)


class ReportStoreError(Exception):
    """Base exception for report store errors."""

    pass


class ReportNotFoundError(ReportStoreError):
    """No report exists with the requested id."""

    def __init__(self, report_id: int):
        super().__init__(f"Report {report_id} not found")
        self.report_id = report_id


class InvalidTransitionError(ReportStoreError):
    """The requested status change is not allowed from the current status."""

    def __init__(self, report_id: int, current: str, target: str):
        super().__init__(f"Report {report_id} cannot move from {current} to {target}")
        self.report_id = report_id
        self.current = current
        self.target = target


def suggest_areas(query: str | None) -> list[str]:
    """Known areas containing ``query``, case-insensitive. Blank query gives none."""
    if not query or not query.strip():
        return []
    needle = query.lower()
    return [area for area in MADURAI_AREAS if needle in area.lower()]


class ReportStore:
    """
    Reads and writes reports.

    The aggregation engine only ever sees the output of ``recent_reports``;
    status changes go through ``_transition`` so the lifecycle table is
    enforced in one place.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_report(
        self,
        area: str,
        details: str | None = None,
        image_path: str | None = None,
        user_id: str = "anonymous",
        user_name: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> ReportOut:
        """Insert a new report in ``pending_ai``."""
        report = Report(
            area=area,
            details=details,
            image_path=image_path,
            user_id=user_id,
            user_name=user_name,
            latitude=latitude,
            longitude=longitude,
            status=PENDING_AI,
        )
        self.db.add(report)
        await self.db.commit()
        await self.db.refresh(report)

        logger.info(f"Created report {report.id} for area={area!r} user={user_id}")
        return ReportOut.model_validate(report)

    async def _load(self, report_id: int) -> Report:
        report = await self.db.get(Report, report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def get_report(self, report_id: int) -> ReportOut:
        """Fetch a single report."""
        return ReportOut.model_validate(await self._load(report_id))

    async def recent_reports(
        self,
        limit: int,
        user_id: str | None = None,
    ) -> list[ReportOut]:
        """
        Most recent reports, newest first.

        Args:
            limit: Maximum number of reports to return
            user_id: Only reports submitted by this user

        Returns:
            Reports ordered by creation time descending (id breaks ties)
        """
        query = select(Report).order_by(Report.created_at.desc(), Report.id.desc())
        if user_id:
            query = query.where(Report.user_id == user_id)
        query = query.limit(limit)

        result = await self.db.execute(query)
        return [ReportOut.model_validate(row) for row in result.scalars().all()]

    async def all_reports(self, user_id: str | None = None) -> list[ReportOut]:
        """Every report, newest first, optionally for one user."""
        query = select(Report).order_by(Report.created_at.desc(), Report.id.desc())
        if user_id:
            query = query.where(Report.user_id == user_id)
        result = await self.db.execute(query)
        return [ReportOut.model_validate(row) for row in result.scalars().all()]

    async def count_reports(self, user_id: str | None = None) -> int:
        """Count reports, optionally for one user."""
        query = select(func.count(Report.id))
        if user_id:
            query = query.where(Report.user_id == user_id)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def count_by_status(self) -> dict[str, int]:
        """Number of reports in each lifecycle status."""
        result = await self.db.execute(
            select(Report.status, func.count(Report.id)).group_by(Report.status)
        )
        return {status: count for status, count in result.all()}

    def _transition(self, report: Report, target: str) -> None:
        if not can_transition(report.status, target):
            raise InvalidTransitionError(report.id, report.status, target)
        logger.info(f"Report {report.id}: {report.status} -> {target}")
        report.status = target

    async def record_classification(
        self,
        report_id: int,
        classification: Classification,
    ) -> ReportOut:
        """Store a successful AI verdict and mark the report classified."""
        report = await self._load(report_id)
        self._transition(report, CLASSIFIED)

        report.waste_type = classification.waste_type
        report.severity = classification.severity
        report.confidence = classification.confidence
        report.ai_reason = classification.reasoning
        report.error = None

        await self.db.commit()
        await self.db.refresh(report)
        return ReportOut.model_validate(report)

    async def record_failure(self, report_id: int, message: str) -> ReportOut:
        """Mark the report ``ai_failed``; type and severity stay empty."""
        report = await self._load(report_id)
        self._transition(report, AI_FAILED)
        report.error = message

        await self.db.commit()
        await self.db.refresh(report)
        return ReportOut.model_validate(report)

    async def resolve_report(self, report_id: int) -> ReportOut:
        """Mark a report as cleaned up."""
        report = await self._load(report_id)
        previous = report.status
        self._transition(report, RESOLVED)
        if previous != CLASSIFIED:
            logger.warning(f"Report {report_id} resolved without classification ({previous})")
        report.resolved_at = datetime.now(UTC)

        await self.db.commit()
        await self.db.refresh(report)
        return ReportOut.model_validate(report)
