"""API routes for the cleanliness dashboard and home summary."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.database import get_db
from ezhil.schemas.dashboard import DashboardResponse, SummaryResponse
from ezhil.services.feed import build_dashboard, build_summary
from ezhil.services.report_store import ReportStore

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DashboardResponse:
    """
    City-wide statistics and area health scores.

    Areas are ordered worst first. Computed from the most recent reports
    only; the same snapshot is pushed over ``/ws/dashboard`` on every change.
    """
    return await build_dashboard(ReportStore(db))


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: str | None = Query(None, description="Include this user's impact points"),
) -> SummaryResponse:
    """Home screen summary with the current focus area."""
    return await build_summary(ReportStore(db), user_id=user_id)
