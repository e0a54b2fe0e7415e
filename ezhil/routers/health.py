"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.database import get_db
from ezhil.services.leaderboard import last_refresh
from ezhil.services.report_store import ReportStore

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    report_count: int
    reports_by_status: dict[str, int]
    leaderboard_refreshed_at: datetime | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with report lifecycle counts.

    A growing ``pending_ai`` count usually means classification is failing.
    """
    by_status = await ReportStore(db).count_by_status()

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        report_count=sum(by_status.values()),
        reports_by_status=by_status,
        leaderboard_refreshed_at=await last_refresh(db),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
