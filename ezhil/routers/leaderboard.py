"""API routes for the contributor leaderboard and profiles."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.config import get_settings
from ezhil.database import get_db
from ezhil.schemas.leaderboard import ContributorOut, ProfileOut, RefreshResult
from ezhil.services.impact import badges_for, standing_for
from ezhil.services.leaderboard import refresh_contributors, top_contributors
from ezhil.services.report_store import ReportStore

settings = get_settings()
router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=list[ContributorOut])
async def get_leaderboard(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(settings.leaderboard_size, ge=1, le=100),
) -> list[ContributorOut]:
    """Top contributors by impact points, as of the last scheduled refresh."""
    rows = await top_contributors(db, limit)
    return [ContributorOut.model_validate(row) for row in rows]


@router.post("/refresh", response_model=RefreshResult)
async def trigger_leaderboard_refresh(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RefreshResult:
    """Rebuild the leaderboard now instead of waiting for the scheduler."""
    count = await refresh_contributors(db)
    return RefreshResult(
        contributors=count,
        message=f"Leaderboard rebuilt with {count} contributors",
    )


@router.get("/{user_id}", response_model=ProfileOut)
async def get_profile(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileOut:
    """A contributor's live points, level and badges."""
    reports = await ReportStore(db).all_reports(user_id=user_id)
    standing = standing_for(user_id, reports)
    return ProfileOut(standing=standing, badges=badges_for(standing))
