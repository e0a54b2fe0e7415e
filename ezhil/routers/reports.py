"""API routes for submitting and managing waste reports."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
)
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.config import get_settings
from ezhil.database import get_db
from ezhil.rate_limit import SUBMISSION_LIMIT, limiter
from ezhil.schemas.report import ReportOut, ReportsResponse
from ezhil.services.classification import run_classification
from ezhil.services.feed import publish_feed_update
from ezhil.services.report_store import ReportStore, suggest_areas

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/reports", tags=["reports"])

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

Classifier = Callable[[int, bytes, str], Awaitable[None]]


def get_classifier() -> Classifier:
    """Dependency returning the background classification runner."""
    return run_classification


def _store_image(data: bytes, content_type: str) -> str:
    """Write an uploaded image to the upload directory and return its path."""
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    path = upload_dir / f"{uuid.uuid4().hex}{ALLOWED_IMAGE_TYPES[content_type]}"
    path.write_bytes(data)
    return str(path)


@router.post("", response_model=ReportOut, status_code=201)
@limiter.limit(SUBMISSION_LIMIT)
async def submit_report(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_db)],
    classifier: Annotated[Classifier, Depends(get_classifier)],
    image: UploadFile = File(..., description="Photo of the waste"),
    area: str = Form(..., max_length=120),
    details: str | None = Form(None, max_length=2000),
    user_id: str = Form("anonymous", max_length=128),
    user_name: str | None = Form(None, max_length=120),
    latitude: float | None = Form(None, ge=-90, le=90),
    longitude: float | None = Form(None, ge=-180, le=180),
) -> ReportOut:
    """
    Submit a geotagged waste photo.

    The report is stored as ``pending_ai`` and returned straight away;
    classification runs in the background and updates it afterwards.
    """
    if not area.strip():
        raise HTTPException(status_code=422, detail="Area is required")

    content_type = image.content_type or ""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported image type: {content_type}")

    data = await image.read()
    if not data:
        raise HTTPException(status_code=422, detail="Image is empty")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Image is too large")

    image_path = await asyncio.to_thread(_store_image, data, content_type)

    store = ReportStore(db)
    report = await store.create_report(
        area=area,
        details=details,
        image_path=image_path,
        user_id=user_id or "anonymous",
        user_name=user_name,
        latitude=latitude,
        longitude=longitude,
    )

    await publish_feed_update(db)
    background_tasks.add_task(classifier, report.id, data, content_type)
    logger.info(f"Report {report.id} queued for classification ({len(data)} bytes)")

    return report


@router.get("", response_model=ReportsResponse)
async def list_reports(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(50, ge=1, le=200),
    user_id: str | None = Query(None, description="Only reports by this user"),
) -> ReportsResponse:
    """List the most recent reports, newest first."""
    store = ReportStore(db)
    reports = await store.recent_reports(limit=limit, user_id=user_id)
    total = await store.count_reports(user_id=user_id)
    return ReportsResponse(reports=reports, total=total)


@router.get("/areas", response_model=list[str])
async def list_area_suggestions(
    q: str | None = Query(None, description="Part of an area name"),
) -> list[str]:
    """Suggest known Madurai areas matching the query."""
    return suggest_areas(q)


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(
    report_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReportOut:
    """Get a specific report by ID."""
    return await ReportStore(db).get_report(report_id)


@router.post("/{report_id}/resolve", response_model=ReportOut)
async def resolve_report(
    report_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReportOut:
    """
    Mark a report as cleaned up.

    Unknown ids give 404 and already resolved reports give 409.
    """
    report = await ReportStore(db).resolve_report(report_id)

    await publish_feed_update(db)
    return report
