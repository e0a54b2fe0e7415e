"""Pydantic schemas for dashboard aggregates."""

from datetime import datetime

from pydantic import BaseModel, Field

from ezhil.schemas.report import ReportOut


def _empty_histogram() -> dict[str, int]:
    return {"Wet": 0, "Dry": 0, "Hazardous": 0, "Mixed": 0}


class GlobalStats(BaseModel):
    """City-wide totals over one feed snapshot."""

    total: int = 0
    resolved: int = 0
    pending: int = 0
    severity_sum: int = 0
    types: dict[str, int] = Field(default_factory=_empty_histogram)

    # Derived for display
    average_severity: float = 0.0
    resolution_rate: int = 0


class AreaScore(BaseModel):
    """Health score of one area."""

    name: str
    report_count: int = 0
    resolved_count: int = 0
    penalty: int = 0
    score: int = 100


class FeedAggregate(BaseModel):
    """Everything derived from a single feed snapshot."""

    stats: GlobalStats
    areas: list[AreaScore]
    focus_area: AreaScore | None = None


class DashboardResponse(FeedAggregate):
    """Dashboard payload."""

    feed_limit: int
    generated_at: datetime


class SummaryResponse(BaseModel):
    """Home screen payload."""

    report_count: int
    focus_area: AreaScore | None = None
    recent_reports: list[ReportOut]
    user_impact: int | None = None
    generated_at: datetime
