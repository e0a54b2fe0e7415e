"""Pydantic schemas and lifecycle rules for waste reports."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PENDING_AI = "pending_ai"
CLASSIFIED = "classified"
AI_FAILED = "ai_failed"
RESOLVED = "resolved"

REPORT_STATUSES = (PENDING_AI, CLASSIFIED, AI_FAILED, RESOLVED)

WASTE_TYPES = ("Wet", "Dry", "Hazardous", "Mixed")

WasteType = Literal["Wet", "Dry", "Hazardous", "Mixed"]

# Allowed status moves. Resolution is an operator action and is accepted from
# any unresolved state; nothing ever moves back to pending_ai.
TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING_AI: frozenset({CLASSIFIED, AI_FAILED, RESOLVED}),
    CLASSIFIED: frozenset({RESOLVED}),
    AI_FAILED: frozenset({RESOLVED}),
    RESOLVED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """Check whether a report may move from ``current`` to ``target``."""
    return target in TRANSITIONS.get(current, frozenset())


class ReportBase(BaseModel):
    """Fields the aggregation engine reads from a report."""

    model_config = ConfigDict(from_attributes=True)

    area: str | None = None
    waste_type: str | None = None
    severity: int | None = None
    status: str = PENDING_AI


class ReportOut(ReportBase):
    """Report response schema."""

    id: int
    details: str | None = None
    image_path: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    user_id: str = "anonymous"
    user_name: str | None = None

    confidence: float | None = None
    ai_reason: str | None = None
    error: str | None = None

    created_at: datetime
    updated_at: datetime | None = None
    resolved_at: datetime | None = None


class ReportsResponse(BaseModel):
    """Bounded, newest-first list of reports."""

    reports: list[ReportOut]
    total: int


class Classification(BaseModel):
    """Structured verdict returned by the vision model."""

    model_config = ConfigDict(populate_by_name=True)

    waste_type: WasteType = Field(alias="type")
    confidence: float = Field(ge=0, le=100)
    severity: int = Field(ge=1, le=5)
    reasoning: str = ""
