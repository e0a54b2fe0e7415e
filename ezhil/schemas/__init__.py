"""Pydantic schemas for API request/response validation."""

from ezhil.schemas.assistant import ChatMessageOut, ChatReply, ChatRequest
from ezhil.schemas.dashboard import (
    AreaScore,
    DashboardResponse,
    FeedAggregate,
    GlobalStats,
    SummaryResponse,
)
from ezhil.schemas.leaderboard import Badge, ContributorOut, ProfileOut, RefreshResult, Standing
from ezhil.schemas.report import Classification, ReportBase, ReportOut, ReportsResponse

__all__ = [
    "AreaScore",
    "Badge",
    "ChatMessageOut",
    "ChatReply",
    "ChatRequest",
    "Classification",
    "ContributorOut",
    "DashboardResponse",
    "FeedAggregate",
    "GlobalStats",
    "ProfileOut",
    "RefreshResult",
    "ReportBase",
    "ReportOut",
    "ReportsResponse",
    "Standing",
    "SummaryResponse",
]
