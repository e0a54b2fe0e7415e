"""Pydantic schemas for impact points and the leaderboard."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Standing(BaseModel):
    """Impact computed for one contributor."""

    user_id: str
    user_name: str | None = None
    area: str | None = None
    report_count: int = 0
    classified_count: int = 0
    resolved_count: int = 0
    impact_points: int = 0
    level: int = 1


class ContributorOut(BaseModel):
    """Leaderboard row."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    user_name: str | None = None
    area: str | None = None
    report_count: int
    impact_points: int
    level: int
    refreshed_at: datetime | None = None


class Badge(BaseModel):
    """Achievement shown on a profile."""

    id: str
    name: str
    description: str
    unlocked: bool


class ProfileOut(BaseModel):
    """A contributor's live impact and achievements."""

    standing: Standing
    badges: list[Badge]


class RefreshResult(BaseModel):
    """Result of a manual leaderboard refresh."""

    contributors: int
    message: str
