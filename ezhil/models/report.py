"""Report model for citizen-submitted waste reports."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ezhil.database import Base


class Report(Base):
    """
    A geotagged waste photo submitted by a citizen.

    Created in ``pending_ai``; the classification flow moves it to
    ``classified`` or ``ai_failed`` and an operator may later mark it
    ``resolved``.
    """

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Submission
    area: Mapped[str | None] = mapped_column(String(120), index=True)
    details: Mapped[str | None] = mapped_column(Text)
    image_path: Mapped[str | None] = mapped_column(String(500))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    # Submitter
    user_id: Mapped[str] = mapped_column(
        String(128), index=True, nullable=False, server_default="anonymous"
    )
    user_name: Mapped[str | None] = mapped_column(String(120))

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20), index=True, nullable=False, server_default="pending_ai"
    )

    # AI classification
    waste_type: Mapped[str | None] = mapped_column(String(20))
    severity: Mapped[int | None] = mapped_column(Integer)
    confidence: Mapped[float | None] = mapped_column(Float)
    ai_reason: Mapped[str | None] = mapped_column(Text)
    error: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        # Feed query index
        Index("idx_reports_feed", created_at.desc(), id.desc()),
    )

    def __repr__(self) -> str:
        return f"<Report {self.id}: {self.area} [{self.status}]>"
