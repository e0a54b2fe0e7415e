"""Contributor model holding precomputed leaderboard standings."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ezhil.database import Base


class Contributor(Base):
    """
    Impact points for one reporting citizen.

    Rewritten wholesale by the leaderboard refresh job; never edited by hand.
    """

    __tablename__ = "contributors"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_name: Mapped[str | None] = mapped_column(String(120))
    area: Mapped[str | None] = mapped_column(String(120))
    report_count: Mapped[int] = mapped_column(Integer, server_default="0", nullable=False)
    impact_points: Mapped[int] = mapped_column(
        Integer, server_default="0", nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, server_default="1", nullable=False)
    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Contributor {self.user_id}: {self.impact_points}>"
