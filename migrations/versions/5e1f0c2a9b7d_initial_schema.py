"""Initial schema for Ezhil.

Revision ID: 5e1f0c2a9b7d
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5e1f0c2a9b7d"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("area", sa.String(length=120), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("image_path", sa.String(length=500), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "user_id",
            sa.String(length=128),
            server_default=sa.text("'anonymous'"),
            nullable=False,
        ),
        sa.Column("user_name", sa.String(length=120), nullable=True),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default=sa.text("'pending_ai'"),
            nullable=False,
        ),
        sa.Column("waste_type", sa.String(length=20), nullable=True),
        sa.Column("severity", sa.Integer(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("ai_reason", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        if_not_exists=True,
    )

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=10), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        if_not_exists=True,
    )

    op.create_table(
        "contributors",
        sa.Column("user_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("user_name", sa.String(length=120), nullable=True),
        sa.Column("area", sa.String(length=120), nullable=True),
        sa.Column("report_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("impact_points", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("level", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column(
            "refreshed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        if_not_exists=True,
    )

    # Indexes - reports
    op.create_index("ix_reports_area", "reports", ["area"], if_not_exists=True)
    op.create_index("ix_reports_user_id", "reports", ["user_id"], if_not_exists=True)
    op.create_index("ix_reports_status", "reports", ["status"], if_not_exists=True)
    op.create_index(
        "idx_reports_feed",
        "reports",
        [sa.text("created_at DESC"), sa.text("id DESC")],
        if_not_exists=True,
    )

    # Indexes - chat and leaderboard
    op.create_index(
        "ix_chat_messages_user_id", "chat_messages", ["user_id"], if_not_exists=True
    )
    op.create_index(
        "ix_contributors_impact_points",
        "contributors",
        ["impact_points"],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_contributors_impact_points", table_name="contributors", if_exists=True)
    op.drop_index("ix_chat_messages_user_id", table_name="chat_messages", if_exists=True)

    op.drop_index("idx_reports_feed", table_name="reports", if_exists=True)
    op.drop_index("ix_reports_status", table_name="reports", if_exists=True)
    op.drop_index("ix_reports_user_id", table_name="reports", if_exists=True)
    op.drop_index("ix_reports_area", table_name="reports", if_exists=True)

    op.drop_table("contributors", if_exists=True)
    op.drop_table("chat_messages", if_exists=True)
    op.drop_table("reports", if_exists=True)
