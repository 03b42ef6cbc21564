"""Catalog tables: subjects, complexity_levels, videos.

Revision ID: 001_catalog_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_catalog_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Subjects (grid columns) ---
    op.create_table(
        "subjects",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("order", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.UniqueConstraint("order", name="uq_subject_order"),
    )

    # --- Complexity levels (grid rows) ---
    op.create_table(
        "complexity_levels",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("level", sa.Integer, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("requirements", sa.Text, nullable=False, server_default=""),
        sa.Column("order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.UniqueConstraint("level", name="uq_complexity_level"),
    )

    # --- Videos (grid cells; no uniqueness on subject/level, the index resolves collisions) ---
    op.create_table(
        "videos",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("subject", sa.String(64), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("complexity_level", sa.Integer, nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("duration_seconds", sa.Float, nullable=False, server_default="0"),
        sa.Column("video_url", sa.Text, nullable=False, server_default=""),
        sa.Column("thumbnail_url", sa.Text, nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
    )
    op.create_index("ix_videos_subject", "videos", ["subject"])
    op.create_index("idx_videos_cell", "videos", ["subject", "complexity_level"])


def downgrade() -> None:
    op.drop_index("idx_videos_cell", table_name="videos")
    op.drop_index("ix_videos_subject", table_name="videos")
    op.drop_table("videos")
    op.drop_table("complexity_levels")
    op.drop_table("subjects")
