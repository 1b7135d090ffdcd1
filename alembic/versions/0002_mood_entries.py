"""Add daily mood check-ins.

Revision ID: 0002_mood_entries
Revises: 0001_initial
Create Date: 2026-10-14
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_mood_entries"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "mood_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("mood", sa.String(length=16), nullable=False),
        sa.Column("motivation", sa.String(length=300), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "day", name="uq_mood_entries_user_day"),
    )
    op.create_index("ix_mood_entries_user_id", "mood_entries", ["user_id"])
    op.create_index("ix_mood_entries_day", "mood_entries", ["day"])


def downgrade() -> None:
    op.drop_index("ix_mood_entries_day", table_name="mood_entries")
    op.drop_index("ix_mood_entries_user_id", table_name="mood_entries")
    op.drop_table("mood_entries")
