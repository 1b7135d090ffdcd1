"""Longest streaks, user streak and completion times

Revision ID: 0003_streak_stats
Revises: 0002_mood_entries
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0003_streak_stats"
down_revision = "0002_mood_entries"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("habits", sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"))
    op.add_column("users", sa.Column("streak", sa.Integer(), nullable=False, server_default="0"))
    op.add_column("users", sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"))
    op.add_column("users", sa.Column("last_rollover_on", sa.Date(), nullable=True))
    op.add_column("habit_logs", sa.Column("completed_at", sa.DateTime(), nullable=True))
    op.execute("UPDATE habits SET longest_streak = streak")


def downgrade() -> None:
    op.drop_column("habit_logs", "completed_at")
    op.drop_column("users", "last_rollover_on")
    op.drop_column("users", "longest_streak")
    op.drop_column("users", "streak")
    op.drop_column("habits", "longest_streak")
