import datetime as dt
from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


WEEKDAY_TOKENS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
STATUS_VALUES = ("incomplete", "complete", "paused")
CATEGORY_VALUES = ("health", "fitness", "productivity", "education", "wellness", "relationships")


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (
        Index("ix_habits_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    title: Mapped[str] = mapped_column(String(120))
    icon: Mapped[str] = mapped_column(String(16), default="🎯")
    target_count: Mapped[int] = mapped_column(Integer, default=1)
    # Comma-separated tokens in week order, e.g. "Mon,Wed,Fri"; empty = every day
    recurrence: Mapped[str] = mapped_column(String(32), default="")
    # HH:MM in the owner's local time
    reminder_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    category: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)

    # Daily state
    status: Mapped[str] = mapped_column(String(12), default="incomplete")
    completed_today: Mapped[int] = mapped_column(Integer, default=0)
    streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_completed: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    # Most recent scheduled day on which the target was met; drives streak credit
    last_met_on: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    last_rollover_on: Mapped[dt.date | None] = mapped_column(Date, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=lambda: dt.datetime.utcnow())
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=lambda: dt.datetime.utcnow(), onupdate=lambda: dt.datetime.utcnow())

    __mapper_args__ = {"version_id_col": version}

    user = relationship("User", back_populates="habits")
    logs = relationship("HabitLog", back_populates="habit", cascade="all, delete-orphan")

    @property
    def recurrence_days(self) -> frozenset[str]:
        return frozenset(t for t in (self.recurrence or "").split(",") if t)

    @recurrence_days.setter
    def recurrence_days(self, days) -> None:
        wanted = set(days or ())
        self.recurrence = ",".join(t for t in WEEKDAY_TOKENS if t in wanted)

    @property
    def display_streak(self) -> int:
        """Streak as shown to the user.

        A completion counts early only when it landed on a scheduled day, the
        same day the next rollover will credit.
        """
        pending = (
            self.status == "complete"
            and self.last_met_on is not None
            and self.last_completed is not None
            and self.last_met_on == self.last_completed.date()
        )
        return (self.streak or 0) + (1 if pending else 0)


class HabitLog(Base):
    __tablename__ = "habit_logs"
    __table_args__ = (
        UniqueConstraint("habit_id", "day", name="uq_habit_logs_habit_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"), index=True)
    day: Mapped[dt.date] = mapped_column(Date, index=True)

    value: Mapped[int] = mapped_column(Integer, default=0)
    target: Mapped[int] = mapped_column(Integer, default=1)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    # Local time the target was reached, for time-of-day analytics
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=lambda: dt.datetime.utcnow())

    habit = relationship("Habit", back_populates="logs")
    user = relationship("User", back_populates="habit_logs")
