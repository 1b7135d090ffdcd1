from __future__ import annotations

import datetime as dt
import re

from pydantic import BaseModel, Field, field_validator

from habitflow.models.habit import CATEGORY_VALUES, STATUS_VALUES
from habitflow.services.ledger import normalize_weekdays


_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def _validate_title(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("title must not be empty")
    return v


def _validate_reminder(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    m = _HHMM.match(v)
    if not m:
        raise ValueError("reminder_time must be HH:MM")
    return f"{int(m.group(1)):02d}:{m.group(2)}"


def _validate_category(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip().lower()
    if v not in CATEGORY_VALUES:
        raise ValueError(f"category must be one of: {list(CATEGORY_VALUES)}")
    return v


class HabitCandidate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    icon: str = Field(default="🎯", max_length=16)
    target_count: int = Field(default=1, ge=1, le=100)
    recurrence_days: list[str] = Field(default_factory=list, description="Sun..Sat; empty = every day")
    reminder_time: str | None = Field(default=None, description="HH:MM local time")
    is_public: bool = False
    notes: str | None = Field(default=None, max_length=2000)
    category: str | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str | None) -> str | None:
        return _validate_title(v)

    @field_validator("reminder_time")
    @classmethod
    def _reminder(cls, v: str | None) -> str | None:
        return _validate_reminder(v)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str | None:
        return _validate_category(v)

    @field_validator("recurrence_days")
    @classmethod
    def _days(cls, v: list[str]) -> list[str]:
        return normalize_weekdays(v)


class HabitCreate(HabitCandidate):
    skip_feasibility_check: bool = False
    # Create even when the check reports the habit as infeasible
    override_feasibility: bool = False


class HabitUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=120)
    icon: str | None = Field(default=None, max_length=16)
    target_count: int | None = Field(default=None, ge=1, le=100)
    recurrence_days: list[str] | None = None
    reminder_time: str | None = None
    is_public: bool | None = None
    notes: str | None = Field(default=None, max_length=2000)
    category: str | None = None
    expected_version: int | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str | None) -> str | None:
        return _validate_title(v)

    @field_validator("reminder_time")
    @classmethod
    def _reminder(cls, v: str | None) -> str | None:
        return _validate_reminder(v)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str | None:
        return _validate_category(v)

    @field_validator("recurrence_days")
    @classmethod
    def _days(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else normalize_weekdays(v)


class HabitStatusIn(BaseModel):
    status: str
    expected_version: int | None = None

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in STATUS_VALUES:
            raise ValueError(f"status must be one of: {list(STATUS_VALUES)}")
        return v


class HabitProgressIn(BaseModel):
    delta: int = Field(default=1, ge=-1000, le=1000)
    cycle: bool = False
    expected_version: int | None = None


class RolloverIn(BaseModel):
    day: dt.date | None = None


class HabitOut(BaseModel):
    id: int
    title: str
    icon: str
    target_count: int
    recurrence_days: list[str]
    reminder_time: str | None
    is_public: bool
    notes: str | None
    category: str | None

    status: str
    completed_today: int
    streak: int
    longest_streak: int
    display_streak: int
    last_completed: dt.datetime | None
    version: int

    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True

    @field_validator("recurrence_days", mode="before")
    @classmethod
    def _days(cls, v) -> list[str]:
        return normalize_weekdays(v)


class TimeConflictOut(BaseModel):
    habit_title: str
    reminder_time: str
    time_difference: int

    class Config:
        from_attributes = True


class FeasibilityMetricsOut(BaseModel):
    current_habit_count: int
    estimated_time_load: int
    avg_completion_rate: float | None
    avg_streak_duration: float | None
    time_conflicts: list[TimeConflictOut]

    class Config:
        from_attributes = True


class FeasibilityOut(BaseModel):
    feasible: bool
    confidence: str
    message: str
    warnings: list[str]
    suggestions: list[str]
    metrics: FeasibilityMetricsOut

    class Config:
        from_attributes = True


class HabitCreateOut(BaseModel):
    created: bool
    habit: HabitOut | None = None
    feasibility: FeasibilityOut | None = None


class RolloverOut(BaseModel):
    day: dt.date
    habits: list[HabitOut]


class HabitHistoryOut(BaseModel):
    habit_id: int
    days: int
    completion: dict[str, int]
    scheduled_days: int
    completed_days: int
    consistency_rate: float


class WeekdayTrendOut(BaseModel):
    weekday: str
    scheduled: int
    completed: int
    completion_rate: float | None


class HabitAnalyticsOut(BaseModel):
    days: int
    scheduled_days: int
    completed_days: int
    completion_rate: float | None
    by_weekday: list[WeekdayTrendOut]
    by_time_of_day: dict[str, int]
    best_weekday: str | None
    worst_weekday: str | None
