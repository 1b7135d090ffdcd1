"""Pre-commit feasibility check for a new habit.

Pure: ``evaluate`` only reads its arguments. Callers load the user's habits
and per-habit history beforehand (see ``crud.habit_history_stats``).
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from habitflow.settings import settings

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class FeasibilityConfig:
    max_active_habits: int = 10
    max_weekly_minutes: int = 1200
    minutes_per_completion: int = 15
    conflict_window_minutes: int = 30
    low_completion_rate: float = 0.5

    @classmethod
    def from_settings(cls) -> "FeasibilityConfig":
        return cls(
            max_active_habits=settings.FEASIBILITY_MAX_ACTIVE_HABITS,
            max_weekly_minutes=settings.FEASIBILITY_MAX_WEEKLY_MINUTES,
            minutes_per_completion=settings.FEASIBILITY_MINUTES_PER_COMPLETION,
            conflict_window_minutes=settings.FEASIBILITY_CONFLICT_WINDOW_MIN,
            low_completion_rate=settings.FEASIBILITY_LOW_COMPLETION_RATE,
        )


@dataclass(frozen=True)
class HabitHistory:
    """Scheduled days seen in the lookback window and how many met the target."""

    days_tracked: int
    days_met: int

    @property
    def completion_rate(self) -> Optional[float]:
        if self.days_tracked <= 0:
            return None
        return self.days_met / self.days_tracked


@dataclass(frozen=True)
class TimeConflict:
    habit_title: str
    reminder_time: str
    time_difference: int


@dataclass(frozen=True)
class FeasibilityMetrics:
    current_habit_count: int
    estimated_time_load: int
    avg_completion_rate: Optional[float]
    avg_streak_duration: Optional[float]
    time_conflicts: list[TimeConflict] = field(default_factory=list)


@dataclass(frozen=True)
class FeasibilityResult:
    feasible: bool
    confidence: str
    message: str
    warnings: list[str]
    suggestions: list[str]
    metrics: FeasibilityMetrics


def parse_reminder(value) -> Optional[int]:
    """Minutes after midnight for ``HH:MM`` strings or ``time`` objects."""
    if value is None or value == "":
        return None
    if isinstance(value, dt.time):
        return value.hour * 60 + value.minute
    hh, mm = str(value).strip().split(":")[:2]
    return int(hh) * 60 + int(mm)


def clock_distance(a: int, b: int) -> int:
    diff = abs(a - b) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff)


def weekly_occurrences(habit) -> int:
    days = habit.recurrence_days
    return len(days) if days else 7


def weekly_minutes(habit, config: FeasibilityConfig) -> int:
    return weekly_occurrences(habit) * habit.target_count * config.minutes_per_completion


def find_time_conflicts(candidate, habits: Iterable, window_minutes: int) -> list[TimeConflict]:
    wanted = parse_reminder(getattr(candidate, "reminder_time", None))
    if wanted is None:
        return []
    conflicts = []
    for habit in habits:
        existing = parse_reminder(habit.reminder_time)
        if existing is None:
            continue
        diff = clock_distance(wanted, existing)
        if diff < window_minutes:
            conflicts.append(
                TimeConflict(
                    habit_title=habit.title,
                    reminder_time=f"{existing // 60:02d}:{existing % 60:02d}",
                    time_difference=diff,
                )
            )
    conflicts.sort(key=lambda c: (c.time_difference, c.habit_title))
    return conflicts


def _averages(active: list, history: Mapping[int, HabitHistory]) -> tuple[Optional[float], Optional[float]]:
    rates = []
    streaks = []
    for habit in active:
        stats = history.get(habit.id)
        if stats is None or stats.completion_rate is None:
            continue
        rates.append(stats.completion_rate)
        streaks.append(habit.streak or 0)
    if not rates:
        return None, None
    return sum(rates) / len(rates), sum(streaks) / len(streaks)


def evaluate(
    candidate,
    habits: Iterable,
    history: Mapping[int, HabitHistory] | None = None,
    config: FeasibilityConfig | None = None,
    *,
    override: bool = False,
) -> FeasibilityResult:
    config = config or FeasibilityConfig.from_settings()
    history = history or {}
    active = [h for h in habits if h.status != "paused"]

    time_load = weekly_minutes(candidate, config) + sum(weekly_minutes(h, config) for h in active)
    avg_rate, avg_streak = _averages(active, history)
    conflicts = find_time_conflicts(candidate, active, config.conflict_window_minutes)

    metrics = FeasibilityMetrics(
        current_habit_count=len(active),
        estimated_time_load=time_load,
        avg_completion_rate=avg_rate,
        avg_streak_duration=avg_streak,
        time_conflicts=conflicts,
    )

    too_many = len(active) >= config.max_active_habits
    too_long = time_load > config.max_weekly_minutes
    low_rate = avg_rate is not None and avg_rate < config.low_completion_rate

    warnings: list[str] = []
    suggestions: list[str] = []

    if too_many:
        warnings.append(
            f"You already have {len(active)} active habits; "
            f"more than {config.max_active_habits - 1} is hard to sustain."
        )
        suggestions.append("Consider pausing or finishing an existing habit before adding a new one.")
    if too_long:
        warnings.append(
            f"Your habits would take about {time_load} minutes per week, "
            f"above the {config.max_weekly_minutes} minute limit."
        )
        suggestions.append("Consider a lower target count or fewer scheduled days.")
    if low_rate:
        warnings.append(
            f"Your recent completion rate is {round(avg_rate * 100)}%, "
            "so another habit may be hard to keep up."
        )
        suggestions.append("Consider strengthening your current habits before adding more.")
    for conflict in conflicts:
        warnings.append(
            f"Reminder is {conflict.time_difference} min from "
            f"\"{conflict.habit_title}\" at {conflict.reminder_time}."
        )
    if conflicts:
        suggestions.append("Pick a different reminder time to avoid overlapping habits.")

    if too_many or too_long:
        feasible = override
        confidence = "low"
        if override:
            message = "This habit exceeds your current capacity; created on your explicit request."
        else:
            message = "Adding this habit is likely to overload your routine."
    elif conflicts or low_rate:
        feasible = True
        confidence = "medium"
        message = "This habit looks manageable, but review the warnings first."
    else:
        feasible = True
        confidence = "high"
        message = "This habit fits well with your current routine."

    return FeasibilityResult(
        feasible=feasible,
        confidence=confidence,
        message=message,
        warnings=warnings,
        suggestions=suggestions,
        metrics=metrics,
    )
