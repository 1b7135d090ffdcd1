"""Habit ledger: daily completion, status and streak transitions.

Every function here takes a habit record (the ORM ``Habit`` or anything with
the same attributes), mutates it in place and returns it. Nothing touches the
database; loading, locking and committing belong to ``habitflow.crud``.

Dates and datetimes passed in are already in the owner's local timezone.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable

from habitflow.errors import ValidationFailed, validation_failed
from habitflow.models.habit import STATUS_VALUES, WEEKDAY_TOKENS

logger = logging.getLogger("habitflow.ledger")

MAX_TARGET_COUNT = 100
MAX_TITLE_LENGTH = 120


def weekday_token(day: dt.date) -> str:
    # date.weekday() is Mon=0..Sun=6, tokens start at Sun
    return WEEKDAY_TOKENS[(day.weekday() + 1) % 7]


def normalize_weekdays(days: Iterable[str] | None) -> list[str]:
    """Canonical, week-ordered tokens. Accepts any case and full day names."""
    wanted = set()
    for raw in days or ():
        token = (raw or "").strip()[:3].capitalize()
        if token not in WEEKDAY_TOKENS:
            raise ValueError(f"unknown weekday: {raw!r}")
        wanted.add(token)
    return [t for t in WEEKDAY_TOKENS if t in wanted]


def is_scheduled(habit, weekday: str) -> bool:
    days = habit.recurrence_days
    return not days or weekday in days


def is_scheduled_on(habit, day: dt.date) -> bool:
    return is_scheduled(habit, weekday_token(day))


def previous_scheduled_day(habit, today: dt.date) -> dt.date:
    """Latest scheduled day strictly before ``today`` (at most a week back)."""
    for offset in range(1, 8):
        day = today - dt.timedelta(days=offset)
        if is_scheduled_on(habit, day):
            return day
    return today - dt.timedelta(days=7)


def validate_habit_fields(
    title: str | None,
    target_count: int | None,
    recurrence_days: Iterable[str] | None = None,
) -> ValidationFailed | None:
    if title is not None and not title.strip():
        return validation_failed("title must not be empty", field="title")
    if title is not None and len(title.strip()) > MAX_TITLE_LENGTH:
        return validation_failed(f"title must be at most {MAX_TITLE_LENGTH} characters", field="title")
    if target_count is not None and (target_count <= 0 or target_count > MAX_TARGET_COUNT):
        return validation_failed(f"target_count must be between 1 and {MAX_TARGET_COUNT}", field="target_count")
    try:
        normalize_weekdays(recurrence_days)
    except ValueError as exc:
        return validation_failed(str(exc), field="recurrence_days")
    return None


def _clamp(habit, value: int) -> int:
    return max(0, min(habit.target_count, value))


def mark_complete(habit, now: dt.datetime):
    habit.completed_today = habit.target_count
    habit.status = "complete"
    habit.last_completed = now
    if is_scheduled_on(habit, now.date()):
        habit.last_met_on = now.date()
    return habit


def mark_incomplete(habit, now: dt.datetime):
    habit.status = "incomplete"
    # Undoing today's completion must not leave today as a met day
    today = now.date()
    if habit.last_met_on == today:
        habit.last_met_on = None
    if habit.last_completed is not None and habit.last_completed.date() == today:
        habit.last_completed = None
    return habit


def record_progress(habit, delta: int, now: dt.datetime, *, cycle: bool = False):
    """Adjust today's completion count by ``delta``.

    Out-of-range deltas are clamped to ``[0, target_count]``. With ``cycle``
    set, a positive delta on a habit already at target wraps the count back
    to zero, which is how a single tap-to-increment control behaves.
    Paused habits are returned unchanged.
    """
    if habit.status == "paused":
        logger.debug("Ignoring progress on paused habit id=%s", habit.id)
        return habit

    current = _clamp(habit, habit.completed_today or 0)
    was_complete = current >= habit.target_count

    if cycle and was_complete and delta > 0:
        new_value = 0
    else:
        new_value = _clamp(habit, current + delta)

    habit.completed_today = new_value
    if new_value >= habit.target_count:
        if not was_complete or habit.status != "complete":
            mark_complete(habit, now)
    elif was_complete or habit.status == "complete":
        mark_incomplete(habit, now)
    return habit


def set_status(habit, status: str, now: dt.datetime):
    if status not in STATUS_VALUES:
        raise ValueError(f"status must be one of: {list(STATUS_VALUES)}")

    if status == "complete":
        mark_complete(habit, now)
    elif status == "incomplete":
        habit.completed_today = 0
        mark_incomplete(habit, now)
    else:
        habit.status = "paused"
    return habit


def retarget(habit, target_count: int, now: dt.datetime):
    """Change the daily target and re-derive today's status from the count."""
    was_complete = habit.status == "complete"
    habit.target_count = target_count
    habit.completed_today = _clamp(habit, habit.completed_today or 0)
    if habit.status == "paused":
        return habit
    if habit.completed_today >= target_count and not was_complete:
        mark_complete(habit, now)
    elif habit.completed_today < target_count and was_complete:
        mark_incomplete(habit, now)
    return habit


def streak_rollover(habit, vacation_mode: bool, today: dt.date):
    """Close out the previous local day and open ``today``.

    Applying it twice for the same ``today`` is a no-op. Paused habits keep
    their streak, status and count.
    """
    previous_rollover = habit.last_rollover_on
    if previous_rollover is not None and previous_rollover >= today:
        return habit
    habit.last_rollover_on = today

    if habit.status == "paused":
        return habit

    if is_scheduled_on(habit, today):
        closing_day = previous_scheduled_day(habit, today)
        yesterday = today - dt.timedelta(days=1)
        # A leftover "complete" only speaks for yesterday if no rollover was
        # skipped and the completion itself is not from an earlier day
        stale = (previous_rollover is not None and previous_rollover != yesterday) or (
            habit.last_completed is not None and habit.last_completed.date() != yesterday
        )
        met = habit.last_met_on == closing_day or (
            closing_day == yesterday and habit.status == "complete" and not stale
        )
        if met:
            habit.streak = (habit.streak or 0) + 1
            habit.longest_streak = max(habit.longest_streak or 0, habit.streak)
        elif vacation_mode:
            logger.debug("Vacation mode keeps streak for habit id=%s", habit.id)
        else:
            if habit.streak:
                logger.info("Streak reset for habit id=%s (was %s)", habit.id, habit.streak)
            habit.streak = 0

    habit.completed_today = 0
    habit.status = "incomplete"
    return habit


def user_streak_rollover(user, day_met: bool | None, today: dt.date):
    """Advance the user's overall streak for the day before ``today``.

    ``day_met`` is True when every habit scheduled that day hit its target,
    False when at least one missed, and None when nothing was scheduled.
    Vacation mode and empty days leave the streak alone.
    """
    if user.last_rollover_on is not None and user.last_rollover_on >= today:
        return user
    user.last_rollover_on = today

    if day_met is None:
        return user
    if day_met:
        user.streak = (user.streak or 0) + 1
        user.longest_streak = max(user.longest_streak or 0, user.streak)
    elif not user.is_vacation:
        user.streak = 0
    return user
