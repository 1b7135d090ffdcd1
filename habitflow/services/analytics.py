"""Completion trends by weekday and time of day over a window of habit logs."""
from __future__ import annotations

import datetime as dt
from typing import Iterable, Mapping

from habitflow.models.habit import WEEKDAY_TOKENS
from habitflow.services.ledger import is_scheduled_on, weekday_token

# (name, first hour, end hour) in local time; anything else is night
TIME_OF_DAY_BUCKETS = (
    ("morning", 5, 12),
    ("afternoon", 12, 17),
    ("evening", 17, 22),
)


def time_of_day(moment: dt.datetime) -> str:
    for name, start, end in TIME_OF_DAY_BUCKETS:
        if start <= moment.hour < end:
            return name
    return "night"


def summarize(logs: Iterable, habits_by_id: Mapping[int, object]) -> dict:
    """Aggregate logs on scheduled days per weekday, completions per time of day.

    Logs of habits missing from ``habits_by_id`` are ignored.
    """
    scheduled = {token: 0 for token in WEEKDAY_TOKENS}
    met = {token: 0 for token in WEEKDAY_TOKENS}
    by_time = {name: 0 for name, _, _ in TIME_OF_DAY_BUCKETS}
    by_time["night"] = 0

    for log in logs:
        habit = habits_by_id.get(log.habit_id)
        if habit is None or not is_scheduled_on(habit, log.day):
            continue
        token = weekday_token(log.day)
        scheduled[token] += 1
        if log.completed:
            met[token] += 1
            if log.completed_at is not None:
                by_time[time_of_day(log.completed_at)] += 1

    by_weekday = [
        {
            "weekday": token,
            "scheduled": scheduled[token],
            "completed": met[token],
            "completion_rate": round(met[token] / scheduled[token], 4) if scheduled[token] else None,
        }
        for token in WEEKDAY_TOKENS
    ]
    rated = [row for row in by_weekday if row["completion_rate"] is not None]
    best = max(rated, key=lambda row: row["completion_rate"])["weekday"] if rated else None
    worst = min(rated, key=lambda row: row["completion_rate"])["weekday"] if rated else None
    total_scheduled = sum(scheduled.values())
    total_met = sum(met.values())

    return {
        "scheduled_days": total_scheduled,
        "completed_days": total_met,
        "completion_rate": round(total_met / total_scheduled, 4) if total_scheduled else None,
        "by_weekday": by_weekday,
        "by_time_of_day": by_time,
        "best_weekday": best,
        "worst_weekday": worst,
    }
