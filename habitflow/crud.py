from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import select, and_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from habitflow.errors import LedgerResult, not_found, version_conflict
from habitflow.models.habit import Habit, HabitLog
from habitflow.models.mood import MoodEntry
from habitflow.models.user import User
from habitflow.schemas.habits import HabitCandidate, HabitUpdate
from habitflow.security import hash_api_key, mint_api_key
from habitflow.services import analytics, feasibility, ledger
from habitflow.services.clock import now_local_naive
from habitflow.settings import settings

logger = logging.getLogger("habitflow.crud")


# Users

def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_or_create_user(db: Session, external_id: str, timezone: str | None = None) -> User:
    user = db.execute(select(User).where(User.external_id == str(external_id))).scalar_one_or_none()
    if user:
        return user
    user = User(external_id=str(external_id), timezone=timezone or settings.TZ)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user id=%s", user.id)
    return user


def get_user_by_api_key(db: Session, raw_key: str) -> User | None:
    digest = hash_api_key(raw_key)
    return db.execute(select(User).where(User.api_key_hash == digest)).scalar_one_or_none()


def rotate_user_api_key(db: Session, user_id: int) -> str:
    user = db.get(User, user_id)
    if not user:
        raise ValueError(f"User {user_id} not found")
    key = mint_api_key()
    user.api_key_hash = key.digest
    user.api_key_prefix = key.prefix
    user.api_key_last_rotated_at = dt.datetime.utcnow()
    db.add(user)
    db.commit()
    logger.info("Rotated API key for user id=%s (prefix=%s)", user.id, key.prefix)
    return key.raw


def update_user_fields(db: Session, user_id: int, **fields) -> User | None:
    user = db.get(User, user_id)
    if not user:
        return None
    for k, v in fields.items():
        if v is None and k in ("timezone", "is_vacation"):
            continue
        setattr(user, k, v)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# Habits

def _user_now(user: User, now: dt.datetime | None) -> dt.datetime:
    return now if now is not None else now_local_naive(user.timezone)


def get_habit(db: Session, user_id: int, habit_id: int) -> Habit | None:
    return db.execute(
        select(Habit).where(and_(Habit.id == habit_id, Habit.user_id == user_id))
    ).scalar_one_or_none()


def list_habits(
    db: Session,
    user_id: int,
    *,
    category: str | None = None,
    include_paused: bool = True,
) -> list[Habit]:
    stmt = select(Habit).where(Habit.user_id == user_id)
    if category:
        stmt = stmt.where(Habit.category == category)
    if not include_paused:
        stmt = stmt.where(Habit.status != "paused")
    return list(db.execute(stmt.order_by(Habit.created_at.asc(), Habit.id.asc())).scalars())


def list_habits_for_day(db: Session, user_id: int, day: dt.date) -> list[Habit]:
    return [h for h in list_habits(db, user_id) if ledger.is_scheduled_on(h, day)]


def create_habit(db: Session, user_id: int, data: HabitCandidate) -> LedgerResult:
    error = ledger.validate_habit_fields(data.title, data.target_count, data.recurrence_days)
    if error:
        return LedgerResult.failure(error)

    habit = Habit(
        user_id=user_id,
        title=data.title.strip(),
        icon=data.icon,
        target_count=data.target_count,
        reminder_time=data.reminder_time,
        is_public=data.is_public,
        notes=data.notes,
        category=data.category,
        status="incomplete",
        completed_today=0,
        streak=0,
    )
    habit.recurrence_days = data.recurrence_days
    db.add(habit)
    db.commit()
    db.refresh(habit)
    logger.info("Created habit id=%s for user id=%s", habit.id, user_id)
    return LedgerResult.success(habit)


def _load_for_write(db: Session, user_id: int, habit_id: int, expected_version: int | None) -> LedgerResult:
    habit = get_habit(db, user_id, habit_id)
    if not habit:
        return LedgerResult.failure(not_found(habit_id))
    if expected_version is not None and habit.version != expected_version:
        return LedgerResult.failure(version_conflict(expected_version, habit.version))
    return LedgerResult.success(habit)


def _commit_habit(db: Session, habit: Habit) -> LedgerResult:
    habit_id = habit.id
    expected = habit.version
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        current = db.get(Habit, habit_id)
        logger.warning("Concurrent update lost for habit id=%s", habit_id)
        return LedgerResult.failure(
            version_conflict(expected, current.version if current else 0)
        )
    db.refresh(habit)
    return LedgerResult.success(habit)


def _sync_log(db: Session, habit: Habit, day: dt.date) -> HabitLog:
    log = db.execute(
        select(HabitLog).where(and_(HabitLog.habit_id == habit.id, HabitLog.day == day))
    ).scalar_one_or_none()
    if not log:
        log = HabitLog(user_id=habit.user_id, habit_id=habit.id, day=day)
    log.value = habit.completed_today
    log.target = habit.target_count
    log.completed = habit.completed_today >= habit.target_count
    if not log.completed:
        log.completed_at = None
    elif log.completed_at is None and habit.last_completed is not None and habit.last_completed.date() == day:
        log.completed_at = habit.last_completed
    db.add(log)
    return log


def _restore_last_completed(db: Session, habit: Habit, today: dt.date) -> None:
    if habit.last_completed is not None:
        return
    day = db.execute(
        select(HabitLog.day)
        .where(and_(HabitLog.habit_id == habit.id, HabitLog.completed.is_(True), HabitLog.day < today))
        .order_by(HabitLog.day.desc())
        .limit(1)
    ).scalar_one_or_none()
    if day is not None:
        habit.last_completed = dt.datetime.combine(day, dt.time.min)


def update_habit(
    db: Session,
    user: User,
    habit_id: int,
    patch: HabitUpdate,
    now: dt.datetime | None = None,
) -> LedgerResult:
    loaded = _load_for_write(db, user.id, habit_id, patch.expected_version)
    if not loaded.ok:
        return loaded
    habit = loaded.habit

    data = patch.model_dump(exclude_unset=True, exclude={"expected_version"})
    error = ledger.validate_habit_fields(data.get("title"), data.get("target_count"), data.get("recurrence_days"))
    if error:
        return LedgerResult.failure(error)

    local_now = _user_now(user, now)
    target = data.pop("target_count", None)
    if target is not None and target != habit.target_count:
        ledger.retarget(habit, target, local_now)
        _sync_log(db, habit, local_now.date())
        _restore_last_completed(db, habit, local_now.date())
    if "recurrence_days" in data:
        habit.recurrence_days = data.pop("recurrence_days") or []
    if "title" in data and data["title"] is not None:
        data["title"] = data["title"].strip()
    for k, v in data.items():
        if v is None and k in ("title", "icon", "is_public"):
            continue
        setattr(habit, k, v)
    db.add(habit)
    return _commit_habit(db, habit)


def delete_habit(db: Session, user_id: int, habit_id: int) -> bool:
    habit = get_habit(db, user_id, habit_id)
    if not habit:
        return False
    db.delete(habit)
    db.commit()
    logger.info("Deleted habit id=%s for user id=%s", habit_id, user_id)
    return True


def set_habit_status(
    db: Session,
    user: User,
    habit_id: int,
    status: str,
    expected_version: int | None = None,
    now: dt.datetime | None = None,
) -> LedgerResult:
    loaded = _load_for_write(db, user.id, habit_id, expected_version)
    if not loaded.ok:
        return loaded
    habit = loaded.habit
    local_now = _user_now(user, now)

    ledger.set_status(habit, status, local_now)
    if status != "paused":
        _sync_log(db, habit, local_now.date())
    _restore_last_completed(db, habit, local_now.date())
    db.add(habit)
    return _commit_habit(db, habit)


def record_habit_progress(
    db: Session,
    user: User,
    habit_id: int,
    delta: int,
    *,
    cycle: bool = False,
    expected_version: int | None = None,
    now: dt.datetime | None = None,
) -> LedgerResult:
    loaded = _load_for_write(db, user.id, habit_id, expected_version)
    if not loaded.ok:
        return loaded
    habit = loaded.habit
    local_now = _user_now(user, now)

    ledger.record_progress(habit, delta, local_now, cycle=cycle)
    if habit.status != "paused":
        _sync_log(db, habit, local_now.date())
    _restore_last_completed(db, habit, local_now.date())
    db.add(habit)
    return _commit_habit(db, habit)


def _local_created_on(user: User, habit: Habit) -> dt.date:
    # created_at is stored in UTC
    return now_local_naive(user.timezone, habit.created_at).date()


def rollover_user_habits(db: Session, user: User, today: dt.date | None = None) -> list[Habit]:
    """Apply the day boundary to all of the user's habits.

    Scheduled days that closed with no activity get an empty log row so they
    count as missed in history, except while the user is on vacation.
    """
    today = today or _user_now(user, None).date()
    yesterday = today - dt.timedelta(days=1)
    habits = list_habits(db, user.id)
    outcomes: list[bool] = []
    for habit in habits:
        if habit.last_rollover_on is not None and habit.last_rollover_on >= today:
            continue
        if (
            habit.status != "paused"
            and ledger.is_scheduled_on(habit, yesterday)
            and _local_created_on(user, habit) <= yesterday
        ):
            log = db.execute(
                select(HabitLog).where(and_(HabitLog.habit_id == habit.id, HabitLog.day == yesterday))
            ).scalar_one_or_none()
            if log is not None:
                outcomes.append(log.completed)
            elif not user.is_vacation:
                outcomes.append(False)
                db.add(HabitLog(
                    user_id=user.id,
                    habit_id=habit.id,
                    day=yesterday,
                    value=0,
                    target=habit.target_count,
                    completed=False,
                ))
        ledger.streak_rollover(habit, user.is_vacation, today)
        db.add(habit)
    ledger.user_streak_rollover(user, all(outcomes) if outcomes else None, today)
    db.add(user)
    db.commit()
    for habit in habits:
        db.refresh(habit)
    logger.info("Rolled over %s habits for user id=%s to %s", len(habits), user.id, today)
    return habits


def habit_history(db: Session, user_id: int, habit: Habit, days: int, today: dt.date) -> dict:
    start = today - dt.timedelta(days=days - 1)
    logs = list(
        db.execute(
            select(HabitLog)
            .where(and_(HabitLog.habit_id == habit.id, HabitLog.user_id == user_id, HabitLog.day >= start))
            .order_by(HabitLog.day.asc())
        ).scalars()
    )
    completion = {log.day.isoformat(): log.value for log in logs}
    scheduled = [log for log in logs if ledger.is_scheduled_on(habit, log.day)]
    met = sum(1 for log in scheduled if log.completed)
    return {
        "habit_id": habit.id,
        "days": days,
        "completion": completion,
        "scheduled_days": len(scheduled),
        "completed_days": met,
        "consistency_rate": round(met / len(scheduled), 4) if scheduled else 0.0,
    }


def habit_history_stats(
    db: Session,
    user_id: int,
    habits: list[Habit],
    since: dt.date,
) -> dict[int, feasibility.HabitHistory]:
    by_id = {h.id: h for h in habits}
    if not by_id:
        return {}
    logs = db.execute(
        select(HabitLog).where(
            and_(HabitLog.user_id == user_id, HabitLog.habit_id.in_(list(by_id)), HabitLog.day >= since)
        )
    ).scalars()
    tracked: dict[int, int] = {}
    met: dict[int, int] = {}
    for log in logs:
        if not ledger.is_scheduled_on(by_id[log.habit_id], log.day):
            continue
        tracked[log.habit_id] = tracked.get(log.habit_id, 0) + 1
        if log.completed:
            met[log.habit_id] = met.get(log.habit_id, 0) + 1
    return {
        habit_id: feasibility.HabitHistory(days_tracked=count, days_met=met.get(habit_id, 0))
        for habit_id, count in tracked.items()
    }


def check_feasibility(
    db: Session,
    user: User,
    candidate: HabitCandidate,
    *,
    override: bool = False,
    today: dt.date | None = None,
) -> feasibility.FeasibilityResult:
    today = today or _user_now(user, None).date()
    habits = list_habits(db, user.id)
    since = today - dt.timedelta(days=settings.FEASIBILITY_HISTORY_DAYS)
    history = habit_history_stats(db, user.id, habits, since)
    result = feasibility.evaluate(
        candidate,
        habits,
        history,
        feasibility.FeasibilityConfig.from_settings(),
        override=override,
    )
    logger.info(
        "Feasibility for user id=%s: feasible=%s confidence=%s",
        user.id,
        result.feasible,
        result.confidence,
    )
    return result


def habit_analytics(db: Session, user_id: int, days: int, today: dt.date) -> dict:
    start = today - dt.timedelta(days=days - 1)
    habits = {h.id: h for h in list_habits(db, user_id)}
    logs = db.execute(
        select(HabitLog).where(and_(HabitLog.user_id == user_id, HabitLog.day >= start, HabitLog.day <= today))
    ).scalars()
    summary = analytics.summarize(logs, habits)
    summary["days"] = days
    return summary


# Mood check-ins

def upsert_mood(db: Session, user_id: int, day: dt.date, *, mood: str, motivation: str | None) -> MoodEntry:
    entry = db.execute(
        select(MoodEntry).where(and_(MoodEntry.user_id == user_id, MoodEntry.day == day))
    ).scalar_one_or_none()
    if not entry:
        entry = MoodEntry(user_id=user_id, day=day)
    entry.mood = mood
    entry.motivation = motivation
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_mood(db: Session, user_id: int, day: dt.date) -> MoodEntry | None:
    return db.execute(
        select(MoodEntry).where(and_(MoodEntry.user_id == user_id, MoodEntry.day == day))
    ).scalar_one_or_none()


def list_moods(db: Session, user_id: int, limit: int = 30) -> list[MoodEntry]:
    return list(
        db.execute(
            select(MoodEntry)
            .where(MoodEntry.user_id == user_id)
            .order_by(MoodEntry.day.desc())
            .limit(limit)
        ).scalars()
    )
