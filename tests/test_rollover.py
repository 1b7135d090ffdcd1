import datetime as dt

from habitflow import crud
from habitflow.models.habit import HabitLog
from habitflow.schemas.habits import HabitCandidate
from habitflow.services.clock import local_today
from habitflow.services.feasibility import HabitHistory
from habitflow.services.ledger import weekday_token


def _setup(session_factory, **user_fields):
    db = session_factory()
    user = crud.get_or_create_user(db, external_id="roller", timezone="UTC")
    if user_fields:
        user = crud.update_user_fields(db, user.id, **user_fields)
    return db, user


def _new_habit(db, user, **fields):
    data = {"title": "Walk"}
    data.update(fields)
    result = crud.create_habit(db, user.id, HabitCandidate(**data))
    assert result.ok
    return result.habit


def _noon(day: dt.date) -> dt.datetime:
    return dt.datetime.combine(day, dt.time(12, 0))


def test_missed_day_gets_empty_log_and_resets_streak(session_factory):
    db, user = _setup(session_factory)
    habit = _new_habit(db, user)
    habit.streak = 5
    db.commit()

    today = local_today("UTC")
    tomorrow = today + dt.timedelta(days=1)
    crud.rollover_user_habits(db, user, tomorrow)

    log = db.query(HabitLog).filter_by(habit_id=habit.id, day=today).one()
    assert log.value == 0
    assert log.completed is False
    assert habit.streak == 0
    assert habit.last_rollover_on == tomorrow
    db.close()


def test_completed_day_is_credited_and_logged(session_factory):
    db, user = _setup(session_factory)
    habit = _new_habit(db, user, target_count=2)
    today = local_today("UTC")

    result = crud.record_habit_progress(db, user, habit.id, 2, now=_noon(today))
    assert result.ok
    assert result.habit.status == "complete"

    crud.rollover_user_habits(db, user, today + dt.timedelta(days=1))
    assert habit.streak == 1
    assert habit.completed_today == 0
    log = db.query(HabitLog).filter_by(habit_id=habit.id, day=today).one()
    assert (log.value, log.target, log.completed) == (2, 2, True)
    db.close()


def test_vacation_keeps_streak_and_skips_missed_log(session_factory):
    db, user = _setup(session_factory, is_vacation=True)
    habit = _new_habit(db, user)
    habit.streak = 3
    db.commit()

    crud.rollover_user_habits(db, user, local_today("UTC") + dt.timedelta(days=1))
    assert habit.streak == 3
    assert db.query(HabitLog).filter_by(habit_id=habit.id).count() == 0
    db.close()


def test_unscheduled_yesterday_writes_no_log(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    tomorrow = today + dt.timedelta(days=1)
    habit = _new_habit(db, user, recurrence_days=[weekday_token(tomorrow)])
    habit.streak = 2
    db.commit()

    crud.rollover_user_habits(db, user, tomorrow)
    assert db.query(HabitLog).filter_by(habit_id=habit.id).count() == 0
    db.close()


def test_history_stats_count_scheduled_days_only(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    habit = _new_habit(db, user, recurrence_days=[weekday_token(today)])
    off_day = today - dt.timedelta(days=1)
    db.add_all([
        HabitLog(user_id=user.id, habit_id=habit.id, day=today, value=1, target=1, completed=True),
        HabitLog(user_id=user.id, habit_id=habit.id, day=today - dt.timedelta(days=7), value=0, target=1, completed=False),
        HabitLog(user_id=user.id, habit_id=habit.id, day=off_day, value=1, target=1, completed=True),
    ])
    db.commit()

    stats = crud.habit_history_stats(db, user.id, [habit], today - dt.timedelta(days=30))
    assert stats == {habit.id: HabitHistory(days_tracked=2, days_met=1)}

    history = crud.habit_history(db, user.id, habit, 30, today)
    assert history["scheduled_days"] == 2
    assert history["completed_days"] == 1
    assert history["consistency_rate"] == 0.5
    assert off_day.isoformat() in history["completion"]
    db.close()


def test_check_feasibility_uses_recorded_history(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    habit = _new_habit(db, user)
    for offset in range(1, 6):
        day = today - dt.timedelta(days=offset)
        db.add(HabitLog(user_id=user.id, habit_id=habit.id, day=day, value=0, target=1, completed=offset == 1))
    db.commit()

    result = crud.check_feasibility(db, user, HabitCandidate(title="Stretch"), today=today)
    assert result.feasible is True
    assert result.metrics.current_habit_count == 1
    assert result.metrics.avg_completion_rate == 0.2
    assert result.confidence == "medium"
    db.close()


def test_stale_expected_version_leaves_habit_untouched(session_factory):
    db, user = _setup(session_factory)
    habit = _new_habit(db, user)

    result = crud.set_habit_status(db, user, habit.id, "complete", expected_version=habit.version + 1)
    assert not result.ok
    assert result.error.code == "version_conflict"
    assert habit.status == "incomplete"
    db.close()


def test_missed_log_uses_local_creation_date(session_factory):
    db, user = _setup(session_factory, timezone="Pacific/Kiritimati")
    habit = _new_habit(db, user)
    # 20:00 UTC on the 19th is already the 20th in UTC+14
    habit.created_at = dt.datetime(2026, 10, 19, 20, 0)
    db.commit()

    crud.rollover_user_habits(db, user, dt.date(2026, 10, 20))
    assert db.query(HabitLog).filter_by(habit_id=habit.id).count() == 0
    db.close()


def test_user_streak_follows_scheduled_days(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    first = _new_habit(db, user)
    second = _new_habit(db, user, title="Read")
    crud.set_habit_status(db, user, first.id, "complete", now=_noon(today))
    crud.set_habit_status(db, user, second.id, "complete", now=_noon(today))

    crud.rollover_user_habits(db, user, today + dt.timedelta(days=1))
    assert (user.streak, user.longest_streak) == (1, 1)
    assert first.longest_streak == 1

    # Nothing done the next day
    crud.rollover_user_habits(db, user, today + dt.timedelta(days=2))
    assert (user.streak, user.longest_streak) == (0, 1)
    assert (first.streak, first.longest_streak) == (0, 1)
    db.close()


def test_user_streak_breaks_when_one_habit_is_missed(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    done = _new_habit(db, user)
    _new_habit(db, user, title="Read")
    user.streak = 4
    db.commit()
    crud.set_habit_status(db, user, done.id, "complete", now=_noon(today))

    crud.rollover_user_habits(db, user, today + dt.timedelta(days=1))
    assert user.streak == 0
    db.close()


def test_analytics_by_weekday_and_time_of_day(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    yesterday = today - dt.timedelta(days=1)
    habit = _new_habit(db, user)
    db.add_all([
        HabitLog(user_id=user.id, habit_id=habit.id, day=today, value=1, target=1, completed=True,
                 completed_at=dt.datetime.combine(today, dt.time(7, 30))),
        HabitLog(user_id=user.id, habit_id=habit.id, day=today - dt.timedelta(days=7), value=0, target=1,
                 completed=False),
        HabitLog(user_id=user.id, habit_id=habit.id, day=yesterday, value=1, target=1, completed=True,
                 completed_at=dt.datetime.combine(yesterday, dt.time(19, 0))),
        HabitLog(user_id=user.id, habit_id=habit.id, day=today - dt.timedelta(days=60), value=1, target=1,
                 completed=True),
    ])
    db.commit()

    summary = crud.habit_analytics(db, user.id, 30, today)
    assert summary["days"] == 30
    assert (summary["scheduled_days"], summary["completed_days"]) == (3, 2)
    rows = {row["weekday"]: row for row in summary["by_weekday"]}
    assert rows[weekday_token(today)]["scheduled"] == 2
    assert rows[weekday_token(today)]["completion_rate"] == 0.5
    assert rows[weekday_token(yesterday)]["completion_rate"] == 1.0
    assert summary["best_weekday"] == weekday_token(yesterday)
    assert summary["worst_weekday"] == weekday_token(today)
    assert summary["by_time_of_day"] == {"morning": 1, "afternoon": 0, "evening": 1, "night": 0}
    db.close()


def test_completion_time_is_recorded_on_the_log(session_factory):
    db, user = _setup(session_factory)
    today = local_today("UTC")
    habit = _new_habit(db, user, target_count=2)
    crud.record_habit_progress(db, user, habit.id, 1, now=dt.datetime.combine(today, dt.time(8, 0)))
    crud.record_habit_progress(db, user, habit.id, 1, now=dt.datetime.combine(today, dt.time(21, 15)))

    log = db.query(HabitLog).filter_by(habit_id=habit.id, day=today).one()
    assert log.completed_at == dt.datetime.combine(today, dt.time(21, 15))

    crud.record_habit_progress(db, user, habit.id, -1, now=dt.datetime.combine(today, dt.time(21, 20)))
    db.refresh(log)
    assert log.completed_at is None
    db.close()
