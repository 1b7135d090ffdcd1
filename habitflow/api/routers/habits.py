from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from habitflow import crud
from habitflow.api.deps import get_current_user, raise_for_error, require_api_key
from habitflow.db import get_db
from habitflow.models.habit import CATEGORY_VALUES
from habitflow.schemas.habits import (
    FeasibilityOut,
    HabitAnalyticsOut,
    HabitCandidate,
    HabitCreate,
    HabitCreateOut,
    HabitHistoryOut,
    HabitOut,
    HabitProgressIn,
    HabitStatusIn,
    HabitUpdate,
    RolloverIn,
    RolloverOut,
)
from habitflow.services.clock import local_today

router = APIRouter(prefix="/habits", tags=["habits"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=list[HabitOut])
def list_habits(
    category: str | None = Query(default=None),
    include_paused: bool = Query(default=True),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    if category is not None and category.lower() not in CATEGORY_VALUES:
        raise HTTPException(status_code=422, detail=f"category must be one of: {list(CATEGORY_VALUES)}")
    return crud.list_habits(
        db,
        user.id,
        category=category.lower() if category else None,
        include_paused=include_paused,
    )


@router.get("/today", response_model=list[HabitOut])
def list_today(db: Session = Depends(get_db), user=Depends(get_current_user)):
    return crud.list_habits_for_day(db, user.id, local_today(user.timezone))


@router.post("/feasibility", response_model=FeasibilityOut)
def check_feasibility(payload: HabitCandidate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    return crud.check_feasibility(db, user, payload)


@router.post("", response_model=HabitCreateOut)
def create_habit(payload: HabitCreate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    report = None
    if not payload.skip_feasibility_check:
        report = FeasibilityOut.model_validate(
            crud.check_feasibility(db, user, payload, override=payload.override_feasibility)
        )
        if not report.feasible:
            return HabitCreateOut(created=False, feasibility=report)
    result = crud.create_habit(db, user.id, payload)
    if not result.ok:
        raise_for_error(result.error)
    return HabitCreateOut(created=True, habit=HabitOut.model_validate(result.habit), feasibility=report)


@router.get("/analytics", response_model=HabitAnalyticsOut)
def get_analytics(
    days: int = Query(default=90, ge=1, le=366),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    return crud.habit_analytics(db, user.id, days, local_today(user.timezone))


@router.post("/rollover", response_model=RolloverOut)
def rollover(payload: RolloverIn, db: Session = Depends(get_db), user=Depends(get_current_user)):
    day = payload.day or local_today(user.timezone)
    habits = crud.rollover_user_habits(db, user, day)
    return RolloverOut(day=day, habits=[HabitOut.model_validate(h) for h in habits])


@router.get("/{habit_id}", response_model=HabitOut)
def get_habit(habit_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    habit = crud.get_habit(db, user.id, habit_id)
    if not habit:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit


@router.patch("/{habit_id}", response_model=HabitOut)
def patch_habit(habit_id: int, payload: HabitUpdate, db: Session = Depends(get_db), user=Depends(get_current_user)):
    result = crud.update_habit(db, user, habit_id, payload)
    if not result.ok:
        raise_for_error(result.error)
    return result.habit


@router.delete("/{habit_id}")
def delete_habit(habit_id: int, db: Session = Depends(get_db), user=Depends(get_current_user)):
    ok = crud.delete_habit(db, user.id, habit_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Habit not found")
    return {"ok": True}


@router.put("/{habit_id}/status", response_model=HabitOut)
def set_status(habit_id: int, payload: HabitStatusIn, db: Session = Depends(get_db), user=Depends(get_current_user)):
    result = crud.set_habit_status(db, user, habit_id, payload.status, expected_version=payload.expected_version)
    if not result.ok:
        raise_for_error(result.error)
    return result.habit


@router.post("/{habit_id}/progress", response_model=HabitOut)
def record_progress(
    habit_id: int,
    payload: HabitProgressIn,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    result = crud.record_habit_progress(
        db,
        user,
        habit_id,
        payload.delta,
        cycle=payload.cycle,
        expected_version=payload.expected_version,
    )
    if not result.ok:
        raise_for_error(result.error)
    return result.habit


@router.get("/{habit_id}/history", response_model=HabitHistoryOut)
def get_history(
    habit_id: int,
    days: int = Query(default=180, ge=1, le=366),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    habit = crud.get_habit(db, user.id, habit_id)
    if not habit:
        raise HTTPException(status_code=404, detail="Habit not found")
    return crud.habit_history(db, user.id, habit, days, local_today(user.timezone))
