from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habitflow import crud
from habitflow.api.deps import get_current_user, require_api_key
from habitflow.db import get_db
from habitflow.schemas.mood import MoodIn, MoodOut
from habitflow.services.clock import local_today

router = APIRouter(prefix="/mood", tags=["mood"], dependencies=[Depends(require_api_key)])


@router.post("", response_model=MoodOut)
def save_mood(payload: MoodIn, db: Session = Depends(get_db), user=Depends(get_current_user)):
    day = local_today(user.timezone)
    return crud.upsert_mood(db, user.id, day, mood=payload.mood, motivation=payload.motivation)


@router.get("/today", response_model=MoodOut | None)
def get_today(db: Session = Depends(get_db), user=Depends(get_current_user)):
    return crud.get_mood(db, user.id, local_today(user.timezone))


@router.get("/history", response_model=list[MoodOut])
def get_history(
    limit: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    return crud.list_moods(db, user.id, limit)
