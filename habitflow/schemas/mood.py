from __future__ import annotations

import datetime as dt
from pydantic import BaseModel, Field, field_validator

from habitflow.models.mood import MOOD_VALUES


class MoodIn(BaseModel):
    mood: str
    motivation: str | None = Field(default=None, max_length=300)

    @field_validator("mood")
    @classmethod
    def _mood(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in MOOD_VALUES:
            raise ValueError(f"mood must be one of: {list(MOOD_VALUES)}")
        return v


class MoodOut(BaseModel):
    day: dt.date
    mood: str
    motivation: str | None
    created_at: dt.datetime

    class Config:
        from_attributes = True
