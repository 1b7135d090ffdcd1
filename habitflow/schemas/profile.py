from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from habitflow.services.clock import is_valid_zone


class ProfileOut(BaseModel):
    id: int
    external_id: str
    display_name: str | None
    timezone: str
    is_vacation: bool
    is_active: bool
    streak: int
    longest_streak: int

    class Config:
        from_attributes = True


class ProfilePatch(BaseModel):
    display_name: str | None = Field(default=None, max_length=120)
    timezone: str | None = Field(default=None, max_length=64)
    is_vacation: bool | None = None

    @field_validator("timezone")
    @classmethod
    def _timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not is_valid_zone(v):
            raise ValueError("timezone must be an IANA zone name, e.g. Europe/Berlin")
        return v
