from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class HabitError:
    code: str
    detail: str


@dataclass(frozen=True)
class ValidationFailed(HabitError):
    field: str | None = None


@dataclass(frozen=True)
class NotFound(HabitError):
    pass


@dataclass(frozen=True)
class VersionConflict(HabitError):
    current_version: int | None = None


def validation_failed(detail: str, field: str | None = None) -> ValidationFailed:
    return ValidationFailed(code="validation_failed", detail=detail, field=field)


def not_found(habit_id: int) -> NotFound:
    return NotFound(code="not_found", detail=f"Habit {habit_id} not found")


def version_conflict(expected: int, current: int) -> VersionConflict:
    return VersionConflict(
        code="version_conflict",
        detail=f"Habit was modified (expected version {expected}, current {current})",
        current_version=current,
    )


@dataclass(frozen=True)
class LedgerResult:
    habit: Any = None
    error: HabitError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, habit) -> "LedgerResult":
        return cls(habit=habit)

    @classmethod
    def failure(cls, error: HabitError) -> "LedgerResult":
        return cls(error=error)
