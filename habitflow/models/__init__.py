from .base import Base
from .habit import Habit, HabitLog
from .mood import MoodEntry
from .user import User

__all__ = [
    "Base",
    "User",
    "Habit",
    "HabitLog",
    "MoodEntry",
]
