"""Repository layer: all SQL lives here, services own the transactions."""

from .base_repository import BaseRepository
from .instructor_stats_repository import InstructorStatsRepository
from .lesson_repository import LessonRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "InstructorStatsRepository",
    "LessonRepository",
    "UserRepository",
]
