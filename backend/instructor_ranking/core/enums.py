# backend/instructor_ranking/core/enums.py
"""
Core enums for the instructor ranking engine.

These enums are stored as plain strings in the database and serialized
as their values in API responses.
"""

from enum import Enum


class LessonStatus(str, Enum):
    """Lifecycle of a lesson in the Lesson Store."""

    AVAILABLE = "available"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InstructorTier(str, Enum):
    """
    Ordered classification derived from the performance score.

    Members compare by level, not alphabetically:
    bronze < silver < gold < platinum < diamond.
    """

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"

    @property
    def level(self) -> int:
        return _TIER_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, InstructorTier):
            return NotImplemented
        return self.level < other.level

    def __le__(self, other: object) -> bool:
        if not isinstance(other, InstructorTier):
            return NotImplemented
        return self.level <= other.level

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, InstructorTier):
            return NotImplemented
        return self.level > other.level

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, InstructorTier):
            return NotImplemented
        return self.level >= other.level


_TIER_ORDER = [
    InstructorTier.BRONZE,
    InstructorTier.SILVER,
    InstructorTier.GOLD,
    InstructorTier.PLATINUM,
    InstructorTier.DIAMOND,
]


class ModerationAction(str, Enum):
    """Instructor-initiated review moderation actions."""

    APPROVE = "approve"
    HIDE = "hide"
