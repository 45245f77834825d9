"""SQLAlchemy models; importing this package registers every table on Base.metadata."""

from .instructor_stats import CountedLesson, CountedReview, InstructorStats, InstructorStudent
from .lesson import Lesson, LessonReview
from .user import User

__all__ = [
    "CountedLesson",
    "CountedReview",
    "InstructorStats",
    "InstructorStudent",
    "Lesson",
    "LessonReview",
    "User",
]
