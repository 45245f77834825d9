"""Application-wide constants for the instructor ranking engine."""

from __future__ import annotations

BRAND_NAME = "InstaInstru"

# Stats defaults
DEFAULT_COMPLETION_RATE = 100.0
POSITIVE_REVIEW_THRESHOLD = 4
MIN_RATING = 1
MAX_RATING = 5

# Estimated stats (shown before an instructor's first completed lesson)
ESTIMATED_LESSONS_PER_YEAR = 50
ESTIMATED_STUDENTS_PER_YEAR = 30
ESTIMATED_REVIEWS_PER_YEAR = 20
ESTIMATED_AVERAGE_RATING = 4.5
ESTIMATED_PRICE_PER_LESSON = 100

UNKNOWN_INSTRUCTOR_NAME = "Unknown Instructor"
