# backend/instructor_ranking/models/instructor_stats.py
"""
Per-instructor performance record and its aggregation ledgers.

Design notes:
- One `instructor_stats` row per instructor, created lazily and never deleted
- Raw counters are only ever changed with `col = col + :delta` updates
- Derived fields (average, rates, score, tier, badges) are recomputed from the
  post-increment counters in the same transaction
- The ledger tables record which lessons, reviews and students have already
  been counted so replayed events are no-ops
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
)

from ..core.enums import InstructorTier
from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_season(season: str | None = None) -> dict:
    return {"season": season, "lessons": 0, "earnings": 0.0, "rating": 0.0, "rating_sum": 0, "reviews": 0}


def empty_seasonal_stats() -> dict:
    return {"current_season": empty_season(), "previous_season": empty_season()}


class InstructorStats(Base):
    """Aggregated performance metrics for one instructor."""

    __tablename__ = "instructor_stats"

    instructor_id = Column(String(64), primary_key=True)

    # Raw counters
    total_lessons = Column(Integer, nullable=False, default=0)
    cancelled_lessons = Column(Integer, nullable=False, default=0)
    total_students = Column(Integer, nullable=False, default=0)
    repeat_students = Column(Integer, nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    positive_reviews = Column(Integer, nullable=False, default=0)
    rating_sum = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    # Running metrics (recomputed from counters)
    average_rating = Column(Float, nullable=False, default=0.0)
    completion_rate = Column(Float, nullable=False, default=100.0)
    repeat_student_rate = Column(Float, nullable=False, default=0.0)
    lesson_success_rate = Column(Float, nullable=False, default=0.0)
    response_time_hours = Column(Float, nullable=False, default=0.0)

    # Derived
    performance_score = Column(Integer, nullable=False, default=0)
    tier = Column(String(16), nullable=False, default=InstructorTier.BRONZE.value)
    badges = Column(JSON, nullable=False, default=list)
    seasonal_stats = Column(JSON, nullable=False, default=empty_seasonal_stats)

    # Ranking (written only by the ranking pass)
    rank = Column(Integer, nullable=True)
    previous_rank = Column(Integer, nullable=True)
    rank_change = Column(Integer, nullable=False, default=0)
    ranking_dirty = Column(Boolean, nullable=False, default=True)
    # Bumped by every stats mutation; the ranking pass only clears the dirty
    # marker on rows whose version it actually ordered.
    stats_version = Column(Integer, nullable=False, default=0)

    last_updated = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        CheckConstraint("total_lessons >= 0", name="ck_instructor_stats_lessons"),
        CheckConstraint("total_reviews >= 0", name="ck_instructor_stats_reviews"),
        CheckConstraint("total_students >= 0", name="ck_instructor_stats_students"),
        CheckConstraint("total_earnings >= 0", name="ck_instructor_stats_earnings"),
        CheckConstraint(
            "performance_score >= 0 AND performance_score <= 100",
            name="ck_instructor_stats_score_range",
        ),
        Index(
            "idx_instructor_stats_ranking_order",
            "performance_score",
            "total_lessons",
            "instructor_id",
        ),
        Index("idx_instructor_stats_dirty", "ranking_dirty"),
    )


class CountedLesson(Base):
    """A lesson whose completion (or cancellation) has been applied to stats."""

    __tablename__ = "instructor_stats_lessons"

    lesson_id = Column(String(64), primary_key=True)
    instructor_id = Column(String(64), nullable=False, index=True)
    outcome = Column(String(16), nullable=False)
    counted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class CountedReview(Base):
    """A review whose rating has been merged into the aggregate."""

    __tablename__ = "instructor_stats_reviews"

    review_id = Column(String(64), primary_key=True)
    instructor_id = Column(String(64), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    counted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class InstructorStudent(Base):
    """Distinct student taught by an instructor, with completed-lesson count."""

    __tablename__ = "instructor_students"

    instructor_id = Column(String(64), primary_key=True)
    student_id = Column(String(64), primary_key=True)
    lesson_count = Column(Integer, nullable=False, default=0)
