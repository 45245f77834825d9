# backend/instructor_ranking/models/lesson.py
"""
Lesson Store models.

Lessons are owned by the booking side of the platform; this engine reads them
and, for moderation only, writes the (is_approved, is_hidden) pair on reviews.

Design notes:
- ULID string IDs for reviews
- Moderation flags are nullable: reviews written before moderation existed
  carry neither flag and decode as approved (see ReviewState.from_flags)
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.enums import LessonStatus
from ..core.ulid_helper import generate_ulid
from ..domain.review_moderation import ReviewState
from ..database import Base


class Lesson(Base):
    """A scheduled or completed lesson taught by one instructor."""

    __tablename__ = "lessons"

    id = Column(String(64), primary_key=True, default=generate_ulid)
    instructor_id = Column(String(64), nullable=False, index=True)
    student_ids = Column(JSON, nullable=False, default=list)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    status = Column(String(16), nullable=False, default=LessonStatus.SCHEDULED.value)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    reviews = relationship(
        "LessonReview",
        back_populates="lesson",
        order_by="LessonReview.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_lessons_instructor_status", "instructor_id", "status"),)


class LessonReview(Base):
    """Student review attached to a lesson."""

    __tablename__ = "lesson_reviews"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    lesson_id = Column(String(64), ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(64), nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Moderation (NULL means "never set")
    is_approved = Column(Boolean, nullable=True)
    is_hidden = Column(Boolean, nullable=True)

    lesson = relationship("Lesson", back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_lesson_reviews_rating_range"),
    )

    @property
    def state(self) -> ReviewState:
        return ReviewState.from_flags(self.is_approved, self.is_hidden)

    @property
    def instructor_id(self) -> str | None:
        return self.lesson.instructor_id if self.lesson is not None else None
