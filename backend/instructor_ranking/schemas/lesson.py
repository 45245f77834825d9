# backend/instructor_ranking/schemas/lesson.py
"""
Lesson and review event payloads consumed by the stats aggregator.

Ratings are deliberately unconstrained here: an out-of-range rating is
input the aggregator must reject (or skip during recalculation), not a
payload parse error.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import LessonStatus
from ..core.ulid_helper import generate_ulid
from ..domain.review_moderation import ReviewState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_ulid)
    student_id: Optional[str] = None
    rating: int
    comment: Optional[str] = Field(None, max_length=2000)
    created_at: datetime = Field(default_factory=_utcnow)
    is_approved: Optional[bool] = None
    is_hidden: Optional[bool] = None

    @property
    def state(self) -> ReviewState:
        return ReviewState.from_flags(self.is_approved, self.is_hidden)


class LessonRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    instructor_id: str
    student_ids: List[str] = Field(default_factory=list)
    price: Decimal = Decimal("0")
    status: LessonStatus
    completed_at: Optional[datetime] = None
    student_reviews: List[ReviewRecord] = Field(default_factory=list)

    @classmethod
    def from_orm_lesson(cls, lesson: Any) -> "LessonRecord":
        """Convert a `Lesson` row (with its reviews) into an event payload."""
        return cls(
            id=lesson.id,
            instructor_id=lesson.instructor_id,
            student_ids=list(lesson.student_ids or []),
            price=Decimal(str(lesson.price if lesson.price is not None else 0)),
            status=LessonStatus(lesson.status),
            completed_at=lesson.completed_at,
            student_reviews=[ReviewRecord.model_validate(review) for review in lesson.reviews],
        )
