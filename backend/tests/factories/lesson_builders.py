"""Builders for lesson/review payloads and Lesson Store rows."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from instructor_ranking.core.enums import LessonStatus
from instructor_ranking.core.ulid_helper import generate_ulid
from instructor_ranking.models.lesson import Lesson, LessonReview
from instructor_ranking.models.user import User
from instructor_ranking.schemas.lesson import LessonRecord, ReviewRecord


def make_review(
    rating: int,
    *,
    review_id: Optional[str] = None,
    student_id: str = "student-1",
    created_at: Optional[datetime] = None,
    is_approved: Optional[bool] = None,
    is_hidden: Optional[bool] = None,
) -> ReviewRecord:
    return ReviewRecord(
        id=review_id or generate_ulid(),
        student_id=student_id,
        rating=rating,
        created_at=created_at or datetime(2025, 12, 1, 12, 0, tzinfo=timezone.utc),
        is_approved=is_approved,
        is_hidden=is_hidden,
    )


def make_lesson(
    lesson_id: str,
    instructor_id: str = "inst-a",
    *,
    student_ids: Iterable[str] = ("student-1",),
    price: str = "100.00",
    status: LessonStatus = LessonStatus.COMPLETED,
    reviews: Iterable[ReviewRecord] = (),
    completed_at: Optional[datetime] = None,
) -> LessonRecord:
    return LessonRecord(
        id=lesson_id,
        instructor_id=instructor_id,
        student_ids=list(student_ids),
        price=Decimal(price),
        status=status,
        completed_at=completed_at or datetime(2025, 12, 1, 10, 0, tzinfo=timezone.utc),
        student_reviews=list(reviews),
    )


def store_lesson(db, record: LessonRecord) -> Lesson:
    """Persist a LessonRecord (and its reviews) into the Lesson Store tables."""
    lesson = Lesson(
        id=record.id,
        instructor_id=record.instructor_id,
        student_ids=list(record.student_ids),
        price=record.price,
        status=record.status.value,
        completed_at=record.completed_at,
    )
    for position, review in enumerate(record.student_reviews):
        lesson.reviews.append(
            LessonReview(
                id=review.id,
                student_id=review.student_id,
                rating=review.rating,
                comment=review.comment,
                position=position,
                created_at=review.created_at,
                is_approved=review.is_approved,
                is_hidden=review.is_hidden,
            )
        )
    db.add(lesson)
    db.commit()
    return lesson


def store_user(db, user_id: str, name: Optional[str] = None, years: Optional[int] = None) -> User:
    user = User(id=user_id, name=name, years_of_experience=years)
    db.add(user)
    db.commit()
    return user
