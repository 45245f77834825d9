# backend/instructor_ranking/repositories/lesson_repository.py
"""
Lesson Store access: lessons by instructor/status and review moderation flags.

Follows repository pattern: no business logic, DB-only operations.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.enums import LessonStatus
from ..core.exceptions import RepositoryException
from ..domain.review_moderation import ModerationFlags
from ..models.lesson import Lesson, LessonReview
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LessonRepository(BaseRepository[Lesson]):
    """Data access for `Lesson` and its `LessonReview` rows."""

    def __init__(self, db: Session):
        super().__init__(db, Lesson)

    def list_for_instructor(
        self, instructor_id: str, statuses: Optional[Iterable[LessonStatus]] = None
    ) -> List[Lesson]:
        """Lessons of an instructor in creation order, reviews eagerly loaded."""
        query = (
            self._build_query()
            .options(selectinload(Lesson.reviews))
            .filter(Lesson.instructor_id == instructor_id)
        )
        if statuses is not None:
            query = query.filter(Lesson.status.in_([LessonStatus(s).value for s in statuses]))
        return self._execute_query(query.order_by(Lesson.created_at.asc(), Lesson.id.asc()))

    def get_review(self, review_id: str) -> Optional[LessonReview]:
        try:
            return (
                self.db.query(LessonReview)
                .options(selectinload(LessonReview.lesson))
                .filter(LessonReview.id == review_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching review {review_id}: {e}")
            raise RepositoryException(f"Failed to fetch review: {e}")

    def list_reviews_for_instructor(self, instructor_id: str) -> List[LessonReview]:
        """Reviews across all of an instructor's lessons, newest first."""
        query = (
            self.db.query(LessonReview)
            .join(Lesson, Lesson.id == LessonReview.lesson_id)
            .filter(Lesson.instructor_id == instructor_id)
            .order_by(LessonReview.created_at.desc(), LessonReview.id.desc())
        )
        return self._execute_query(query)

    def set_review_flags(self, review: LessonReview, flags: ModerationFlags) -> LessonReview:
        review.is_approved, review.is_hidden = flags
        self.flush()
        return review

    def add_review(
        self,
        lesson: Lesson,
        *,
        review_id: str,
        student_id: Optional[str],
        rating: int,
        comment: Optional[str],
        created_at: datetime,
        flags: ModerationFlags,
    ) -> LessonReview:
        """Append a review after the lesson's existing ones."""
        is_approved, is_hidden = flags
        review = LessonReview(
            id=review_id,
            lesson_id=lesson.id,
            student_id=student_id,
            rating=rating,
            comment=comment,
            position=len(lesson.reviews),
            created_at=created_at,
            is_approved=is_approved,
            is_hidden=is_hidden,
        )
        lesson.reviews.append(review)
        self.flush()
        return review
