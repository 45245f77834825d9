# backend/instructor_ranking/services/review_moderation_service.py
"""
ReviewModerationService: review submission and moderation on lesson reviews.

New reviews are written pending and merged into instructor stats in the same
transaction; instructors then approve or hide them.

Moderation only controls public visibility. Instructor aggregates keep
counting every review whatever its state, so moderating never touches stats.
"""

from __future__ import annotations

from typing import Dict, List

from sqlalchemy.orm import Session

from ..core.enums import ModerationAction
from ..core.exceptions import (
    ConflictException,
    InvalidRatingException,
    NotFoundException,
    ValidationException,
)
from ..domain.review_moderation import NEW_REVIEW_FLAGS, ReviewState, apply_action
from ..models.lesson import LessonReview
from ..repositories.lesson_repository import LessonRepository
from ..schemas.lesson import ReviewRecord
from ..schemas.review import ModerateReviewResponse, ReviewItem, ReviewPartitionsResponse
from .base import BaseService
from .instructor_stats_service import InstructorStatsService, is_valid_rating


def _to_item(review: LessonReview) -> ReviewItem:
    return ReviewItem(
        id=review.id,
        lesson_id=review.lesson_id,
        student_id=review.student_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        state=review.state,
    )


class ReviewModerationService(BaseService):
    """Service layer for review moderation."""

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = LessonRepository(db)
        self.stats_service = InstructorStatsService(db)

    @BaseService.measure_operation("submit_review")
    def submit_review(self, lesson_id: str, record: ReviewRecord) -> ReviewItem:
        """
        Attach a new review to a lesson and merge it into the instructor's stats.

        New reviews start pending. The review row and the stats merge are one
        transaction: both are persisted or neither is.

        Raises:
            InvalidRatingException: rating outside 1-5
            NotFoundException: unknown lesson id
            ConflictException: a review with this id already exists
        """
        if not is_valid_rating(record.rating):
            raise InvalidRatingException(record.rating, record.id)

        with self.transaction():
            lesson = self.repository.get_by_id(lesson_id)
            if lesson is None:
                raise NotFoundException(
                    "Lesson not found", code="LESSON_NOT_FOUND", details={"lesson_id": lesson_id}
                )
            if self.repository.get_review(record.id) is not None:
                raise ConflictException(
                    "Review already exists",
                    code="REVIEW_ALREADY_EXISTS",
                    details={"review_id": record.id},
                )
            review = self.repository.add_review(
                lesson,
                review_id=record.id,
                student_id=record.student_id,
                rating=record.rating,
                comment=record.comment,
                created_at=record.created_at,
                flags=NEW_REVIEW_FLAGS,
            )
            item = _to_item(review)
            merged = self.stats_service.merge_review(
                lesson.instructor_id,
                record.model_copy(update={"is_approved": False, "is_hidden": False}),
            )

        self.log_operation(
            "submit_review", lesson_id=lesson_id, review_id=item.id, stats_merged=merged
        )
        return item

    @BaseService.measure_operation("moderate_review")
    def moderate_review(self, review_id: str, action: ModerationAction | str) -> ModerateReviewResponse:
        """
        Approve or hide a review.

        Raises:
            ValidationException: unknown action
            NotFoundException: unknown review id
        """
        try:
            action = ModerationAction(action)
        except ValueError:
            raise ValidationException(
                f"Unknown moderation action: {action}",
                code="INVALID_MODERATION_ACTION",
                details={"action": str(action), "allowed": [a.value for a in ModerationAction]},
            )

        with self.transaction():
            review = self.repository.get_review(review_id)
            if review is None:
                raise NotFoundException(
                    "Review not found", code="REVIEW_NOT_FOUND", details={"review_id": review_id}
                )
            previous_state = review.state
            new_state = apply_action(previous_state, action)
            self.repository.set_review_flags(review, new_state.to_flags())
            item = _to_item(review)

        self.log_operation(
            "moderate_review",
            review_id=review_id,
            action=action.value,
            previous_state=previous_state.value,
            new_state=new_state.value,
        )
        return ModerateReviewResponse(review=item, previous_state=previous_state)

    @BaseService.measure_operation("list_reviews_by_state")
    def list_reviews_by_state(self, instructor_id: str) -> ReviewPartitionsResponse:
        """Partition an instructor's reviews into public, pending and hidden."""
        with self.transaction():
            reviews = self.repository.list_reviews_for_instructor(instructor_id)
            partitions: Dict[ReviewState, List[ReviewItem]] = {state: [] for state in ReviewState}
            for review in reviews:
                partitions[review.state].append(_to_item(review))

        return ReviewPartitionsResponse(
            instructor_id=instructor_id,
            public=partitions[ReviewState.APPROVED],
            pending=partitions[ReviewState.PENDING],
            hidden=partitions[ReviewState.HIDDEN],
        )
