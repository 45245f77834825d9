# backend/instructor_ranking/routes/v1/reviews.py
"""
Review routes - API v1

Endpoints:
    POST /lessons/{lesson_id}          → Submit a review (starts pending)
    GET /instructor/{instructor_id}    → Reviews partitioned by moderation state
    POST /{review_id}/moderate         → Approve or hide a review
"""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...schemas.lesson import ReviewRecord
from ...schemas.review import (
    ModerateReviewRequest,
    ModerateReviewResponse,
    ReviewItem,
    ReviewPartitionsResponse,
)
from ...services.review_moderation_service import ReviewModerationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews-v1"])


def get_review_moderation_service(db: Session = Depends(get_db)) -> ReviewModerationService:
    return ReviewModerationService(db)


@router.post("/lessons/{lesson_id}", response_model=ReviewItem)
def submit_review(
    lesson_id: str,
    review: ReviewRecord = Body(...),
    service: ReviewModerationService = Depends(get_review_moderation_service),
) -> ReviewItem:
    """Attach a pending review to a lesson and count it in the instructor's stats."""
    return service.submit_review(lesson_id, review)


@router.get("/instructor/{instructor_id}", response_model=ReviewPartitionsResponse)
def list_instructor_reviews(
    instructor_id: str,
    service: ReviewModerationService = Depends(get_review_moderation_service),
) -> ReviewPartitionsResponse:
    """Public, pending and hidden reviews of an instructor; only `public` is shown to visitors."""
    return service.list_reviews_by_state(instructor_id)


@router.post("/{review_id}/moderate", response_model=ModerateReviewResponse)
def moderate_review(
    review_id: str,
    payload: ModerateReviewRequest = Body(...),
    service: ReviewModerationService = Depends(get_review_moderation_service),
) -> ModerateReviewResponse:
    return service.moderate_review(review_id, payload.action)
