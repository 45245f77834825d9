# backend/instructor_ranking/schemas/review.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import ModerationAction
from ..domain.review_moderation import ReviewState
from .base import OrmModel, StrictModel, StrictRequestModel


class ModerateReviewRequest(StrictRequestModel):
    # Plain string: unknown actions are rejected by the service as a 400
    action: str = Field(..., examples=[ModerationAction.APPROVE.value, ModerationAction.HIDE.value])


class ReviewItem(OrmModel):
    id: str
    lesson_id: str
    student_id: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    state: ReviewState


class ModerateReviewResponse(StrictModel):
    review: ReviewItem
    previous_state: ReviewState


class ReviewPartitionsResponse(StrictModel):
    instructor_id: str
    public: List[ReviewItem]
    pending: List[ReviewItem]
    hidden: List[ReviewItem]
