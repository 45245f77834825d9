# backend/instructor_ranking/routes/v1/instructor_stats.py
"""
Instructor stats routes - API v1

Versioned stats endpoints under /api/v1/instructors.
All business logic delegated to InstructorStatsService.

Endpoints:
    POST /stats/lesson-completed              → Apply a completed lesson
    POST /stats/lesson-cancelled              → Apply a cancelled lesson
    GET /{instructor_id}/stats                → Stats (or estimated stats)
    GET /{instructor_id}/badges               → Current badges
    POST /{instructor_id}/stats/reviews       → Merge a single review
    POST /{instructor_id}/stats/recalculate   → Rebuild from the Lesson Store
"""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...schemas.instructor_stats import (
    BadgesResponse,
    InstructorStatsResponse,
    MutationResponse,
    RecalculateResponse,
)
from ...schemas.lesson import LessonRecord, ReviewRecord
from ...services.instructor_stats_service import InstructorStatsService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["instructor-stats-v1"])


def get_instructor_stats_service(db: Session = Depends(get_db)) -> InstructorStatsService:
    return InstructorStatsService(db)


def _mutation_response(
    service: InstructorStatsService, instructor_id: str, applied: bool
) -> MutationResponse:
    stats = service.get_instructor_stats(instructor_id)
    return MutationResponse(
        instructor_id=instructor_id,
        applied=applied,
        stats=InstructorStatsResponse.model_validate(stats) if stats is not None else None,
    )


# =============================================================================
# Static routes first (before dynamic routes with path parameters)
# =============================================================================


@router.post("/stats/lesson-completed", response_model=MutationResponse)
def lesson_completed(
    lesson: LessonRecord = Body(...),
    service: InstructorStatsService = Depends(get_instructor_stats_service),
) -> MutationResponse:
    """Apply a completed lesson. Replaying the same lesson is a no-op (applied=false)."""
    applied = service.on_lesson_completed(lesson)
    return _mutation_response(service, lesson.instructor_id, applied)


@router.post("/stats/lesson-cancelled", response_model=MutationResponse)
def lesson_cancelled(
    lesson: LessonRecord = Body(...),
    service: InstructorStatsService = Depends(get_instructor_stats_service),
) -> MutationResponse:
    applied = service.on_lesson_cancelled(lesson)
    return _mutation_response(service, lesson.instructor_id, applied)


# =============================================================================
# Dynamic routes with path parameters
# =============================================================================


@router.get("/{instructor_id}/stats", response_model=InstructorStatsResponse)
def get_stats(
    instructor_id: str,
    service: InstructorStatsService = Depends(get_instructor_stats_service),
) -> InstructorStatsResponse:
    """
    Get an instructor's performance stats.

    Instructors without a record get an estimate (is_estimate=true)
    instead of a 404.
    """
    return service.get_stats_view(instructor_id)


@router.get("/{instructor_id}/badges", response_model=BadgesResponse)
def get_badges(
    instructor_id: str,
    service: InstructorStatsService = Depends(get_instructor_stats_service),
) -> BadgesResponse:
    return BadgesResponse(
        instructor_id=instructor_id, badges=sorted(service.calculate_badges(instructor_id))
    )


@router.post("/{instructor_id}/stats/reviews", response_model=MutationResponse)
def add_review(
    instructor_id: str,
    review: ReviewRecord = Body(...),
    service: InstructorStatsService = Depends(get_instructor_stats_service),
) -> MutationResponse:
    applied = service.on_review_added(instructor_id, review)
    return _mutation_response(service, instructor_id, applied)


@router.post("/{instructor_id}/stats/recalculate", response_model=RecalculateResponse)
def recalculate(
    instructor_id: str,
    service: InstructorStatsService = Depends(get_instructor_stats_service),
) -> RecalculateResponse:
    """Rebuild stats from every completed and cancelled lesson in the Lesson Store."""
    result = service.recalculate_from_store(instructor_id)
    return RecalculateResponse(
        instructor_id=instructor_id,
        lessons_replayed=result.lessons_replayed,
        lessons_skipped=result.lessons_skipped,
        reviews_skipped=result.reviews_skipped,
        stats=InstructorStatsResponse.model_validate(result.stats),
    )
