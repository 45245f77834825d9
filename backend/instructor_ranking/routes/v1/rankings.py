# backend/instructor_ranking/routes/v1/rankings.py
"""
Ranking routes - API v1

Endpoints:
    GET /top                         → Top instructors by performance
    POST /refresh                    → Run the full ranking pass now
    POST /{instructor_id}/refresh    → Re-rank a single instructor
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.config import settings
from ...database import get_db
from ...schemas.instructor_stats import (
    InstructorRankResponse,
    RankingPassResult,
    TopInstructorsResponse,
)
from ...services.ranking_service import RankingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rankings-v1"])


def get_ranking_service(db: Session = Depends(get_db)) -> RankingService:
    return RankingService(db)


@router.get("/top", response_model=TopInstructorsResponse)
def get_top_instructors(
    limit: Optional[int] = Query(None, ge=1, le=settings.top_instructors_max_limit),
    service: RankingService = Depends(get_ranking_service),
) -> TopInstructorsResponse:
    instructors = service.top_instructors(limit)
    return TopInstructorsResponse(instructors=instructors, total=len(instructors))


@router.post("/refresh", response_model=RankingPassResult)
def refresh_rankings(service: RankingService = Depends(get_ranking_service)) -> RankingPassResult:
    """Order every instructor and persist ranks, whether or not anything is dirty."""
    return service.run_ranking_pass()


@router.post("/{instructor_id}/refresh", response_model=InstructorRankResponse)
def refresh_instructor_rank(
    instructor_id: str,
    service: RankingService = Depends(get_ranking_service),
) -> InstructorRankResponse:
    return InstructorRankResponse(
        instructor_id=instructor_id, rank=service.refresh_ranking(instructor_id)
    )
