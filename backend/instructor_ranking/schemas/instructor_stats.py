# backend/instructor_ranking/schemas/instructor_stats.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import InstructorTier
from .base import OrmModel, StrictModel


class SeasonStats(StrictModel):
    season: Optional[str] = None
    start_year: Optional[int] = None
    lessons: int = 0
    earnings: float = 0.0
    rating: float = 0.0
    rating_sum: int = 0
    reviews: int = 0


class SeasonalStats(StrictModel):
    current_season: SeasonStats = Field(default_factory=SeasonStats)
    previous_season: SeasonStats = Field(default_factory=SeasonStats)


class InstructorStatsResponse(OrmModel):
    """Persisted (or estimated) performance record of one instructor."""

    instructor_id: str
    total_lessons: int
    total_students: int
    total_reviews: int
    cancelled_lessons: int = 0
    repeat_students: int = 0
    positive_reviews: int = 0
    average_rating: float
    total_earnings: float
    completion_rate: float
    repeat_student_rate: float
    lesson_success_rate: float
    response_time_hours: float
    performance_score: int = Field(..., ge=0, le=100)
    tier: InstructorTier
    badges: List[str] = Field(default_factory=list)
    seasonal_stats: SeasonalStats = Field(default_factory=SeasonalStats)
    rank: Optional[int] = None
    previous_rank: Optional[int] = None
    rank_change: int = 0
    last_updated: Optional[datetime] = None
    is_estimate: bool = False

    @field_validator("badges", mode="before")
    @classmethod
    def _sorted_badges(cls, v: object) -> List[str]:
        return sorted(v or [])  # type: ignore[arg-type]


class BadgesResponse(StrictModel):
    instructor_id: str
    badges: List[str]


class InstructorRankingItem(StrictModel):
    rank: int
    instructor_id: str
    name: str
    avatar_url: Optional[str] = None
    performance_score: int
    tier: InstructorTier
    total_lessons: int
    average_rating: float
    badges: List[str] = Field(default_factory=list)
    previous_rank: Optional[int] = None
    rank_change: int = 0


class TopInstructorsResponse(StrictModel):
    instructors: List[InstructorRankingItem]
    total: int


class RankingPassResult(StrictModel):
    status: str = Field(..., pattern="^(completed|clean|locked)$")
    instructors: int = 0
    rank_changes: int = 0
    cleared: int = 0


class RecalculateResponse(StrictModel):
    instructor_id: str
    lessons_replayed: int
    lessons_skipped: int
    reviews_skipped: int
    stats: InstructorStatsResponse


class MutationResponse(StrictModel):
    instructor_id: str
    applied: bool
    stats: Optional[InstructorStatsResponse] = None


class InstructorRankResponse(StrictModel):
    instructor_id: str
    rank: Optional[int] = None
