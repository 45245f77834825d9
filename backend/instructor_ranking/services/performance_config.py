# backend/instructor_ranking/services/performance_config.py
"""Score weights, tier thresholds and badge ladders."""

from dataclasses import dataclass
from typing import Final, Tuple

BadgeLadder = Tuple[Tuple[float, str], ...]


@dataclass(frozen=True)
class PerformanceConfig:
    # Composite score weights (sum to 100)
    rating_weight: float = 30.0
    experience_weight: float = 20.0
    completion_weight: float = 15.0
    repeat_weight: float = 15.0
    success_weight: float = 10.0
    response_weight: float = 10.0

    # Lessons needed for the full experience component
    experience_full_lessons: int = 100
    # Response time (hours) at which the response component reaches zero
    response_window_hours: float = 24.0

    # Defaults for metrics missing from the input
    default_completion_rate: float = 100.0

    # Tier thresholds, highest first
    tier_thresholds: Tuple[Tuple[int, str], ...] = (
        (90, "diamond"),
        (80, "platinum"),
        (70, "gold"),
        (60, "silver"),
    )

    # Badge ladders, highest rung first; each ladder awards at most one badge
    lesson_badges: BadgeLadder = (
        (1000, "Lesson Master"),
        (500, "Experienced Guide"),
        (100, "Dedicated Instructor"),
    )
    rating_badges: BadgeLadder = (
        (4.8, "Excellence Award"),
        (4.5, "High Performer"),
        (4.0, "Quality Instructor"),
    )
    student_badges: BadgeLadder = (
        (500, "Student Favorite"),
        (200, "Popular Instructor"),
        (50, "Growing Following"),
    )
    earnings_badges: BadgeLadder = (
        (50000, "Top Earner"),
        (25000, "High Earner"),
        (10000, "Established"),
    )
    performance_badges: BadgeLadder = (
        (90, "Elite Instructor"),
        (80, "Premium Guide"),
        (70, "Professional"),
    )

    @property
    def total_weight(self) -> float:
        return (
            self.rating_weight
            + self.experience_weight
            + self.completion_weight
            + self.repeat_weight
            + self.success_weight
            + self.response_weight
        )


DEFAULT_PERFORMANCE_CONFIG: Final = PerformanceConfig()
