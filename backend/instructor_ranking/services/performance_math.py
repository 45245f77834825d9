# backend/instructor_ranking/services/performance_math.py
"""
Pure scoring functions: composite performance score, tier and badges.

No I/O and no clock; the stats service feeds in counters read from the
store and persists what comes back. Weights, thresholds and badge ladders
come from a `PerformanceConfig` so callers can score with other settings.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Mapping, Optional

from ..core.enums import InstructorTier
from .performance_config import DEFAULT_PERFORMANCE_CONFIG, BadgeLadder, PerformanceConfig


@dataclass(frozen=True)
class PerformanceMetrics:
    """Inputs of the composite score and the badge ladders."""

    average_rating: float = 0.0
    total_lessons: int = 0
    completion_rate: float = 100.0
    repeat_student_rate: float = 0.0
    lesson_success_rate: float = 0.0
    response_time_hours: float = 0.0
    total_students: int = 0
    total_earnings: float = 0.0
    performance_score: Optional[int] = None

    @classmethod
    def from_mapping(
        cls, values: Mapping[str, Any], config: PerformanceConfig = DEFAULT_PERFORMANCE_CONFIG
    ) -> "PerformanceMetrics":
        """Build metrics from a partial mapping; missing or None entries take defaults."""

        def _get(key: str, default: Any) -> Any:
            value = values.get(key)
            return default if value is None else value

        return cls(
            average_rating=float(_get("average_rating", 0.0)),
            total_lessons=int(_get("total_lessons", 0)),
            completion_rate=float(_get("completion_rate", config.default_completion_rate)),
            repeat_student_rate=float(_get("repeat_student_rate", 0.0)),
            lesson_success_rate=float(_get("lesson_success_rate", 0.0)),
            response_time_hours=float(_get("response_time_hours", 0.0)),
            total_students=int(_get("total_students", 0)),
            total_earnings=float(_get("total_earnings", 0.0)),
            performance_score=values.get("performance_score"),
        )

    @classmethod
    def from_stats(cls, stats: Any) -> "PerformanceMetrics":
        """Read metrics off an InstructorStats row (or any object with the same attributes)."""
        return cls.from_mapping(
            {
                name: getattr(stats, name, None)
                for name in (
                    "average_rating",
                    "total_lessons",
                    "completion_rate",
                    "repeat_student_rate",
                    "lesson_success_rate",
                    "response_time_hours",
                    "total_students",
                    "total_earnings",
                    "performance_score",
                )
            }
        )


def score_components(
    metrics: PerformanceMetrics, config: PerformanceConfig = DEFAULT_PERFORMANCE_CONFIG
) -> dict[str, float]:
    """Unrounded contribution of each factor to the composite score."""
    experience_ratio = min(metrics.total_lessons / config.experience_full_lessons, 1.0)
    response_ratio = max(
        (config.response_window_hours - metrics.response_time_hours) / config.response_window_hours,
        0.0,
    )
    return {
        "rating": (metrics.average_rating / 5) * config.rating_weight,
        "experience": experience_ratio * config.experience_weight,
        "completion": (metrics.completion_rate / 100) * config.completion_weight,
        "repeat": (metrics.repeat_student_rate / 100) * config.repeat_weight,
        "success": (metrics.lesson_success_rate / 100) * config.success_weight,
        # A 0h response time earns the full component.
        "response": response_ratio * config.response_weight,
    }


def calculate_performance_score(
    metrics: PerformanceMetrics, config: PerformanceConfig = DEFAULT_PERFORMANCE_CONFIG
) -> int:
    total = sum(score_components(metrics, config).values())
    # Half rounds up; clamp keeps out-of-range inputs inside [0, 100].
    score = math.floor(total + 0.5)
    return max(0, min(100, score))


def classify_tier(
    performance_score: float, config: PerformanceConfig = DEFAULT_PERFORMANCE_CONFIG
) -> InstructorTier:
    for threshold, tier in config.tier_thresholds:
        if performance_score >= threshold:
            return InstructorTier(tier)
    return InstructorTier.BRONZE


def _highest_rung(value: float, ladder: BadgeLadder) -> Optional[str]:
    for threshold, badge in ladder:
        if value >= threshold:
            return badge
    return None


def calculate_badges(
    metrics: PerformanceMetrics, config: PerformanceConfig = DEFAULT_PERFORMANCE_CONFIG
) -> set[str]:
    score = (
        metrics.performance_score
        if metrics.performance_score is not None
        else calculate_performance_score(metrics, config)
    )
    rungs = (
        _highest_rung(metrics.total_lessons, config.lesson_badges),
        _highest_rung(metrics.average_rating, config.rating_badges),
        _highest_rung(metrics.total_students, config.student_badges),
        _highest_rung(metrics.total_earnings, config.earnings_badges),
        _highest_rung(score, config.performance_badges),
    )
    return {badge for badge in rungs if badge is not None}
