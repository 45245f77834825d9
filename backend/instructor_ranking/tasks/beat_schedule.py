# backend/instructor_ranking/tasks/beat_schedule.py
"""Celery Beat schedule for the instructor ranking engine."""

from datetime import timedelta
from typing import Any, Dict

from instructor_ranking.core.config import settings


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    """
    Periodic tasks.

    The dirty-ranking pass runs every ``RANKING_REFRESH_INTERVAL_SECONDS``
    and is a no-op when no instructor's stats changed since the last pass.
    A forced full pass runs nightly so rank_change settles even when idle.
    """
    return {
        "refresh-dirty-rankings": {
            "task": "rankings.refresh_dirty",
            "schedule": timedelta(seconds=settings.ranking_refresh_interval_seconds),
            "options": {"queue": "rankings", "expires": settings.ranking_refresh_interval_seconds},
        },
        "refresh-all-rankings-nightly": {
            "task": "rankings.refresh_all",
            "schedule": timedelta(hours=24),
            "options": {"queue": "rankings"},
        },
    }
