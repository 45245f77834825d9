"""Celery tasks for the ranking batch pass."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from instructor_ranking.database import SessionLocal
from instructor_ranking.services.instructor_stats_service import InstructorStatsService
from instructor_ranking.services.ranking_service import RankingService
from instructor_ranking.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_pass(only_if_dirty: bool) -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        result = RankingService(db).run_ranking_pass(only_if_dirty=only_if_dirty)
        summary = result.model_dump()
        logger.info("Ranking pass finished", extra={"summary": summary})
        return summary
    finally:
        db.close()


@celery_app.task(name="rankings.refresh_dirty")
def refresh_dirty_rankings_task() -> Dict[str, Any]:
    """
    Re-rank every instructor if any stats changed since the last pass.

    Returns:
        Pass summary (status, instructors, rank_changes, cleared)
    """
    return _run_pass(only_if_dirty=True)


@celery_app.task(name="rankings.refresh_all")
def refresh_all_rankings_task() -> Dict[str, Any]:
    return _run_pass(only_if_dirty=False)


@celery_app.task(name="rankings.recalculate_instructor")
def recalculate_instructor_task(instructor_id: str) -> Dict[str, Optional[Any]]:
    """Rebuild one instructor's stats from the Lesson Store."""
    db: Session = SessionLocal()
    try:
        result = InstructorStatsService(db).recalculate_from_store(instructor_id)
        summary = {
            "instructor_id": instructor_id,
            "lessons_replayed": result.lessons_replayed,
            "lessons_skipped": result.lessons_skipped,
            "reviews_skipped": result.reviews_skipped,
        }
        logger.info("Recalculated instructor stats", extra={"summary": summary})
        return summary
    finally:
        db.close()
