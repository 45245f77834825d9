# backend/instructor_ranking/services/ranking_service.py
"""
RankingService: global instructor ordering and rank-delta tracking.

Ordering is performance_score DESC, total_lessons DESC, instructor_id ASC,
a total order, so ranks are 1..N with no gaps or repeats. Ranks are written
only by refresh_ranking and the batch pass; between passes the persisted
rank may be stale and reads report the live position.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core import ranking_lock
from ..core.config import settings
from ..core.constants import UNKNOWN_INSTRUCTOR_NAME
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.instructor_stats_repository import InstructorStatsRepository
from ..schemas.instructor_stats import InstructorRankingItem, RankingPassResult
from .base import BaseService


def rank_delta(previous_rank: Optional[int], rank: int) -> int:
    """Positive when the instructor moved up; 0 without a previous rank."""
    if previous_rank is None:
        return 0
    return previous_rank - rank


class RankingService(BaseService):
    """Service layer for instructor rankings."""

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = InstructorStatsRepository(db)

    @BaseService.measure_operation("top_instructors")
    def top_instructors(self, limit: Optional[int] = None) -> List[InstructorRankingItem]:
        """
        Current top ``limit`` instructors, rank = position + 1.

        When the live position differs from the last persisted rank, the
        persisted rank is reported as the previous rank.
        """
        if limit is None:
            limit = settings.top_instructors_default_limit
        limit = min(limit, settings.top_instructors_max_limit)
        if limit <= 0:
            return []

        with self.transaction():
            rows = self.repository.list_top_with_users(limit)

        items: List[InstructorRankingItem] = []
        for index, (stats, user) in enumerate(rows):
            rank = index + 1
            if stats.rank == rank:
                previous_rank = stats.previous_rank
                change = stats.rank_change or 0
            else:
                previous_rank = stats.rank if stats.rank is not None else rank
                change = rank_delta(previous_rank, rank)
            items.append(
                InstructorRankingItem(
                    rank=rank,
                    instructor_id=stats.instructor_id,
                    name=(user.name if user is not None and user.name else UNKNOWN_INSTRUCTOR_NAME),
                    avatar_url=user.avatar_url if user is not None else None,
                    performance_score=stats.performance_score,
                    tier=stats.tier,
                    total_lessons=stats.total_lessons,
                    average_rating=stats.average_rating,
                    badges=sorted(stats.badges or []),
                    previous_rank=previous_rank,
                    rank_change=change,
                )
            )
        return items

    @BaseService.measure_operation("refresh_ranking")
    def refresh_ranking(self, instructor_id: str) -> Optional[int]:
        """
        Order every instructor and persist the given one's rank.

        Returns:
            The new rank, or None when the instructor has no stats
        """
        with self.transaction():
            rows = self.repository.list_ranking_rows()
            for position, row in enumerate(rows, start=1):
                if row.instructor_id != instructor_id:
                    continue
                self.repository.write_rank(
                    instructor_id,
                    rank=position,
                    previous_rank=row.rank,
                    rank_change=rank_delta(row.rank, position),
                    now=datetime.now(timezone.utc),
                )
                self.logger.debug(
                    "Refreshed instructor rank",
                    extra={"instructor_id": instructor_id, "rank": position, "previous_rank": row.rank},
                )
                return position
        return None

    @BaseService.measure_operation("run_ranking_pass")
    def run_ranking_pass(self, only_if_dirty: bool = False) -> RankingPassResult:
        """
        Recompute every instructor's rank in one ordering.

        Each row gets previous_rank = its old rank, rank = its position and
        the matching rank_change. The dirty marker is cleared only on rows
        not mutated since they were read. With ``only_if_dirty`` the pass is
        skipped when nothing changed since the last one.
        """
        with ranking_lock.ranking_pass_lock() as acquired:
            if not acquired:
                self.logger.info("Ranking pass already running elsewhere; skipping")
                prometheus_metrics.record_ranking_pass("locked")
                return RankingPassResult(status="locked")

            with self.transaction():
                if only_if_dirty and not self.repository.has_dirty_rankings():
                    prometheus_metrics.record_ranking_pass("clean")
                    return RankingPassResult(status="clean")

                now = datetime.now(timezone.utc)
                rows = self.repository.list_ranking_rows()
                moved = 0
                cleared = 0
                with self.measure_operation_context("write_ranks"):
                    for position, row in enumerate(rows, start=1):
                        change = rank_delta(row.rank, position)
                        if change:
                            moved += 1
                        self.repository.write_rank(
                            row.instructor_id,
                            rank=position,
                            previous_rank=row.rank,
                            rank_change=change,
                            now=now,
                        )
                        if row.ranking_dirty and self.repository.clear_dirty(
                            row.instructor_id, row.stats_version
                        ):
                            cleared += 1

        prometheus_metrics.record_ranking_pass("completed", instructors=len(rows), rank_changes=moved)
        self.log_operation(
            "run_ranking_pass", instructors=len(rows), rank_changes=moved, cleared=cleared
        )
        return RankingPassResult(
            status="completed", instructors=len(rows), rank_changes=moved, cleared=cleared
        )
