# backend/instructor_ranking/repositories/instructor_stats_repository.py
"""
Repository for instructor stats and the aggregation ledgers.

Follows repository pattern: no business logic, DB-only operations.
Counter changes are single `UPDATE ... SET col = col + :delta` statements so
concurrent writers never lose an increment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import InstructorTier
from ..core.exceptions import RepositoryException
from ..models.instructor_stats import (
    CountedLesson,
    CountedReview,
    InstructorStats,
    InstructorStudent,
    empty_seasonal_stats,
)
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = (
    "total_lessons",
    "cancelled_lessons",
    "total_students",
    "repeat_students",
    "total_reviews",
    "positive_reviews",
    "rating_sum",
    "total_earnings",
)

# Descending score, then descending experience, then ascending id: a total order.
RANKING_ORDER = (
    InstructorStats.performance_score.desc(),
    InstructorStats.total_lessons.desc(),
    InstructorStats.instructor_id.asc(),
)


@dataclass(frozen=True)
class RankingRow:
    instructor_id: str
    rank: Optional[int]
    previous_rank: Optional[int]
    rank_change: int
    ranking_dirty: bool
    stats_version: int


class InstructorStatsRepository(BaseRepository[InstructorStats]):
    """Data access for `InstructorStats` and its ledgers."""

    def __init__(self, db: Session):
        super().__init__(db, InstructorStats)

    # ------------------------------------------------------------------
    # Stats rows
    # ------------------------------------------------------------------

    def get_stats(self, instructor_id: str, *, for_update: bool = False) -> Optional[InstructorStats]:
        """
        Load the stats row, always reflecting the current database state.

        ``for_update`` takes a row lock where the dialect supports it.
        """
        stmt = select(InstructorStats).where(InstructorStats.instructor_id == instructor_id)
        if for_update and self.dialect_name == "postgresql":
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        try:
            return self.db.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading stats for {instructor_id}: {e}")
            raise RepositoryException(f"Failed to load instructor stats: {e}")

    def create_if_absent(self, instructor_id: str, now: datetime) -> bool:
        """Insert a zeroed row; an existing row is left untouched."""
        return self.insert_if_absent(
            {
                "instructor_id": instructor_id,
                "total_lessons": 0,
                "cancelled_lessons": 0,
                "total_students": 0,
                "repeat_students": 0,
                "total_reviews": 0,
                "positive_reviews": 0,
                "rating_sum": 0,
                "total_earnings": Decimal("0"),
                "average_rating": 0.0,
                "completion_rate": 100.0,
                "repeat_student_rate": 0.0,
                "lesson_success_rate": 0.0,
                "response_time_hours": 0.0,
                "performance_score": 0,
                "tier": InstructorTier.BRONZE.value,
                "badges": [],
                "seasonal_stats": empty_seasonal_stats(),
                "rank_change": 0,
                "ranking_dirty": True,
                "stats_version": 0,
                "last_updated": now,
            }
        )

    def increment_counters(self, instructor_id: str, **deltas: Any) -> int:
        """
        Atomically add deltas to raw counters and bump ``stats_version``.

        Returns:
            Number of rows updated (0 if the stats row does not exist)
        """
        unknown = set(deltas) - set(COUNTER_COLUMNS)
        if unknown:
            raise ValueError(f"Not a stats counter: {sorted(unknown)}")

        values: Dict[Any, Any] = {
            getattr(InstructorStats, name): getattr(InstructorStats, name) + delta
            for name, delta in deltas.items()
            if delta
        }
        values[InstructorStats.stats_version] = InstructorStats.stats_version + 1
        stmt = (
            update(InstructorStats)
            .where(InstructorStats.instructor_id == instructor_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        return int(self._execute(stmt).rowcount or 0)

    def reset_stats(self, instructor_id: str, now: datetime) -> None:
        """
        Zero every counter and ledger entry of an instructor ahead of a rebuild.

        Ranking columns and response time are kept.
        """
        self._execute(delete(CountedLesson).where(CountedLesson.instructor_id == instructor_id))
        self._execute(delete(CountedReview).where(CountedReview.instructor_id == instructor_id))
        self._execute(
            delete(InstructorStudent).where(InstructorStudent.instructor_id == instructor_id)
        )
        reset_values: Dict[str, Any] = {name: 0 for name in COUNTER_COLUMNS}
        reset_values["total_earnings"] = Decimal("0")
        reset_values["seasonal_stats"] = empty_seasonal_stats()
        reset_values["last_updated"] = now
        self._execute(
            update(InstructorStats)
            .where(InstructorStats.instructor_id == instructor_id)
            .values(**reset_values)
            .execution_options(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # Ledgers
    # ------------------------------------------------------------------

    def record_counted_lesson(self, lesson_id: str, instructor_id: str, outcome: str, now: datetime) -> bool:
        """Returns True the first time a lesson is counted."""
        return self.insert_if_absent(
            {"lesson_id": lesson_id, "instructor_id": instructor_id, "outcome": outcome, "counted_at": now},
            model=CountedLesson,
        )

    def record_counted_review(self, review_id: str, instructor_id: str, rating: int, now: datetime) -> bool:
        """Returns True the first time a review is counted."""
        return self.insert_if_absent(
            {"review_id": review_id, "instructor_id": instructor_id, "rating": rating, "counted_at": now},
            model=CountedReview,
        )

    def record_student_lesson(self, instructor_id: str, student_id: str) -> int:
        """
        Count one more completed lesson for (instructor, student).

        Returns:
            The pair's lesson count after the increment (1 means a new student)
        """
        self.insert_if_absent(
            {"instructor_id": instructor_id, "student_id": student_id, "lesson_count": 0},
            model=InstructorStudent,
        )
        pair = (InstructorStudent.instructor_id == instructor_id) & (
            InstructorStudent.student_id == student_id
        )
        self._execute(
            update(InstructorStudent)
            .where(pair)
            .values(lesson_count=InstructorStudent.lesson_count + 1)
            .execution_options(synchronize_session=False)
        )
        return int(self._execute(select(InstructorStudent.lesson_count).where(pair)).scalar_one())

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def list_ranking_rows(self) -> List[RankingRow]:
        """Every instructor in ranking order, with only the columns the pass needs."""
        stmt = select(
            InstructorStats.instructor_id,
            InstructorStats.rank,
            InstructorStats.previous_rank,
            InstructorStats.rank_change,
            InstructorStats.ranking_dirty,
            InstructorStats.stats_version,
        ).order_by(*RANKING_ORDER)
        rows = self._execute(stmt).all()
        return [
            RankingRow(
                instructor_id=row.instructor_id,
                rank=row.rank,
                previous_rank=row.previous_rank,
                rank_change=int(row.rank_change or 0),
                ranking_dirty=bool(row.ranking_dirty),
                stats_version=int(row.stats_version or 0),
            )
            for row in rows
        ]

    def list_top_with_users(self, limit: int) -> List[Tuple[InstructorStats, Optional[User]]]:
        """Top ``limit`` stats rows in ranking order joined with display identity."""
        query = (
            self.db.query(InstructorStats, User)
            .outerjoin(User, User.id == InstructorStats.instructor_id)
            .order_by(*RANKING_ORDER)
            .limit(limit)
            .populate_existing()
        )
        return [(stats, user) for stats, user in self._execute_query(query)]

    def has_dirty_rankings(self) -> bool:
        stmt = select(InstructorStats.instructor_id).where(InstructorStats.ranking_dirty.is_(True)).limit(1)
        return self._execute(stmt).first() is not None

    def write_rank(
        self,
        instructor_id: str,
        *,
        rank: int,
        previous_rank: Optional[int],
        rank_change: int,
        now: datetime,
    ) -> None:
        self._execute(
            update(InstructorStats)
            .where(InstructorStats.instructor_id == instructor_id)
            .values(rank=rank, previous_rank=previous_rank, rank_change=rank_change, last_updated=now)
            .execution_options(synchronize_session=False)
        )

    def clear_dirty(self, instructor_id: str, seen_version: int) -> bool:
        """Clear the dirty marker unless the row was mutated after ``seen_version`` was read."""
        result = self._execute(
            update(InstructorStats)
            .where(
                (InstructorStats.instructor_id == instructor_id)
                & (InstructorStats.stats_version == seen_version)
            )
            .values(ranking_dirty=False)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)
