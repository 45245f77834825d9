# backend/instructor_ranking/services/instructor_stats_service.py
"""
InstructorStatsService: aggregation of lesson and review events into
per-instructor performance records.

Implements:
- Idempotent event application (lesson and review ledgers)
- Atomic counter increments followed by derived-field recomputation in the
  same transaction
- Deduplicated student counting with repeat-student tracking
- Full rebuild from a lesson history
- Estimated stats view for instructors without a record yet

Ranking is never recomputed here; every mutation marks the record dirty
for the next ranking pass.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    DEFAULT_COMPLETION_RATE,
    ESTIMATED_AVERAGE_RATING,
    ESTIMATED_LESSONS_PER_YEAR,
    ESTIMATED_PRICE_PER_LESSON,
    ESTIMATED_REVIEWS_PER_YEAR,
    ESTIMATED_STUDENTS_PER_YEAR,
    MAX_RATING,
    MIN_RATING,
    POSITIVE_REVIEW_THRESHOLD,
)
from ..core.enums import LessonStatus
from ..core.exceptions import InvalidRatingException, ServiceException, ValidationException
from ..models.instructor_stats import InstructorStats
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.instructor_stats_repository import InstructorStatsRepository
from ..repositories.lesson_repository import LessonRepository
from ..repositories.user_repository import UserRepository
from ..schemas.instructor_stats import InstructorStatsResponse, SeasonalStats
from ..schemas.lesson import LessonRecord, ReviewRecord
from .base import BaseService
from .performance_config import DEFAULT_PERFORMANCE_CONFIG, PerformanceConfig
from .performance_math import (
    PerformanceMetrics,
    calculate_badges as compute_badges,
    calculate_performance_score,
    classify_tier,
)
from .seasonal_stats import apply_season_delta, roll_season_forward


@dataclass(frozen=True)
class SeasonDelta:
    """Activity to add to the season containing ``moment``."""

    moment: datetime
    lessons: int = 0
    earnings: float = 0.0
    rating_sum: int = 0
    reviews: int = 0


@dataclass
class ReviewTally:
    count: int = 0
    rating_sum: int = 0
    positive: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class RecalculationResult:
    instructor_id: str
    lessons_replayed: int
    lessons_skipped: int
    reviews_skipped: int
    stats: InstructorStats


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_rating(rating: Any) -> bool:
    return (
        isinstance(rating, int)
        and not isinstance(rating, bool)
        and MIN_RATING <= rating <= MAX_RATING
    )


def _as_utc(moment: Optional[datetime], default: datetime) -> datetime:
    if moment is None:
        return default
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class InstructorStatsService(BaseService):
    """Service layer for instructor performance aggregation."""

    def __init__(
        self,
        db: Session,
        config: PerformanceConfig = DEFAULT_PERFORMANCE_CONFIG,
    ) -> None:
        super().__init__(db)
        self.repository = InstructorStatsRepository(db)
        self.lesson_repository = LessonRepository(db)
        self.user_repository = UserRepository(db)
        self.config = config

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @BaseService.measure_operation("on_lesson_completed")
    def on_lesson_completed(self, lesson: LessonRecord) -> bool:
        """
        Apply a completed lesson to its instructor's stats.

        Returns:
            False when the lesson had already been counted (no change)

        Raises:
            ValidationException: lesson not completed or negative price
            StoreUnavailableException: store failure, nothing persisted
        """
        self._validate_completed_lesson(lesson)
        now = _utcnow()

        with self.transaction():
            self.repository.create_if_absent(lesson.instructor_id, now)
            deltas: List[SeasonDelta] = []
            tally = ReviewTally()
            applied = self._apply_completed_lesson(lesson, now, deltas, tally)
            if applied:
                self._refresh_derived(lesson.instructor_id, now, deltas)

        self._record_outcome("lesson_completed", applied, lesson.instructor_id, lesson_id=lesson.id)
        return applied

    @BaseService.measure_operation("on_lesson_cancelled")
    def on_lesson_cancelled(self, lesson: LessonRecord) -> bool:
        """Count a cancellation once per lesson; only the completion rate moves."""
        if LessonStatus(lesson.status) != LessonStatus.CANCELLED:
            raise ValidationException(
                "Only cancelled lessons can be counted as cancellations",
                code="LESSON_NOT_CANCELLED",
                details={"lesson_id": lesson.id, "status": LessonStatus(lesson.status).value},
            )
        now = _utcnow()

        with self.transaction():
            self.repository.create_if_absent(lesson.instructor_id, now)
            applied = self._apply_cancelled_lesson(lesson, now)
            if applied:
                self._refresh_derived(lesson.instructor_id, now)

        self._record_outcome("lesson_cancelled", applied, lesson.instructor_id, lesson_id=lesson.id)
        return applied

    @BaseService.measure_operation("on_review_added")
    def on_review_added(self, instructor_id: str, review: ReviewRecord) -> bool:
        """
        Merge a single review into the aggregate.

        Keyed by review id, so a review already merged through its lesson's
        completion is not counted again (and vice versa).
        """
        if not is_valid_rating(review.rating):
            prometheus_metrics.record_skipped_input("review")
            raise InvalidRatingException(review.rating, review.id)

        with self.transaction():
            applied = self.merge_review(instructor_id, review)

        self._record_outcome("review_added", applied, instructor_id, review_id=review.id)
        return applied

    def merge_review(self, instructor_id: str, review: ReviewRecord) -> bool:
        """
        Count a validated review inside the caller's transaction.

        Lets a review write and its stats merge commit or roll back together.
        """
        now = _utcnow()
        self.repository.create_if_absent(instructor_id, now)
        deltas: List[SeasonDelta] = []
        tally = ReviewTally()
        self._count_reviews(instructor_id, [review], now, deltas, tally)
        if tally.count == 0:
            return False
        self.repository.increment_counters(
            instructor_id,
            total_reviews=tally.count,
            rating_sum=tally.rating_sum,
            positive_reviews=tally.positive,
        )
        self._refresh_derived(instructor_id, now, deltas)
        return True

    @BaseService.measure_operation("initialize_stats")
    def initialize_stats(self, instructor_id: str) -> bool:
        """
        Create a zeroed record unless one exists.

        Returns:
            True if this call created the record
        """
        with self.transaction():
            created = self.repository.create_if_absent(instructor_id, _utcnow())
        if created:
            self.logger.info("Initialized instructor stats", extra={"instructor_id": instructor_id})
        return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @BaseService.measure_operation("get_instructor_stats")
    def get_instructor_stats(self, instructor_id: str) -> Optional[InstructorStats]:
        """Persisted record, or None when the instructor has none yet."""
        with self.transaction():
            return self.repository.get_stats(instructor_id)

    @BaseService.measure_operation("get_stats_view")
    def get_stats_view(self, instructor_id: str) -> InstructorStatsResponse:
        """
        Persisted stats, or an estimate from years of experience when absent.

        Seasons are reported relative to now even if the instructor has been
        idle since the row was last written.
        """
        stats = self.get_instructor_stats(instructor_id)
        if stats is not None:
            view = InstructorStatsResponse.model_validate(stats)
            view.seasonal_stats = SeasonalStats.model_validate(
                roll_season_forward(stats.seasonal_stats, _utcnow(), settings.season_start_month)
            )
            return view
        return self._estimated_view(instructor_id)

    @BaseService.measure_operation("calculate_badges")
    def calculate_badges(self, instructor_id: str) -> set[str]:
        stats = self.get_instructor_stats(instructor_id)
        if stats is None:
            return set()
        return compute_badges(PerformanceMetrics.from_stats(stats), self.config)

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    @BaseService.measure_operation("recalculate_instructor_stats")
    def recalculate_instructor_stats(
        self, instructor_id: str, all_lessons: Iterable[LessonRecord]
    ) -> RecalculationResult:
        """
        Rebuild an instructor's stats from their full lesson history.

        Counters and ledgers are reset, then completed and cancelled lessons
        are replayed through the incremental path in one transaction. Invalid
        lessons and reviews are skipped and logged. Rank fields and response
        time are kept.
        """
        lessons = sorted(
            (lesson for lesson in all_lessons if lesson.instructor_id == instructor_id),
            key=lambda lesson: (
                lesson.completed_at is None,
                _as_utc(lesson.completed_at, datetime.min.replace(tzinfo=timezone.utc)),
                lesson.id,
            ),
        )
        now = _utcnow()
        replayed = 0
        skipped = 0
        deltas: List[SeasonDelta] = []
        tally = ReviewTally()

        with self.transaction():
            self.repository.create_if_absent(instructor_id, now)
            self.repository.reset_stats(instructor_id, now)

            for lesson in lessons:
                status = LessonStatus(lesson.status)
                if status == LessonStatus.CANCELLED:
                    if self._apply_cancelled_lesson(lesson, now):
                        replayed += 1
                    continue
                if status != LessonStatus.COMPLETED:
                    continue
                if lesson.price < 0:
                    skipped += 1
                    prometheus_metrics.record_skipped_input("lesson")
                    self.logger.warning(
                        "Skipping lesson with negative price during recalculation",
                        extra={"instructor_id": instructor_id, "lesson_id": lesson.id},
                    )
                    continue
                if self._apply_completed_lesson(lesson, now, deltas, tally):
                    replayed += 1

            stats = self._refresh_derived(instructor_id, now, deltas)

        self.log_operation(
            "recalculate_instructor_stats",
            instructor_id=instructor_id,
            lessons_replayed=replayed,
            lessons_skipped=skipped,
            reviews_skipped=tally.skipped,
        )
        prometheus_metrics.record_stats_mutation("recalculate", "applied")
        return RecalculationResult(
            instructor_id=instructor_id,
            lessons_replayed=replayed,
            lessons_skipped=skipped,
            reviews_skipped=tally.skipped,
            stats=stats,
        )

    @BaseService.measure_operation("recalculate_from_store")
    def recalculate_from_store(self, instructor_id: str) -> RecalculationResult:
        """Load the instructor's lessons from the Lesson Store and rebuild."""
        with self.transaction():
            rows = self.lesson_repository.list_for_instructor(
                instructor_id, statuses=(LessonStatus.COMPLETED, LessonStatus.CANCELLED)
            )
            lessons = [LessonRecord.from_orm_lesson(row) for row in rows]
        return self.recalculate_instructor_stats(instructor_id, lessons)

    # ------------------------------------------------------------------
    # Internals (run inside the caller's transaction)
    # ------------------------------------------------------------------

    def _validate_completed_lesson(self, lesson: LessonRecord) -> None:
        status = LessonStatus(lesson.status)
        if status != LessonStatus.COMPLETED:
            raise ValidationException(
                "Only completed lessons can be applied to instructor stats",
                code="LESSON_NOT_COMPLETED",
                details={"lesson_id": lesson.id, "status": status.value},
            )
        if lesson.price < 0:
            prometheus_metrics.record_skipped_input("lesson")
            raise ValidationException(
                "Lesson price cannot be negative",
                code="NEGATIVE_PRICE",
                details={"lesson_id": lesson.id, "price": str(lesson.price)},
            )

    def _apply_completed_lesson(
        self,
        lesson: LessonRecord,
        now: datetime,
        deltas: List[SeasonDelta],
        tally: ReviewTally,
    ) -> bool:
        instructor_id = lesson.instructor_id
        if not self.repository.record_counted_lesson(
            lesson.id, instructor_id, LessonStatus.COMPLETED.value, now
        ):
            return False

        new_students = 0
        new_repeats = 0
        for student_id in dict.fromkeys(lesson.student_ids):
            lesson_count = self.repository.record_student_lesson(instructor_id, student_id)
            if lesson_count == 1:
                new_students += 1
            elif lesson_count == 2:
                new_repeats += 1

        lesson_tally = ReviewTally()
        self._count_reviews(instructor_id, lesson.student_reviews, now, deltas, lesson_tally)
        tally.count += lesson_tally.count
        tally.rating_sum += lesson_tally.rating_sum
        tally.positive += lesson_tally.positive
        tally.skipped += lesson_tally.skipped

        price = Decimal(lesson.price)
        self.repository.increment_counters(
            instructor_id,
            total_lessons=1,
            total_students=new_students,
            repeat_students=new_repeats,
            total_earnings=price,
            total_reviews=lesson_tally.count,
            rating_sum=lesson_tally.rating_sum,
            positive_reviews=lesson_tally.positive,
        )
        deltas.append(
            SeasonDelta(moment=_as_utc(lesson.completed_at, now), lessons=1, earnings=float(price))
        )
        return True

    def _apply_cancelled_lesson(self, lesson: LessonRecord, now: datetime) -> bool:
        if not self.repository.record_counted_lesson(
            lesson.id, lesson.instructor_id, LessonStatus.CANCELLED.value, now
        ):
            return False
        self.repository.increment_counters(lesson.instructor_id, cancelled_lessons=1)
        return True

    def _count_reviews(
        self,
        instructor_id: str,
        reviews: Sequence[ReviewRecord],
        now: datetime,
        deltas: List[SeasonDelta],
        tally: ReviewTally,
    ) -> None:
        """Ledger each new, valid review and add it to ``tally``; invalid ones are skipped."""
        for review in reviews:
            if not is_valid_rating(review.rating):
                tally.skipped += 1
                prometheus_metrics.record_skipped_input("review")
                self.logger.warning(
                    "Skipping review with invalid rating",
                    extra={
                        "instructor_id": instructor_id,
                        "review_id": review.id,
                        "rating": review.rating,
                    },
                )
                continue
            if not self.repository.record_counted_review(review.id, instructor_id, review.rating, now):
                continue
            tally.count += 1
            tally.rating_sum += review.rating
            if review.rating >= POSITIVE_REVIEW_THRESHOLD:
                tally.positive += 1
            deltas.append(
                SeasonDelta(
                    moment=_as_utc(review.created_at, now),
                    rating_sum=review.rating,
                    reviews=1,
                )
            )

    def _refresh_derived(
        self,
        instructor_id: str,
        now: datetime,
        deltas: Sequence[SeasonDelta] = (),
    ) -> InstructorStats:
        """Recompute every derived field from the post-increment counters."""
        stats = self.repository.get_stats(instructor_id, for_update=True)
        if stats is None:
            # create_if_absent ran earlier in this transaction
            raise ServiceException(
                "Instructor stats disappeared mid-transaction",
                details={"instructor_id": instructor_id},
            )

        total_reviews = stats.total_reviews or 0
        total_lessons = stats.total_lessons or 0
        finished = total_lessons + (stats.cancelled_lessons or 0)
        total_students = stats.total_students or 0

        stats.average_rating = (stats.rating_sum or 0) / total_reviews if total_reviews else 0.0
        stats.lesson_success_rate = (
            (stats.positive_reviews or 0) / total_reviews * 100 if total_reviews else 0.0
        )
        stats.completion_rate = (
            total_lessons / finished * 100 if finished else DEFAULT_COMPLETION_RATE
        )
        stats.repeat_student_rate = (
            (stats.repeat_students or 0) / total_students * 100 if total_students else 0.0
        )

        metrics = replace(PerformanceMetrics.from_stats(stats), performance_score=None)
        score = calculate_performance_score(metrics, self.config)
        stats.performance_score = score
        stats.tier = classify_tier(score, self.config).value
        stats.badges = sorted(
            compute_badges(replace(metrics, performance_score=score), self.config)
        )

        seasonal = roll_season_forward(stats.seasonal_stats, now, settings.season_start_month)
        for delta in deltas:
            seasonal = apply_season_delta(
                seasonal,
                delta.moment,
                settings.season_start_month,
                lessons=delta.lessons,
                earnings=delta.earnings,
                rating_sum=delta.rating_sum,
                reviews=delta.reviews,
            )
        stats.seasonal_stats = seasonal

        stats.ranking_dirty = True
        stats.last_updated = now
        self.repository.flush()
        return stats

    def _estimated_view(self, instructor_id: str) -> InstructorStatsResponse:
        with self.transaction():
            user = self.user_repository.get_by_id(instructor_id)
        years = (user.years_of_experience if user is not None else None) or 1

        total_lessons = years * ESTIMATED_LESSONS_PER_YEAR
        metrics = PerformanceMetrics(
            average_rating=ESTIMATED_AVERAGE_RATING,
            total_lessons=total_lessons,
            completion_rate=DEFAULT_COMPLETION_RATE,
            total_students=years * ESTIMATED_STUDENTS_PER_YEAR,
            total_earnings=float(total_lessons * ESTIMATED_PRICE_PER_LESSON),
        )
        score = calculate_performance_score(metrics, self.config)
        return InstructorStatsResponse(
            instructor_id=instructor_id,
            total_lessons=total_lessons,
            total_students=metrics.total_students,
            total_reviews=years * ESTIMATED_REVIEWS_PER_YEAR,
            average_rating=metrics.average_rating,
            total_earnings=metrics.total_earnings,
            completion_rate=metrics.completion_rate,
            repeat_student_rate=0.0,
            lesson_success_rate=0.0,
            response_time_hours=0.0,
            performance_score=score,
            tier=classify_tier(score, self.config),
            badges=sorted(compute_badges(replace(metrics, performance_score=score), self.config)),
            is_estimate=True,
        )

    def _record_outcome(self, event: str, applied: bool, instructor_id: str, **context: Any) -> None:
        outcome = "applied" if applied else "duplicate"
        prometheus_metrics.record_stats_mutation(event, outcome)
        if applied:
            self.log_operation(event, instructor_id=instructor_id, **context)
        else:
            self.logger.info(
                f"Ignoring already-counted {event} event",
                extra={"instructor_id": instructor_id, **context},
            )
