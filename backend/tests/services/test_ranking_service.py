from __future__ import annotations

from datetime import datetime, timezone

import pytest

from instructor_ranking.core import ranking_lock
from instructor_ranking.repositories.instructor_stats_repository import InstructorStatsRepository
from instructor_ranking.services.performance_math import classify_tier
from instructor_ranking.services.ranking_service import RankingService, rank_delta
from tests.factories.lesson_builders import store_user

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


def _seed(db, instructor_id: str, score: int, lessons: int = 10) -> None:
    repo = InstructorStatsRepository(db)
    repo.create_if_absent(instructor_id, NOW)
    db.commit()
    stats = repo.get_stats(instructor_id)
    stats.performance_score = score
    stats.total_lessons = lessons
    stats.tier = classify_tier(score).value
    stats.ranking_dirty = True
    db.commit()


def _rank_fields(db, instructor_id: str):
    stats = InstructorStatsRepository(db).get_stats(instructor_id)
    return stats.rank, stats.previous_rank, stats.rank_change


@pytest.fixture
def service(db) -> RankingService:
    return RankingService(db)


def test_rank_delta():
    assert rank_delta(None, 3) == 0
    assert rank_delta(5, 2) == 3
    assert rank_delta(1, 4) == -3


class TestTopInstructors:
    def test_orders_by_score_then_lessons_then_id(self, db, service):
        _seed(db, "a", 80, lessons=10)
        _seed(db, "b", 80, lessons=20)
        _seed(db, "c", 90, lessons=1)
        _seed(db, "d", 80, lessons=20)

        top = service.top_instructors(10)
        assert [item.instructor_id for item in top] == ["c", "b", "d", "a"]
        assert [item.rank for item in top] == [1, 2, 3, 4]

    def test_respects_limit(self, db, service):
        for index in range(5):
            _seed(db, f"inst-{index}", 50 + index)

        assert len(service.top_instructors(2)) == 2
        assert service.top_instructors(0) == []
        assert len(service.top_instructors()) == 5

    def test_display_identity(self, db, service):
        _seed(db, "a", 90)
        _seed(db, "b", 80)
        store_user(db, "a", name="Ada Lovelace")

        top = service.top_instructors(10)
        assert top[0].name == "Ada Lovelace"
        assert top[1].name == "Unknown Instructor"

    def test_reports_movement_since_last_pass(self, db, service):
        _seed(db, "a", 90)
        _seed(db, "b", 80)
        _seed(db, "c", 70)
        service.run_ranking_pass()

        _seed(db, "c", 95)
        top = {item.instructor_id: item for item in service.top_instructors(10)}
        assert (top["c"].rank, top["c"].previous_rank, top["c"].rank_change) == (1, 3, 2)
        assert (top["a"].rank, top["a"].previous_rank, top["a"].rank_change) == (2, 1, -1)


class TestRankingPass:
    def test_first_pass_assigns_ranks_without_change(self, db, service):
        _seed(db, "a", 70)
        _seed(db, "b", 90)

        result = service.run_ranking_pass()
        assert result.status == "completed"
        assert result.instructors == 2
        assert _rank_fields(db, "b") == (1, None, 0)
        assert _rank_fields(db, "a") == (2, None, 0)
        assert InstructorStatsRepository(db).has_dirty_rankings() is False

    def test_second_pass_without_mutations_reports_no_change(self, db, service):
        _seed(db, "a", 90)
        _seed(db, "b", 80)
        _seed(db, "c", 70)
        service.run_ranking_pass()
        _seed(db, "c", 95)
        service.run_ranking_pass()
        assert _rank_fields(db, "c") == (1, 3, 2)

        result = service.run_ranking_pass()
        assert result.rank_changes == 0
        for instructor_id, rank in (("c", 1), ("a", 2), ("b", 3)):
            assert _rank_fields(db, instructor_id) == (rank, rank, 0)

    def test_dirty_gate(self, db, service):
        _seed(db, "a", 90)
        assert service.run_ranking_pass(only_if_dirty=True).status == "completed"
        assert service.run_ranking_pass(only_if_dirty=True).status == "clean"

        _seed(db, "b", 95)
        assert service.run_ranking_pass(only_if_dirty=True).status == "completed"
        assert _rank_fields(db, "b")[0] == 1

    def test_skips_when_another_pass_holds_the_lock(self, db, service, monkeypatch):
        _seed(db, "a", 90)
        monkeypatch.setattr(ranking_lock, "acquire_ranking_lock", lambda ttl_s=None: False)

        assert service.run_ranking_pass().status == "locked"
        assert _rank_fields(db, "a")[0] is None

    def test_empty_store(self, service):
        result = service.run_ranking_pass()
        assert result.status == "completed"
        assert result.instructors == 0


class TestRefreshRanking:
    def test_writes_single_instructor_rank(self, db, service):
        _seed(db, "a", 90)
        _seed(db, "b", 80)

        assert service.refresh_ranking("b") == 2
        assert _rank_fields(db, "b") == (2, None, 0)
        assert _rank_fields(db, "a")[0] is None

    def test_absent_instructor(self, service):
        assert service.refresh_ranking("nobody") is None


def test_operation_metrics_are_tracked_per_service(service):
    service.reset_metrics()
    service.top_instructors()
    service.top_instructors(limit=0)

    metrics = service.get_metrics()
    assert metrics["top_instructors"]["count"] == 2
    assert metrics["top_instructors"]["success_rate"] == 1.0
    assert "run_ranking_pass" not in metrics
