from datetime import datetime, timezone
from decimal import Decimal

import pytest

from instructor_ranking.core.exceptions import RepositoryException
from instructor_ranking.models.instructor_stats import CountedLesson
from instructor_ranking.repositories.instructor_stats_repository import InstructorStatsRepository

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


@pytest.fixture
def repo(db) -> InstructorStatsRepository:
    return InstructorStatsRepository(db)


def test_create_if_absent_never_clobbers(db, repo):
    assert repo.create_if_absent("a", NOW) is True
    repo.increment_counters("a", total_lessons=3)
    db.commit()

    assert repo.create_if_absent("a", NOW) is False
    assert repo.get_stats("a").total_lessons == 3


def test_increment_counters_is_additive_and_versions_the_row(db, repo):
    repo.create_if_absent("a", NOW)
    assert repo.increment_counters("a", total_lessons=1, total_earnings=Decimal("40.50")) == 1
    assert repo.increment_counters("a", total_lessons=2, total_earnings=Decimal("9.50")) == 1
    db.commit()

    stats = repo.get_stats("a")
    assert stats.total_lessons == 3
    assert float(stats.total_earnings) == pytest.approx(50.0)
    assert stats.stats_version == 2


def test_increment_counters_missing_row_updates_nothing(repo):
    assert repo.increment_counters("ghost", total_lessons=1) == 0


def test_increment_counters_rejects_derived_columns(repo):
    with pytest.raises(ValueError):
        repo.increment_counters("a", performance_score=5)


def test_ledgers_count_once(db, repo):
    assert repo.record_counted_lesson("l1", "a", "completed", NOW) is True
    assert repo.record_counted_lesson("l1", "a", "completed", NOW) is False
    assert repo.record_counted_review("r1", "a", 5, NOW) is True
    assert repo.record_counted_review("r1", "a", 5, NOW) is False
    db.commit()
    assert repo.count() == 0
    assert db.query(CountedLesson).count() == 1


def test_record_student_lesson_counts_per_pair(repo):
    assert repo.record_student_lesson("a", "s1") == 1
    assert repo.record_student_lesson("a", "s1") == 2
    assert repo.record_student_lesson("b", "s1") == 1


def test_reset_stats_clears_counters_and_ledgers(db, repo):
    repo.create_if_absent("a", NOW)
    repo.increment_counters("a", total_lessons=2, rating_sum=9, total_reviews=2)
    repo.record_counted_lesson("l1", "a", "completed", NOW)
    repo.record_student_lesson("a", "s1")
    repo.write_rank("a", rank=4, previous_rank=6, rank_change=2, now=NOW)
    db.commit()

    repo.reset_stats("a", NOW)
    db.commit()

    stats = repo.get_stats("a")
    assert (stats.total_lessons, stats.rating_sum, stats.total_reviews) == (0, 0, 0)
    assert (stats.rank, stats.previous_rank, stats.rank_change) == (4, 6, 2)
    assert repo.record_counted_lesson("l1", "a", "completed", NOW) is True
    assert repo.record_student_lesson("a", "s1") == 1


def test_clear_dirty_only_for_unchanged_version(db, repo):
    repo.create_if_absent("a", NOW)
    db.commit()
    seen = repo.list_ranking_rows()[0]
    assert seen.ranking_dirty is True

    # A mutation lands between the read and the clear
    repo.increment_counters("a", total_lessons=1)
    assert repo.clear_dirty("a", seen.stats_version) is False
    assert repo.has_dirty_rankings() is True

    fresh = repo.list_ranking_rows()[0]
    assert repo.clear_dirty("a", fresh.stats_version) is True
    assert repo.has_dirty_rankings() is False


def test_store_errors_surface_as_repository_exception(db, repo, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def _fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(db, "execute", _fail)
    with pytest.raises(RepositoryException):
        repo.list_ranking_rows()
