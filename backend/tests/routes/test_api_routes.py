"""HTTP behaviour of the v1 routers against an in-memory store."""

from sqlalchemy.exc import OperationalError

from instructor_ranking.repositories.instructor_stats_repository import InstructorStatsRepository
from tests.factories.lesson_builders import make_lesson, store_lesson, store_user

STATS = "/api/v1/instructors"
RANKINGS = "/api/v1/rankings"
REVIEWS = "/api/v1/reviews"


def _lesson_payload(lesson_id: str, instructor_id: str = "inst-a", **overrides):
    payload = {
        "id": lesson_id,
        "instructor_id": instructor_id,
        "student_ids": ["student-1"],
        "price": "80.00",
        "status": "completed",
        "completed_at": "2025-12-01T10:00:00Z",
        "student_reviews": [
            {"id": f"{lesson_id}-rev", "student_id": "student-1", "rating": 5},
        ],
    }
    payload.update(overrides)
    return payload


class TestStatsRoutes:
    def test_completed_lesson_applies_once(self, client):
        first = client.post(f"{STATS}/stats/lesson-completed", json=_lesson_payload("l1"))
        assert first.status_code == 200
        body = first.json()
        assert body["applied"] is True
        assert body["stats"]["total_lessons"] == 1
        assert body["stats"]["total_reviews"] == 1
        assert body["stats"]["average_rating"] == 5.0

        replay = client.post(f"{STATS}/stats/lesson-completed", json=_lesson_payload("l1"))
        assert replay.status_code == 200
        assert replay.json()["applied"] is False
        assert replay.json()["stats"]["total_lessons"] == 1

    def test_cancelled_lesson_moves_completion_rate(self, client):
        client.post(f"{STATS}/stats/lesson-completed", json=_lesson_payload("l1"))
        response = client.post(
            f"{STATS}/stats/lesson-cancelled",
            json=_lesson_payload("l2", status="cancelled", student_reviews=[]),
        )
        assert response.status_code == 200
        assert response.json()["stats"]["completion_rate"] == 50.0

    def test_scheduled_lesson_is_rejected(self, client):
        response = client.post(
            f"{STATS}/stats/lesson-completed", json=_lesson_payload("l1", status="scheduled")
        )
        assert response.status_code == 400
        assert response.json()["code"] == "LESSON_NOT_COMPLETED"

    def test_unknown_instructor_gets_estimate(self, client, db):
        store_user(db, "inst-new", name="New Instructor", years=3)

        response = client.get(f"{STATS}/inst-new/stats")
        assert response.status_code == 200
        body = response.json()
        assert body["is_estimate"] is True
        assert body["total_lessons"] == 150
        assert body["rank"] is None

    def test_persisted_stats_are_not_estimates(self, client):
        client.post(f"{STATS}/stats/lesson-completed", json=_lesson_payload("l1"))
        body = client.get(f"{STATS}/inst-a/stats").json()
        assert body["is_estimate"] is False
        assert body["seasonal_stats"]["current_season"]["season"] == "2025-2026"

    def test_invalid_review_rating(self, client):
        response = client.post(
            f"{STATS}/inst-a/stats/reviews", json={"id": "rev-x", "rating": 6}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_RATING"
        assert body["errors"]["rating"] == 6

    def test_badges_for_unknown_instructor_are_empty(self, client):
        response = client.get(f"{STATS}/ghost/badges")
        assert response.status_code == 200
        assert response.json() == {"instructor_id": "ghost", "badges": []}

    def test_recalculate_rebuilds_from_lesson_store(self, client, db):
        store_lesson(db, make_lesson("l1", price="60.00"))
        store_lesson(db, make_lesson("l2", price="40.00"))

        response = client.post(f"{STATS}/inst-a/stats/recalculate")
        assert response.status_code == 200
        body = response.json()
        assert body["lessons_replayed"] == 2
        assert body["stats"]["total_lessons"] == 2
        assert body["stats"]["total_earnings"] == 100.0

    def test_store_failure_is_503_and_persists_nothing(self, client, monkeypatch):
        def _fail(self, instructor_id, **deltas):
            raise OperationalError("UPDATE instructor_stats", {}, Exception("connection lost"))

        monkeypatch.setattr(InstructorStatsRepository, "increment_counters", _fail)
        response = client.post(f"{STATS}/stats/lesson-completed", json=_lesson_payload("l1"))
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "2"
        assert response.json()["code"] == "STORE_UNAVAILABLE"

        assert client.get(f"{STATS}/inst-a/stats").json()["is_estimate"] is True


class TestRankingRoutes:
    def _seed(self, client):
        client.post(
            f"{STATS}/stats/lesson-completed",
            json=_lesson_payload("l1", "inst-a", student_reviews=[]),
        )
        client.post(f"{STATS}/stats/lesson-completed", json=_lesson_payload("l2", "inst-b"))

    def test_refresh_then_top(self, client):
        self._seed(client)

        refreshed = client.post(f"{RANKINGS}/refresh")
        assert refreshed.status_code == 200
        assert refreshed.json()["status"] == "completed"
        assert refreshed.json()["instructors"] == 2

        top = client.get(f"{RANKINGS}/top").json()
        assert top["total"] == 2
        assert [item["instructor_id"] for item in top["instructors"]] == ["inst-b", "inst-a"]
        assert [item["rank"] for item in top["instructors"]] == [1, 2]
        assert all(item["rank_change"] == 0 for item in top["instructors"])

    def test_top_limit(self, client):
        self._seed(client)
        response = client.get(f"{RANKINGS}/top", params={"limit": 1})
        assert response.status_code == 200
        assert len(response.json()["instructors"]) == 1

        assert client.get(f"{RANKINGS}/top", params={"limit": 0}).status_code == 422

    def test_refresh_single_instructor(self, client):
        self._seed(client)
        assert client.post(f"{RANKINGS}/inst-a/refresh").json() == {
            "instructor_id": "inst-a",
            "rank": 2,
        }
        assert client.post(f"{RANKINGS}/ghost/refresh").json()["rank"] is None


class TestReviewRoutes:
    def test_submit_moderate_and_partition(self, client, db):
        store_lesson(db, make_lesson("l1"))

        submitted = client.post(
            f"{REVIEWS}/lessons/l1",
            json={"student_id": "student-1", "rating": 4, "comment": "Patient and clear"},
        )
        assert submitted.status_code == 200
        review = submitted.json()
        assert review["state"] == "pending"

        # Pending reviews still count toward the aggregate
        stats = client.get(f"{STATS}/inst-a/stats").json()
        assert stats["total_reviews"] == 1
        assert stats["positive_reviews"] == 1

        partitions = client.get(f"{REVIEWS}/instructor/inst-a").json()
        assert [r["id"] for r in partitions["pending"]] == [review["id"]]
        assert partitions["public"] == []

        moderated = client.post(f"{REVIEWS}/{review['id']}/moderate", json={"action": "approve"})
        assert moderated.status_code == 200
        assert moderated.json()["previous_state"] == "pending"
        assert moderated.json()["review"]["state"] == "approved"

        partitions = client.get(f"{REVIEWS}/instructor/inst-a").json()
        assert [r["id"] for r in partitions["public"]] == [review["id"]]
        assert partitions["pending"] == []

    def test_hide_is_idempotent(self, client, db):
        store_lesson(db, make_lesson("l1"))
        review_id = client.post(f"{REVIEWS}/lessons/l1", json={"rating": 2}).json()["id"]

        for _ in range(2):
            response = client.post(f"{REVIEWS}/{review_id}/moderate", json={"action": "hide"})
            assert response.json()["review"]["state"] == "hidden"
        assert response.json()["previous_state"] == "hidden"

    def test_duplicate_review_id_is_409(self, client, db):
        store_lesson(db, make_lesson("l1"))
        payload = {"id": "rev-1", "rating": 5}

        assert client.post(f"{REVIEWS}/lessons/l1", json=payload).status_code == 200
        response = client.post(f"{REVIEWS}/lessons/l1", json=payload)
        assert response.status_code == 409
        assert response.json()["code"] == "REVIEW_ALREADY_EXISTS"
        assert "Retry-After" not in response.headers

        assert client.get(f"{STATS}/inst-a/stats").json()["total_reviews"] == 1

    def test_unknown_action_is_400(self, client, db):
        store_lesson(db, make_lesson("l1"))
        review_id = client.post(f"{REVIEWS}/lessons/l1", json={"rating": 5}).json()["id"]

        response = client.post(f"{REVIEWS}/{review_id}/moderate", json={"action": "delete"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_MODERATION_ACTION"

    def test_unknown_review_or_lesson_is_404(self, client):
        response = client.post(f"{REVIEWS}/missing/moderate", json={"action": "approve"})
        assert response.status_code == 404
        assert response.json()["code"] == "REVIEW_NOT_FOUND"

        response = client.post(f"{REVIEWS}/lessons/missing", json={"rating": 5})
        assert response.status_code == 404
        assert response.json()["code"] == "LESSON_NOT_FOUND"

    def test_invalid_rating_is_rejected_before_storing(self, client, db):
        store_lesson(db, make_lesson("l1"))
        response = client.post(f"{REVIEWS}/lessons/l1", json={"rating": 0})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_RATING"
        assert client.get(f"{REVIEWS}/instructor/inst-a").json()["pending"] == []


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["service"] == "instructor-ranking"


def test_metrics_exposition(client):
    client.get(f"{STATS}/ghost/stats")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "instructor_ranking_service_operation_duration_seconds" in response.text
