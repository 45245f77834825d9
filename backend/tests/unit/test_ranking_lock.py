import pytest

from instructor_ranking.core import ranking_lock


class _FakeRedis:
    def __init__(self, held: bool = False, fail: bool = False):
        self.keys = {}
        self.held = held
        self.fail = fail

    def set(self, key, value, nx=False, ex=None):
        if self.fail:
            raise ConnectionError("redis down")
        if nx and (self.held or key in self.keys):
            return None
        self.keys[key] = (value, ex)
        return True

    def delete(self, key):
        return 1 if self.keys.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis(monkeypatch):
    client = _FakeRedis()
    monkeypatch.setattr(ranking_lock, "_get_sync_redis", lambda: client)
    return client


def test_lock_is_exclusive_and_released(fake_redis):
    with ranking_lock.ranking_pass_lock(ttl_s=30) as acquired:
        assert acquired is True
        key = ranking_lock._namespaced_key(ranking_lock.RANKING_PASS_LOCK_KEY)
        assert fake_redis.keys[key][1] == 30
        assert ranking_lock.acquire_ranking_lock() is False
    assert fake_redis.keys == {}


def test_blocked_lock_is_not_released(fake_redis):
    fake_redis.held = True
    with ranking_lock.ranking_pass_lock() as acquired:
        assert acquired is False


def test_redis_errors_degrade_to_acquired(fake_redis):
    fake_redis.fail = True
    assert ranking_lock.acquire_ranking_lock() is True


def test_missing_redis_degrades_to_acquired(monkeypatch):
    monkeypatch.setattr(ranking_lock, "_get_sync_redis", lambda: None)
    with ranking_lock.ranking_pass_lock() as acquired:
        assert acquired is True
