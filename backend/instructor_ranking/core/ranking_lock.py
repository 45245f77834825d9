"""
Redis mutex guarding the ranking batch pass.

Two overlapping passes would both read the same snapshot and race on the
rank columns. The pass is idempotent, so when Redis is unreachable the lock
degrades to "acquired" and the pass runs anyway.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

RANKING_PASS_LOCK_KEY = "rankings:pass:mutex"

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
            )
            client.ping()
        except Exception as exc:
            logger.warning("ranking_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_ranking_lock(ttl_s: Optional[int] = None) -> bool:
    ttl = ttl_s or settings.ranking_lock_ttl_seconds
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_ranking_lock("acquire", "redis_unavailable")
        return True
    try:
        acquired = bool(
            client.set(_namespaced_key(RANKING_PASS_LOCK_KEY), str(time.time()), nx=True, ex=ttl)
        )
    except Exception as exc:
        prometheus_metrics.record_ranking_lock("acquire", "error")
        logger.warning(
            "ranking_lock_acquire_failed",
            extra={"error": str(exc), "error_type": type(exc).__name__},
        )
        return True
    prometheus_metrics.record_ranking_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_ranking_lock() -> None:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_ranking_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_namespaced_key(RANKING_PASS_LOCK_KEY))
        prometheus_metrics.record_ranking_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_ranking_lock("release", "error")
        logger.warning(
            "ranking_lock_release_failed",
            extra={"error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def ranking_pass_lock(ttl_s: Optional[int] = None) -> Iterator[bool]:
    acquired = acquire_ranking_lock(ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_ranking_lock()
