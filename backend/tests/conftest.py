"""
Shared fixtures: an in-memory SQLite store and an API client.

Environment is pinned before the application package is imported so the
module-level engine and settings never point at a developer database.
"""

from datetime import datetime, timezone
import os

os.environ["CI"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("REDIS_URL", "redis://localhost:6390")

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from instructor_ranking import models  # noqa: E402,F401
from instructor_ranking.core import ranking_lock  # noqa: E402
from instructor_ranking.database import Base, get_db  # noqa: E402
from instructor_ranking.main import app  # noqa: E402
from instructor_ranking.services import instructor_stats_service  # noqa: E402


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def redis_unavailable(monkeypatch):
    """Ranking lock degrades to 'acquired' without Redis."""
    monkeypatch.setattr(ranking_lock, "_get_sync_redis", lambda: None)


class _FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def clock(monkeypatch):
    """Stats mutations see a fixed "now" (mid season 2025-2026); tests may move it."""
    fixed = _FixedClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(instructor_stats_service, "_utcnow", fixed)
    return fixed


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
