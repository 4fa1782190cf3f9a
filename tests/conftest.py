# tests/conftest.py

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database import Base, get_db, configure_sqlite
from models import QueueEntry
from core.space_manager import SpaceManager
from core.queue_manager import QueueManager
from services import clock

OWNER = "owner-1"

# --- In-memory SQLite, one shared connection ---
engine = configure_sqlite(create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    """Frozen UTC clock that tests move forward explicitly."""

    def __init__(self):
        self.now = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=0, minutes=0):
        self.now += timedelta(seconds=seconds, minutes=minutes)
        return self.now


@pytest.fixture(autouse=True)
def fake_clock(monkeypatch):
    fc = FakeClock()
    monkeypatch.setattr(clock, "utcnow", fc)
    return fc


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def space(db):
    return SpaceManager.create_space(db, "Office hours", OWNER, "Questions about the exam")


@pytest.fixture
def active_space(db, space):
    QueueManager.toggle_space_status(db, space.id, True, OWNER)
    return space


@pytest.fixture
def add_entry(db):
    """Insert a queue entry directly, bypassing the engine."""
    def _add(space_id, user_id, position, **fields):
        entry = QueueEntry(space_id=space_id, user_id=user_id, position=position, **fields)
        db.add(entry)
        db.commit()
        return entry
    return _add


@pytest.fixture
def snapshot(db):
    """Return [(user_id, position, is_current_speaker, is_paused)] ordered by position."""
    def _snapshot(space_id):
        db.expire_all()
        return [
            (e.user_id, e.position, e.is_current_speaker, e.is_paused)
            for e in QueueManager.get_queue(db, space_id)
        ]
    return _snapshot


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(db):
    """TestClient bound to the per-test session; the lifespan hook is not run."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
