"""
Test fixtures for the study tracker.

Provides app, client, store and backend fixtures with file-based SQLite.
Gemini is mocked globally to avoid API calls during tests.
"""

from __future__ import annotations

import pytest
from unittest.mock import patch, MagicMock
from datetime import date

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

TODAY = date(2026, 3, 10)


@pytest.fixture(scope="session", autouse=True)
def mock_gemini():
    """Mock Google Generative AI globally to prevent API calls."""
    mock_genai = MagicMock()
    mock_genai.GenerativeModel.return_value.generate_content.return_value = MagicMock(
        text="Photosynthesis turns light energy into chemical energy."
    )

    with patch.dict("sys.modules", {
        "google.generativeai": mock_genai,
    }):
        yield mock_genai


@pytest.fixture(autouse=True)
def fresh_singletons():
    """Reset the process-wide timer, circuit breaker and response cache."""
    from ai_resilience import get_cache, get_circuit_breaker
    from extensions import TimerManager
    from timer import StudyTimer

    TimerManager.reset()
    # Frozen monotonic clock: time only moves through /api/timer/tick.
    TimerManager.install(StudyTimer(monotonic=lambda: 0.0))
    get_circuit_breaker().reset()
    get_cache().clear()
    yield
    TimerManager.reset()


class MemoryBackend:
    """Dict-backed SnapshotStore."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data = dict(data or {})
        self.commits = 0

    def load(self, key):
        return self.data.get(key)

    def save(self, key, snapshot):
        self.data[key] = snapshot

    def commit(self):
        self.commits += 1


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def memory_store(backend):
    from store import StudyStore
    return StudyStore(backend, today=lambda: TODAY)


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
        "GOOGLE_API_KEY": "test-key",
        "STREAK_REQUIRES_TODAY": False,
    })

    with app.app_context():
        from database import init_db
        init_db()

    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """Direct database access for persistence tests."""
    with app.app_context():
        from database import get_db
        yield get_db()


@pytest.fixture
def subject_id(client):
    """Id of the first seeded subject."""
    return client.get("/api/subjects").get_json()["subjects"][0]["id"]
