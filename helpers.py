"""
Shared helpers used across blueprints.

Extracted from app.py to break circular dependencies.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from flask import current_app, g, request

from analytics import SECONDS_PER_HOUR, current_streak
from database import SqliteSnapshotStore, get_db
from extensions import TimerManager
from store import StudyStore
from timer import StudyTimer
from tutor import StudyTutor


def today() -> date:
    return date.today()


def get_store() -> StudyStore:
    """Request-scoped application state, flushed by the app after the response."""
    if "store" not in g:
        g.store = StudyStore(SqliteSnapshotStore(get_db()), today=today)
    return g.store


def get_timer() -> StudyTimer:
    """Return the process-wide timer, brought up to date with the clock.

    Callers must hold ``TimerManager.lock``. Any sessions the timer committed
    since the last request are written to the database.
    """
    timer = TimerManager.get_timer(current_app.config.get("DEFAULT_FOCUS_MINUTES", 25))
    timer.sync()
    commit_timer_sessions(get_store())
    return timer


def commit_timer_sessions(store: StudyStore) -> int:
    """Persist the timer's finished sessions. Callers hold ``TimerManager.lock``.

    The outbox is only cleared once the write has committed, so an error later
    in the request cannot lose a session.
    """
    pending = TimerManager.pending()
    if not pending:
        return 0
    added = store.commit_sessions(pending)
    TimerManager.acknowledge(pending)
    return len(added)


def get_tutor() -> StudyTutor:
    cfg = current_app.config
    return StudyTutor(
        api_key=cfg.get("GOOGLE_API_KEY") or None,
        chat_model=cfg.get("CHAT_MODEL", "gemini-1.5-pro"),
        fast_model=cfg.get("FAST_MODEL", "gemini-2.0-flash"),
    )


def streak_for(store: StudyStore) -> int:
    cfg = current_app.config
    return current_streak(
        store.sessions,
        today(),
        threshold_seconds=int(cfg.get("STREAK_THRESHOLD_HOURS", 6) * SECONDS_PER_HOUR),
        require_today=bool(cfg.get("STREAK_REQUIRES_TODAY", False)),
    )


def daily_thresholds() -> tuple[int, int]:
    """(minimum goal, maximum limit) in seconds."""
    cfg = current_app.config
    return (
        int(cfg.get("MIN_DAILY_GOAL_HOURS", 6) * SECONDS_PER_HOUR),
        int(cfg.get("MAX_DAILY_LIMIT_HOURS", 16) * SECONDS_PER_HOUR),
    )


def json_body() -> dict[str, Any]:
    """The request's JSON object, or an empty dict for anything else."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
