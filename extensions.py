"""
Process-wide singletons: the rate limiter and the study timer.

The timer is ephemeral state and lives only in this process. Sessions it
commits are collected in an outbox and stay there until a request has written
them to the database.
"""

from __future__ import annotations

import threading
from typing import Optional

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from models import StudySession
from timer import StudyTimer

limiter = Limiter(key_func=get_remote_address, default_limits=["600 per hour"])


class TimerManager:
    """Lazy-loaded StudyTimer guarded by a lock."""

    _timer: Optional[StudyTimer] = None
    _outbox: list[StudySession] = []
    lock = threading.RLock()

    @classmethod
    def get_timer(cls, focus_minutes: int = 25) -> StudyTimer:
        if cls._timer is None:
            cls._timer = StudyTimer(focus_minutes=focus_minutes, on_session_complete=cls._outbox.append)
        return cls._timer

    @classmethod
    def install(cls, timer: StudyTimer) -> StudyTimer:
        """Replace the timer, wiring its commits into the outbox."""
        timer.on_session_complete = cls._outbox.append
        cls._timer = timer
        return timer

    @classmethod
    def pending(cls) -> list[StudySession]:
        return list(cls._outbox)

    @classmethod
    def acknowledge(cls, sessions: list[StudySession]) -> None:
        """Drop sessions that are safely in the database."""
        done = {s.id for s in sessions}
        cls._outbox[:] = [s for s in cls._outbox if s.id not in done]

    @classmethod
    def reset(cls):
        cls._timer = None
        cls._outbox.clear()
