"""
Study timer: stopwatch and Pomodoro state machine.

The timer only holds the in-flight run (elapsed or remaining seconds, phase,
active flag). When a run ends with time on the clock it builds a complete
StudySession and hands it to ``on_session_complete``; it never looks at or
edits the session history.

One call to ``tick()`` is one logical second. ``advance()`` applies several
ticks at once and ``sync()`` applies however many whole seconds have passed on
the monotonic clock since the last applied tick.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import date
from typing import Optional

from models import StudySession

logger = logging.getLogger(__name__)

STOPWATCH = "stopwatch"
POMODORO = "pomodoro"
MODES = (STOPWATCH, POMODORO)

FOCUS = "focus"
SHORT_BREAK = "shortBreak"
LONG_BREAK = "longBreak"

SHORT_BREAK_SECONDS = 5 * 60
LONG_BREAK_SECONDS = 15 * 60
LONG_BREAK_EVERY = 4

DEFAULT_FOCUS_MINUTES = 25
MIN_FOCUS_MINUTES = 1
MAX_FOCUS_MINUTES = 180

IDLE = "idle"
RUNNING = "running"
PAUSED = "paused"


class StudyTimer:
    """Single-user study timer."""

    def __init__(
        self,
        focus_minutes: int = DEFAULT_FOCUS_MINUTES,
        on_session_complete: Optional[Callable[[StudySession], None]] = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
    ):
        self.on_session_complete = on_session_complete
        self._clock = clock
        self._monotonic = monotonic
        self._today = today

        self.mode = STOPWATCH
        self.phase = FOCUS
        self.active = False
        self.focus_minutes = focus_minutes
        # Stopwatch: elapsed seconds. Pomodoro: remaining seconds of the phase.
        self.seconds = 0
        self.focus_blocks = 0
        self.subject_id: Optional[str] = None
        self.chapter_id: Optional[str] = None

        self._start_ms: Optional[int] = None
        self._last_sync: Optional[float] = None

    # --- Derived values ---

    @property
    def focus_seconds(self) -> int:
        return self.focus_minutes * 60

    def phase_seconds(self, phase: str | None = None) -> int:
        phase = phase or self.phase
        if phase == SHORT_BREAK:
            return SHORT_BREAK_SECONDS
        if phase == LONG_BREAK:
            return LONG_BREAK_SECONDS
        return self.focus_seconds

    @property
    def state(self) -> str:
        if self.active:
            return RUNNING
        if self.mode == STOPWATCH:
            return PAUSED if self.seconds > 0 else IDLE
        return PAUSED if self.seconds < self.phase_seconds() else IDLE

    def in_progress_seconds(self) -> int:
        """Seconds of the current run that count towards today's total."""
        if self.mode == STOPWATCH:
            return self.seconds
        if self.phase == FOCUS and self.active:
            return self.focus_seconds - self.seconds
        return 0

    def status(self) -> dict:
        return {
            "mode": self.mode,
            "phase": self.phase,
            "state": self.state,
            "active": self.active,
            "seconds": self.seconds,
            "phase_seconds": self.phase_seconds() if self.mode == POMODORO else None,
            "focus_minutes": self.focus_minutes,
            "focus_blocks": self.focus_blocks,
            "cycle_position": self.focus_blocks % LONG_BREAK_EVERY,
            "subject_id": self.subject_id,
            "chapter_id": self.chapter_id,
            "in_progress_seconds": self.in_progress_seconds(),
        }

    # --- User operations ---

    def select(self, subject_id: str, chapter_id: str | None = None) -> bool:
        if self.active or not subject_id:
            return False
        self.subject_id = subject_id
        self.chapter_id = chapter_id or None
        return True

    def toggle(self) -> bool:
        """Start when stopped, pause when running."""
        if self.active:
            self.active = False
            self._last_sync = None
            return True

        commits = self.mode == STOPWATCH or self.phase == FOCUS
        if commits and not self.subject_id:
            return False
        if commits and self._start_ms is None:
            self._start_ms = self._now_ms()
        self.active = True
        self._last_sync = self._monotonic()
        return True

    def stop(self) -> Optional[StudySession]:
        """End the run. Only a stopwatch run with elapsed time commits."""
        session = None
        if self.mode == STOPWATCH and self.seconds > 0:
            start = self._start_ms if self._start_ms is not None else self._now_ms() - self.seconds * 1000
            session = self._commit(self.seconds, start)

        self.active = False
        self._last_sync = None
        self._start_ms = None
        self.phase = FOCUS
        self.seconds = self.focus_seconds if self.mode == POMODORO else 0
        return session

    def switch_mode(self, mode: str, confirm: bool = False) -> bool:
        """Change mode. A running timer needs ``confirm`` and is stopped first."""
        if mode not in MODES:
            raise ValueError(f"Unknown timer mode: {mode}")
        if self.active and not confirm:
            return False
        self.stop()
        self.mode = mode
        self.phase = FOCUS
        self.seconds = self.focus_seconds if mode == POMODORO else 0
        return True

    def set_focus_minutes(self, minutes: int) -> bool:
        if self.active:
            return False
        if not isinstance(minutes, int) or not MIN_FOCUS_MINUTES <= minutes <= MAX_FOCUS_MINUTES:
            return False
        self.focus_minutes = minutes
        if self.mode == POMODORO and self.phase == FOCUS:
            self.seconds = self.focus_seconds
            self._start_ms = None
        return True

    # --- Clock ---

    def tick(self) -> Optional[StudySession]:
        return self.advance(1)

    def advance(self, seconds: int) -> Optional[StudySession]:
        if not self.active or seconds <= 0:
            return None
        if self._last_sync is not None:
            self._last_sync += seconds

        if self.mode == STOPWATCH:
            self.seconds += seconds
            return None

        if seconds < self.seconds:
            self.seconds -= seconds
            return None
        # Time past the end of the phase is dropped: the timer auto-stops.
        overshoot = seconds - self.seconds
        self.seconds = 0
        return self._complete_phase(ended_at=self._clock() - overshoot)

    def sync(self) -> Optional[StudySession]:
        if not self.active or self._last_sync is None:
            return None
        whole = int(self._monotonic() - self._last_sync)
        return self.advance(whole) if whole > 0 else None

    # --- Internals ---

    def _complete_phase(self, ended_at: float) -> Optional[StudySession]:
        self.active = False
        self._last_sync = None

        if self.phase != FOCUS:
            self.phase = FOCUS
            self.seconds = self.focus_seconds
            return None

        start = self._start_ms if self._start_ms is not None else int(ended_at * 1000) - self.focus_seconds * 1000
        session = self._commit(self.focus_seconds, start, day=self._date_at(ended_at))
        self._start_ms = None
        self.focus_blocks += 1
        self.phase = LONG_BREAK if self.focus_blocks % LONG_BREAK_EVERY == 0 else SHORT_BREAK
        self.seconds = self.phase_seconds()
        return session

    def _commit(self, duration: int, start_ms: int, day: date | None = None) -> StudySession:
        session = StudySession(
            subject_id=self.subject_id or "",
            chapter_id=self.chapter_id,
            start_time=start_ms,
            duration=duration,
            date=(day or self._today()).isoformat(),
        )
        logger.info("Committed %ds %s session for subject %s", duration, self.mode, session.subject_id)
        if self.on_session_complete is not None:
            self.on_session_complete(session)
        return session

    def _date_at(self, wall: float) -> date:
        """Local calendar day of wall-clock time ``wall``.

        A phase synced after midnight still lands on the day it ended.
        """
        days_ago = date.fromtimestamp(self._clock()) - date.fromtimestamp(wall)
        return self._today() - days_ago

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
