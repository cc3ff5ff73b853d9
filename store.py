"""
Application state store.

Holds subjects, the session log, planner tasks, goals, chat history and recent
video searches. All changes go through the mutation methods below, which mark
the touched keys dirty; ``flush()`` writes every dirty snapshot in one commit.
Sessions finished by the timer are the exception: ``commit_sessions()`` writes
the session log through straight away, merged with whatever is stored.

Loading is forgiving: unreadable JSON falls back to the default for that key
and individual malformed entries are dropped, each with a logged warning.
"""

from __future__ import annotations

import json
import logging
import numbers
from collections.abc import Callable, Iterable
from datetime import date
from typing import Any, Optional

from database import SnapshotStore
from models import (
    Chapter,
    ChatMessage,
    PlannerTask,
    StudyGoals,
    StudySession,
    Subject,
    clamp_progress,
    default_subjects,
)

logger = logging.getLogger(__name__)

SUBJECTS = "subjects"
SESSIONS = "sessions"
TASKS = "tasks"
GOALS = "goals"
CHAT_HISTORY = "chat_history"
RECENT_SEARCHES = "recent_searches"

RECENT_SEARCH_LIMIT = 5
CHAT_HISTORY_LIMIT = 50


def _clean(name: Any) -> str:
    return name.strip() if isinstance(name, str) else ""


class StudyStore:
    """In-memory view of the persisted application state."""

    def __init__(self, backend: SnapshotStore, today: Callable[[], date] = date.today):
        self._backend = backend
        self._today = today
        self._dirty: set[str] = set()

        raw_subjects = self._backend.load(SUBJECTS)
        if raw_subjects is None:
            self._subjects = default_subjects()
            self._dirty.add(SUBJECTS)
        else:
            self._subjects = self._coerce_list(
                SUBJECTS, self._parse(SUBJECTS, raw_subjects), Subject.from_dict)
        self._sessions: list[StudySession] = self._coerce_list(
            SESSIONS, self._decode(SESSIONS), StudySession.from_dict)
        self._tasks: list[PlannerTask] = self._coerce_list(TASKS, self._decode(TASKS), PlannerTask.from_dict)
        self._goals = StudyGoals.from_dict(self._decode(GOALS))
        self._chat: list[ChatMessage] = self._coerce_list(
            CHAT_HISTORY, self._decode(CHAT_HISTORY), ChatMessage.from_dict)
        searches = self._decode(RECENT_SEARCHES)
        self._searches: list[str] = [s for s in searches if isinstance(s, str)] if isinstance(searches, list) else []

    # --- Loading ---

    def _decode(self, key: str) -> Any:
        return self._parse(key, self._backend.load(key))

    @staticmethod
    def _parse(key: str, raw: Optional[str]) -> Any:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (ValueError, TypeError):
            logger.warning("Discarding unreadable snapshot for %r", key)
            return None

    @staticmethod
    def _coerce_list(key: str, data: Any, factory: Callable[[Any], Any]) -> list:
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Snapshot %r is not a list; ignoring it", key)
            return []
        items = []
        for raw in data:
            item = factory(raw)
            if item is None:
                logger.warning("Skipping malformed %s entry: %r", key, raw)
                continue
            items.append(item)
        return items

    # --- Read access ---

    @property
    def subjects(self) -> list[Subject]:
        return list(self._subjects)

    @property
    def sessions(self) -> tuple[StudySession, ...]:
        return tuple(self._sessions)

    @property
    def tasks(self) -> list[PlannerTask]:
        return list(self._tasks)

    @property
    def goals(self) -> StudyGoals:
        return StudyGoals(**self._goals.to_dict())

    @property
    def chat_history(self) -> list[ChatMessage]:
        return list(self._chat)

    @property
    def recent_searches(self) -> list[str]:
        return list(self._searches)

    def subject(self, subject_id: str) -> Optional[Subject]:
        for s in self._subjects:
            if s.id == subject_id:
                return s
        return None

    def sessions_for_subject(self, subject_id: str) -> list[StudySession]:
        return [s for s in self._sessions if s.subject_id == subject_id]

    def tasks_for(self, day: str | None = None) -> list[PlannerTask]:
        day = day or self._today().isoformat()
        return [t for t in self._tasks if t.date == day]

    # --- Subjects & chapters ---

    def add_subject(self, name: str) -> Optional[Subject]:
        name = _clean(name)
        if not name:
            return None
        subject = Subject(name=name)
        self._subjects.append(subject)
        self._dirty.add(SUBJECTS)
        return subject

    def rename_subject(self, subject_id: str, name: str) -> bool:
        subject = self.subject(subject_id)
        name = _clean(name)
        if subject is None or not name:
            return False
        subject.name = name
        self._dirty.add(SUBJECTS)
        return True

    def delete_subject(self, subject_id: str) -> bool:
        """Remove a subject. Its logged sessions stay in the log."""
        subject = self.subject(subject_id)
        if subject is None:
            return False
        self._subjects.remove(subject)
        self._dirty.add(SUBJECTS)
        return True

    def add_chapter(self, subject_id: str, name: str) -> Optional[Chapter]:
        subject = self.subject(subject_id)
        name = _clean(name)
        if subject is None or not name:
            return None
        chapter = Chapter(name=name)
        subject.chapters.append(chapter)
        self._dirty.add(SUBJECTS)
        return chapter

    def rename_chapter(self, subject_id: str, chapter_id: str, name: str) -> bool:
        chapter = self._chapter(subject_id, chapter_id)
        name = _clean(name)
        if chapter is None or not name:
            return False
        chapter.name = name
        self._dirty.add(SUBJECTS)
        return True

    def remove_chapter(self, subject_id: str, chapter_id: str) -> bool:
        subject = self.subject(subject_id)
        chapter = subject.chapter(chapter_id) if subject else None
        if chapter is None:
            return False
        subject.chapters.remove(chapter)
        self._dirty.add(SUBJECTS)
        return True

    def update_chapter_progress(self, subject_id: str, chapter_id: str, progress: Any) -> Optional[int]:
        chapter = self._chapter(subject_id, chapter_id)
        if chapter is None:
            return None
        chapter.progress = clamp_progress(progress)
        self._dirty.add(SUBJECTS)
        return chapter.progress

    def _chapter(self, subject_id: str, chapter_id: str) -> Optional[Chapter]:
        subject = self.subject(subject_id)
        return subject.chapter(chapter_id) if subject else None

    # --- Session log ---

    def append_session(self, session: StudySession) -> Optional[StudySession]:
        """Append a committed session. Zero-length or duplicate records are ignored."""
        if session.duration <= 0 or not session.subject_id:
            return None
        if any(s.id == session.id for s in self._sessions):
            return None
        self._sessions.append(session)
        self._dirty.add(SESSIONS)
        return session

    def commit_sessions(self, sessions: Iterable[StudySession]) -> list[StudySession]:
        """Append sessions and write the log through in its own commit.

        Returns the sessions that were added. Another request may have saved
        sessions since this store was loaded, so the stored log is merged in
        by id before writing.
        """
        added = [s for s in sessions if self.append_session(s) is not None]
        if SESSIONS in self._dirty:
            self._merge_stored_sessions()
            self._backend.save(SESSIONS, self.snapshot(SESSIONS))
            self._backend.commit()
            self._dirty.discard(SESSIONS)
        return added

    def _merge_stored_sessions(self) -> None:
        stored = self._coerce_list(SESSIONS, self._decode(SESSIONS), StudySession.from_dict)
        known = {s.id for s in stored}
        self._sessions = stored + [s for s in self._sessions if s.id not in known]

    # --- Planner ---

    def add_task(self, title: str, time: str, day: str | None = None) -> Optional[PlannerTask]:
        title, time = _clean(title), _clean(time)
        if not title or not time:
            return None
        task = PlannerTask(title=title, time=time, date=day or self._today().isoformat())
        self._tasks.append(task)
        self._dirty.add(TASKS)
        return task

    def toggle_task(self, task_id: str) -> Optional[PlannerTask]:
        for task in self._tasks:
            if task.id == task_id:
                task.completed = not task.completed
                self._dirty.add(TASKS)
                return task
        return None

    def delete_task(self, task_id: str) -> bool:
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        if len(self._tasks) == before:
            return False
        self._dirty.add(TASKS)
        return True

    # --- Goals ---

    def set_goals(self, daily: Any, weekly: Any, monthly: Any) -> Optional[StudyGoals]:
        values = (daily, weekly, monthly)
        for v in values:
            if isinstance(v, bool) or not isinstance(v, numbers.Real) or v != v or v < 0:
                return None
        self._goals = StudyGoals(daily=float(daily), weekly=float(weekly), monthly=float(monthly))
        self._dirty.add(GOALS)
        return self.goals

    # --- Chat & searches ---

    def append_chat(self, role: str, text: str) -> ChatMessage:
        message = ChatMessage(role=role, text=text)
        self._chat.append(message)
        del self._chat[:-CHAT_HISTORY_LIMIT]
        self._dirty.add(CHAT_HISTORY)
        return message

    def clear_chat(self) -> None:
        self._chat = []
        self._dirty.add(CHAT_HISTORY)

    def record_search(self, query: str) -> list[str]:
        query = _clean(query)
        if query:
            self._searches = [query] + [s for s in self._searches if s != query]
            self._searches = self._searches[:RECENT_SEARCH_LIMIT]
            self._dirty.add(RECENT_SEARCHES)
        return self.recent_searches

    # --- Persistence boundary ---

    @property
    def dirty(self) -> bool:
        return bool(self._dirty)

    def snapshot(self, key: str) -> str:
        if key == SUBJECTS:
            data: Any = [s.to_dict() for s in self._subjects]
        elif key == SESSIONS:
            data = [s.to_dict() for s in self._sessions]
        elif key == TASKS:
            data = [t.to_dict() for t in self._tasks]
        elif key == GOALS:
            data = self._goals.to_dict()
        elif key == CHAT_HISTORY:
            data = [m.to_dict() for m in self._chat]
        elif key == RECENT_SEARCHES:
            data = list(self._searches)
        else:
            raise KeyError(key)
        return json.dumps(data)

    def flush(self) -> list[str]:
        """Write all dirty snapshots and commit once. Returns the keys written."""
        if not self._dirty:
            return []
        keys = sorted(self._dirty)
        for key in keys:
            if key == SESSIONS:
                self._merge_stored_sessions()
            self._backend.save(key, self.snapshot(key))
        self._backend.commit()
        self._dirty.clear()
        logger.debug("Flushed snapshots: %s", ", ".join(keys))
        return keys
