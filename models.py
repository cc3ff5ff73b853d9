"""
Domain records for the study tracker: subjects, chapters, sessions, tasks, goals.

Records are plain dataclasses. ``from_dict`` constructors perform best-effort
shape coercion so that older or hand-edited snapshots still load; entries that
cannot be coerced return ``None`` and are skipped by the store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Optional

DEFAULT_SUBJECTS = [
    "Bangla 1st paper", "Bangla 2nd paper", "English 1st paper",
    "English 2nd paper", "Math 1st paper", "Math 2nd paper",
    "Botany", "Zoology", "Chemistry 1st paper", "Chemistry 2nd paper",
    "Physics 1st paper", "Physics 2nd paper", "ICT", "Science",
]
DEFAULT_CHAPTER_COUNT = 15
TASK_SCORE = 10

MOTIVATIONAL_QUOTES = [
    "Success is the sum of small efforts, repeated day in and day out.",
    "Your only limit is your mind.",
    "Don't stop until you're proud.",
    "Study now, be proud later.",
    "The expert in anything was once a beginner.",
    "Believe in yourself and all that you are.",
]


def new_id() -> str:
    return uuid.uuid4().hex


def clamp_progress(value: Any) -> int:
    """Coerce a progress value to an int in 0-100."""
    try:
        progress = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, progress))


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


# ── Curriculum ─────────────────────────────────────────────


@dataclass
class Chapter:
    name: str
    progress: int = 0
    id: str = field(default_factory=new_id)

    @staticmethod
    def from_dict(data: Any) -> Optional[Chapter]:
        # Early snapshots stored chapters as bare names.
        if isinstance(data, str):
            return Chapter(name=data) if data.strip() else None
        if not isinstance(data, dict):
            return None
        name = _text(data.get("name"))
        if not name:
            return None
        return Chapter(
            name=name,
            progress=clamp_progress(data.get("progress", 0)),
            id=_text(data.get("id")) or new_id(),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Subject:
    name: str
    chapters: list[Chapter] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def chapter(self, chapter_id: str) -> Optional[Chapter]:
        for ch in self.chapters:
            if ch.id == chapter_id:
                return ch
        return None

    @staticmethod
    def from_dict(data: Any) -> Optional[Subject]:
        if not isinstance(data, dict):
            return None
        name = _text(data.get("name"))
        if not name:
            return None
        raw_chapters = data.get("chapters")
        chapters = []
        if isinstance(raw_chapters, list):
            for raw in raw_chapters:
                ch = Chapter.from_dict(raw)
                if ch is not None:
                    chapters.append(ch)
        return Subject(name=name, chapters=chapters, id=_text(data.get("id")) or new_id())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "chapters": [ch.to_dict() for ch in self.chapters],
        }


def default_subjects() -> list[Subject]:
    return [
        Subject(
            name=name,
            chapters=[Chapter(name=f"Chapter {i + 1}") for i in range(DEFAULT_CHAPTER_COUNT)],
        )
        for name in DEFAULT_SUBJECTS
    ]


# ── Session log ────────────────────────────────────────────


@dataclass(frozen=True)
class StudySession:
    """One committed block of study time. Never mutated after creation."""

    subject_id: str
    start_time: int  # epoch milliseconds
    duration: int  # whole seconds, > 0
    date: str  # YYYY-MM-DD, local date at commit time
    chapter_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    @staticmethod
    def from_dict(data: Any) -> Optional[StudySession]:
        if not isinstance(data, dict):
            return None
        subject_id = _text(data.get("subject_id", data.get("subjectId")))
        session_date = _text(data.get("date"))
        try:
            duration = int(data.get("duration", 0))
            start_time = int(data.get("start_time", data.get("startTime", 0)))
        except (TypeError, ValueError):
            return None
        if not subject_id or duration <= 0 or len(session_date) != 10:
            return None
        chapter_id = _text(data.get("chapter_id", data.get("chapterId"))) or None
        return StudySession(
            subject_id=subject_id,
            start_time=start_time,
            duration=duration,
            date=session_date,
            chapter_id=chapter_id,
            id=_text(data.get("id")) or new_id(),
        )

    def to_dict(self) -> dict:
        return asdict(self)


# ── Planner & goals ────────────────────────────────────────


@dataclass
class PlannerTask:
    title: str
    time: str
    date: str
    completed: bool = False
    score: int = TASK_SCORE
    id: str = field(default_factory=new_id)

    @staticmethod
    def from_dict(data: Any) -> Optional[PlannerTask]:
        if not isinstance(data, dict):
            return None
        title = _text(data.get("title"))
        task_date = _text(data.get("date"))
        if not title or not task_date:
            return None
        try:
            score = int(data.get("score", TASK_SCORE))
        except (TypeError, ValueError):
            score = TASK_SCORE
        return PlannerTask(
            title=title,
            time=_text(data.get("time")),
            date=task_date,
            completed=bool(data.get("completed", False)),
            score=score,
            id=_text(data.get("id")) or new_id(),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StudyGoals:
    daily: float = 10
    weekly: float = 70
    monthly: float = 300

    @staticmethod
    def from_dict(data: Any) -> StudyGoals:
        goals = StudyGoals()
        if not isinstance(data, dict):
            return goals
        for name in ("daily", "weekly", "monthly"):
            try:
                value = float(data.get(name))
            except (TypeError, ValueError):
                continue
            if value >= 0:
                setattr(goals, name, value)
        return goals

    def to_dict(self) -> dict:
        return asdict(self)


# ── AI collaborator records ────────────────────────────────


@dataclass
class StudyInsights:
    weak_subjects: list[str]
    strong_subjects: list[str]
    recommendation: str

    @staticmethod
    def from_dict(data: Any) -> Optional[StudyInsights]:
        if not isinstance(data, dict):
            return None
        weak = data.get("weakSubjects", data.get("weak_subjects"))
        strong = data.get("strongSubjects", data.get("strong_subjects"))
        recommendation = _text(data.get("recommendation"))
        if not isinstance(weak, list) or not isinstance(strong, list) or not recommendation:
            return None
        return StudyInsights(
            weak_subjects=[str(s) for s in weak],
            strong_subjects=[str(s) for s in strong],
            recommendation=recommendation,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChatMessage:
    role: str  # "user" or "ai"
    text: str

    @staticmethod
    def from_dict(data: Any) -> Optional[ChatMessage]:
        if not isinstance(data, dict):
            return None
        role = data.get("role")
        text = data.get("text")
        if role not in ("user", "ai") or not isinstance(text, str):
            return None
        return ChatMessage(role=role, text=text)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Video:
    title: str
    channel: str
    url: str
    thumbnail: str = ""
    duration: str = ""

    @staticmethod
    def from_dict(data: Any) -> Optional[Video]:
        if not isinstance(data, dict):
            return None
        title, channel, url = _text(data.get("title")), _text(data.get("channel")), _text(data.get("url"))
        if not (title and channel and url):
            return None
        return Video(
            title=title,
            channel=channel,
            url=url,
            thumbnail=_text(data.get("thumbnail")),
            duration=_text(data.get("duration")),
        )

    def to_dict(self) -> dict:
        return asdict(self)
