"""Tests for record coercion in models.py."""

from __future__ import annotations

import dataclasses

import pytest

from models import (
    DEFAULT_CHAPTER_COUNT,
    DEFAULT_SUBJECTS,
    Chapter,
    ChatMessage,
    PlannerTask,
    StudyGoals,
    StudyInsights,
    StudySession,
    Subject,
    Video,
    clamp_progress,
    default_subjects,
)


class TestCoercion:
    @pytest.mark.parametrize("raw,expected", [(-5, 0), (150, 100), ("42", 42), (49.6, 50), (None, 0), ("x", 0)])
    def test_clamp_progress(self, raw, expected):
        assert clamp_progress(raw) == expected

    def test_chapter_from_bare_name(self):
        ch = Chapter.from_dict("Optics")
        assert ch.name == "Optics"
        assert ch.progress == 0

    def test_subject_skips_bad_chapters(self):
        subject = Subject.from_dict({"id": "p", "name": "Physics", "chapters": [
            {"name": "Waves", "progress": 120}, {"progress": 10}, 7, "Optics",
        ]})
        assert [c.name for c in subject.chapters] == ["Waves", "Optics"]
        assert subject.chapters[0].progress == 100

    def test_subject_without_name_rejected(self):
        assert Subject.from_dict({"name": "  "}) is None

    def test_session_accepts_camel_case(self):
        s = StudySession.from_dict({
            "id": "x", "subjectId": "p", "chapterId": "c", "startTime": 1000,
            "duration": 60, "date": "2026-03-10",
        })
        assert s.subject_id == "p"
        assert s.chapter_id == "c"
        assert s.start_time == 1000

    @pytest.mark.parametrize("raw", [
        {"subject_id": "p", "duration": 0, "date": "2026-03-10"},
        {"subject_id": "", "duration": 10, "date": "2026-03-10"},
        {"subject_id": "p", "duration": "abc", "date": "2026-03-10"},
        {"subject_id": "p", "duration": 10, "date": "3/10"},
        "not a dict",
    ])
    def test_invalid_sessions_rejected(self, raw):
        assert StudySession.from_dict(raw) is None

    def test_session_is_immutable(self):
        s = StudySession(subject_id="p", start_time=0, duration=5, date="2026-03-10")
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.duration = 10

    def test_task_defaults(self):
        task = PlannerTask.from_dict({"title": "Revise", "date": "2026-03-10"})
        assert task.score == 10
        assert task.completed is False

    def test_goals_fall_back_per_field(self):
        goals = StudyGoals.from_dict({"daily": "8", "weekly": -1, "monthly": None})
        assert goals.daily == 8
        assert goals.weekly == 70
        assert goals.monthly == 300

    def test_insights_shape(self):
        raw = {"weakSubjects": ["ICT"], "strongSubjects": ["Math"], "recommendation": "Sleep"}
        assert StudyInsights.from_dict(raw).weak_subjects == ["ICT"]
        assert StudyInsights.from_dict({"weakSubjects": "ICT"}) is None

    def test_chat_role_validated(self):
        assert ChatMessage.from_dict({"role": "system", "text": "x"}) is None
        assert ChatMessage.from_dict({"role": "ai", "text": "hi"}).text == "hi"

    def test_video_requires_url(self):
        assert Video.from_dict({"title": "t", "channel": "c"}) is None


class TestDefaults:
    def test_default_subjects(self):
        subjects = default_subjects()
        assert [s.name for s in subjects] == DEFAULT_SUBJECTS
        assert all(len(s.chapters) == DEFAULT_CHAPTER_COUNT for s in subjects)
        assert subjects[0].chapters[0].name == "Chapter 1"
        assert len({s.id for s in subjects}) == len(subjects)
