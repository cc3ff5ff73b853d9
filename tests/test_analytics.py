"""Tests for goal, streak, grade and progress analytics."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from analytics import (
    chapter_status,
    current_streak,
    daily_report,
    daily_series,
    daily_status,
    goal_percent,
    goal_progress,
    goal_status,
    grade_for,
    overall_progress,
    seconds_in_window,
    subject_hours,
    subject_progress,
    subject_time_breakdown,
    task_completion,
    today_total_seconds,
)
from models import Chapter, PlannerTask, StudyGoals, StudySession, Subject

TODAY = date(2026, 3, 10)
HOUR = 3600


def session(days_ago: int = 0, hours: float = 1, subject: str = "s1") -> StudySession:
    day = TODAY - timedelta(days=days_ago)
    return StudySession(subject_id=subject, start_time=0, duration=int(hours * HOUR), date=day.isoformat())


def task(completed: bool, day: date = TODAY) -> PlannerTask:
    return PlannerTask(title="Read", time="9:00", date=day.isoformat(), completed=completed)


# ── Totals & windows ────────────────────────────────────────


class TestTotals:
    def test_today_total_ignores_other_days(self):
        sessions = [session(0, 1), session(0, 0.5), session(1, 3)]
        assert today_total_seconds(sessions, TODAY) == int(1.5 * HOUR)

    def test_weekly_window_is_seven_days_inclusive(self):
        sessions = [session(6, 1), session(7, 1)]
        assert seconds_in_window(sessions, 7, TODAY) == HOUR

    def test_monthly_window_is_thirty_days_inclusive(self):
        sessions = [session(29, 2), session(30, 2)]
        assert seconds_in_window(sessions, 30, TODAY) == 2 * HOUR

    @pytest.mark.parametrize("hours,label", [
        (0, "Focusing..."),
        (5.9, "Focusing..."),
        (6, "Goal Met!"),
        (16, "Goal Met!"),
        (16.1, "Limit Reached"),
    ])
    def test_daily_status(self, hours, label):
        assert daily_status(int(hours * HOUR)) == label


# ── Goals ───────────────────────────────────────────────────


class TestGoals:
    def test_percent_clamped(self):
        assert goal_percent(15, 10) == 100
        assert goal_percent(5, 10) == 50

    def test_zero_goal_never_divides(self):
        assert goal_percent(0, 0) == 0
        assert goal_percent(2, 0) == 100

    @pytest.mark.parametrize("percent,label", [
        (100, "Goal Met"),
        (70, "On Track"),
        (69.9, "Grinding"),
        (30, "Grinding"),
        (29, "Starting"),
        (0, "Starting"),
    ])
    def test_status_labels(self, percent, label):
        assert goal_status(percent) == label

    def test_progress_for_all_windows(self):
        sessions = [session(0, 5), session(3, 7), session(20, 10)]
        progress = goal_progress(sessions, StudyGoals(daily=10, weekly=70, monthly=300), TODAY)

        assert progress["daily"]["current"] == 5
        assert progress["daily"]["percent"] == 50
        assert progress["weekly"]["current"] == 12
        assert progress["monthly"]["current"] == 22
        assert progress["weekly"]["days"] == 7
        assert progress["daily"]["status"] == "Grinding"


# ── Streak ──────────────────────────────────────────────────


class TestStreak:
    def test_empty_log(self):
        assert current_streak([], TODAY) == 0

    def test_consecutive_days_including_today(self):
        sessions = [session(d, 6) for d in range(3)]
        assert current_streak(sessions, TODAY) == 3

    def test_short_today_keeps_yesterdays_run(self):
        sessions = [session(0, 3), session(1, 8)]
        assert current_streak(sessions, TODAY) == 1

    def test_short_today_resets_when_required(self):
        sessions = [session(0, 3), session(1, 8)]
        assert current_streak(sessions, TODAY, require_today=True) == 0

    def test_gap_breaks_run(self):
        sessions = [session(0, 6), session(1, 6), session(3, 6)]
        assert current_streak(sessions, TODAY) == 2

    def test_multiple_sessions_sum_per_day(self):
        sessions = [session(0, 3), session(0, 3), session(1, 2)]
        assert current_streak(sessions, TODAY) == 1

    def test_custom_threshold(self):
        sessions = [session(0, 1), session(1, 1)]
        assert current_streak(sessions, TODAY, threshold_seconds=HOUR) == 2


# ── Grade ───────────────────────────────────────────────────


class TestGrade:
    @pytest.mark.parametrize("hours,rate,grade", [
        (12, 90, "A+"),
        (12, 89, "A"),
        (8, 70, "A"),
        (8, 69, "B"),
        (6, 50, "B"),
        (6, 0, "C"),
        (4, 0, "C"),
        (3.9, 100, "D"),
        (0.1, 0, "D"),
        (0, 100, "F"),
    ])
    def test_grade_table(self, hours, rate, grade):
        assert grade_for(hours, rate) == grade

    def test_task_completion_today_only(self):
        tasks = [task(True), task(False), task(True, TODAY - timedelta(days=1))]
        assert task_completion(tasks, TODAY) == (1, 2, 50.0)

    def test_no_tasks_gives_zero_rate(self):
        assert task_completion([], TODAY) == (0, 0, 0.0)

    def test_daily_report(self):
        sessions = [session(0, 8)]
        tasks = [task(True), task(True), task(True), task(False)]
        report = daily_report(sessions, tasks, TODAY)
        assert report["hours"] == 8
        assert report["task_rate"] == 75
        assert report["grade"] == "A"
        assert report["caption"] == "Great Work"
        assert report["completed_tasks"] == 3
        assert report["total_tasks"] == 4


# ── Curriculum progress & breakdowns ────────────────────────


class TestProgress:
    def test_subject_progress_rounds_half_up(self):
        subject = Subject(name="Physics", chapters=[Chapter("a", 50), Chapter("b", 51)])
        assert subject_progress(subject) == 51

    def test_empty_subject_is_zero(self):
        assert subject_progress(Subject(name="Empty")) == 0

    def test_overall_progress_averages_chapters(self):
        subjects = [
            Subject(name="A", chapters=[Chapter("1", 100)]),
            Subject(name="B", chapters=[Chapter("1", 0), Chapter("2", 50)]),
        ]
        assert overall_progress(subjects) == 50

    @pytest.mark.parametrize("progress,status", [
        (100, "Mastered"), (51, "In Progress"), (50, "Just Started"), (1, "Just Started"), (0, "Pending"),
    ])
    def test_chapter_status(self, progress, status):
        assert chapter_status(progress) == status

    def test_subject_hours(self):
        sessions = [session(0, 1.26, "s1"), session(1, 1, "s2")]
        assert subject_hours(sessions, "s1") == 1.3

    def test_breakdown_skips_deleted_subjects(self):
        subjects = [Subject(name="Physics", id="s1")]
        sessions = [session(0, 2, "s1"), session(0, 1, "gone")]
        assert subject_time_breakdown(sessions, subjects) == [{"name": "Physics", "hours": 2.0}]

    def test_daily_series_zero_filled_oldest_first(self):
        series = daily_series([session(0, 2), session(2, 1)], TODAY)
        assert len(series) == 7
        assert series[0]["date"] == "2026-03-04"
        assert series[-1] == {"date": "2026-03-10", "label": "03/10", "hours": 2.0}
        assert series[-3]["hours"] == 1.0
        assert series[1]["hours"] == 0
