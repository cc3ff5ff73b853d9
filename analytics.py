"""
Read-side study analytics over the session log.

Everything here is a pure function of its inputs: the session list, the
subjects/tasks/goals and a reference date. Nothing mutates the log, so callers
recompute on every request.

Window filters compare ISO ``YYYY-MM-DD`` strings directly; that ordering is
only valid while dates stay zero-padded.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, timedelta

from models import PlannerTask, StudyGoals, StudySession, Subject

SECONDS_PER_HOUR = 3600
MIN_DAILY_GOAL_SECONDS = 6 * SECONDS_PER_HOUR
MAX_DAILY_LIMIT_SECONDS = 16 * SECONDS_PER_HOUR
STREAK_THRESHOLD_SECONDS = 6 * SECONDS_PER_HOUR
STREAK_SAFETY_CAP = 3650

GOAL_WINDOWS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}

GOAL_STATUS_THRESHOLDS = [
    (100, "Goal Met"),
    (70, "On Track"),
    (30, "Grinding"),
]

GRADE_RULES = [
    # (min hours, min task rate, grade); hours > 0 handled separately for D
    (12, 90, "A+"),
    (8, 70, "A"),
    (6, 50, "B"),
    (4, 0, "C"),
]

GRADE_CAPTIONS = {
    "A+": "Excellent",
    "A": "Great Work",
}


def _today(today: date | None) -> date:
    return today or date.today()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ── Daily totals ───────────────────────────────────────────


def daily_totals(sessions: Iterable[StudySession]) -> dict[str, int]:
    """Total seconds studied per date."""
    totals: dict[str, int] = defaultdict(int)
    for s in sessions:
        totals[s.date] += s.duration
    return dict(totals)


def today_total_seconds(sessions: Iterable[StudySession], today: date | None = None) -> int:
    day = _today(today).isoformat()
    return sum(s.duration for s in sessions if s.date == day)


def seconds_in_window(sessions: Iterable[StudySession], days: int, today: date | None = None) -> int:
    """Seconds dated within the trailing ``days`` days, today included."""
    end = _today(today)
    start = (end - timedelta(days=days - 1)).isoformat()
    end_str = end.isoformat()
    return sum(s.duration for s in sessions if start <= s.date <= end_str)


def daily_status(total_seconds: int,
                 min_goal_seconds: int = MIN_DAILY_GOAL_SECONDS,
                 max_limit_seconds: int = MAX_DAILY_LIMIT_SECONDS) -> str:
    """Informational label for today's running total; never blocks anything."""
    if total_seconds > max_limit_seconds:
        return "Limit Reached"
    if total_seconds >= min_goal_seconds:
        return "Goal Met!"
    return "Focusing..."


# ── Goal tracker ───────────────────────────────────────────


def goal_percent(current_hours: float, goal_hours: float) -> float:
    """Progress towards a goal, clamped to [0, 100]. A zero goal never divides."""
    if goal_hours <= 0:
        return 100.0 if current_hours > 0 else 0.0
    return max(0.0, min(current_hours / goal_hours * 100, 100.0))


def goal_status(percent: float) -> str:
    for threshold, label in GOAL_STATUS_THRESHOLDS:
        if percent >= threshold:
            return label
    return "Starting"


def goal_progress(sessions: list[StudySession], goals: StudyGoals,
                  today: date | None = None) -> dict[str, dict]:
    """Progress for the daily, weekly (7 days) and monthly (30 days) windows."""
    result = {}
    for window, days in GOAL_WINDOWS.items():
        current = seconds_in_window(sessions, days, today) / SECONDS_PER_HOUR
        goal = getattr(goals, window)
        percent = goal_percent(current, goal)
        result[window] = {
            "current": current,
            "goal": goal,
            "percent": percent,
            "status": goal_status(percent),
            "days": days,
        }
    return result


# ── Streak ─────────────────────────────────────────────────


def current_streak(sessions: Iterable[StudySession], today: date | None = None,
                   threshold_seconds: int = STREAK_THRESHOLD_SECONDS,
                   require_today: bool = False) -> int:
    """Count consecutive qualifying days ending today or yesterday.

    Today counts when it meets the threshold. The walk then always continues
    from yesterday, so a day that has not reached the threshold yet keeps the
    run that ended yesterday. With ``require_today`` a failing today resets
    the streak to 0 instead.
    """
    totals = daily_totals(sessions)
    day = _today(today)

    streak = 0
    if totals.get(day.isoformat(), 0) >= threshold_seconds:
        streak += 1
    elif require_today:
        return 0

    day -= timedelta(days=1)
    for _ in range(STREAK_SAFETY_CAP):
        if totals.get(day.isoformat(), 0) < threshold_seconds:
            break
        streak += 1
        day -= timedelta(days=1)
    return streak


# ── Grade ──────────────────────────────────────────────────


def grade_for(hours: float, task_rate: float) -> str:
    for min_hours, min_rate, grade in GRADE_RULES:
        if hours >= min_hours and task_rate >= min_rate:
            return grade
    if hours > 0:
        return "D"
    return "F"


def task_completion(tasks: Iterable[PlannerTask], today: date | None = None) -> tuple[int, int, float]:
    """Return (completed, total, rate%) for tasks dated today."""
    day = _today(today).isoformat()
    todays = [t for t in tasks if t.date == day]
    completed = sum(1 for t in todays if t.completed)
    rate = completed / len(todays) * 100 if todays else 0.0
    return completed, len(todays), rate


def daily_report(sessions: list[StudySession], tasks: list[PlannerTask],
                 today: date | None = None) -> dict:
    hours = today_total_seconds(sessions, today) / SECONDS_PER_HOUR
    completed, total, rate = task_completion(tasks, today)
    grade = grade_for(hours, rate)
    return {
        "hours": hours,
        "task_rate": rate,
        "completed_tasks": completed,
        "total_tasks": total,
        "grade": grade,
        "caption": GRADE_CAPTIONS.get(grade, "Keep Growing"),
    }


# ── Curriculum progress ────────────────────────────────────


def subject_progress(subject: Subject) -> int:
    if not subject.chapters:
        return 0
    return round_half_up(sum(ch.progress for ch in subject.chapters) / len(subject.chapters))


def overall_progress(subjects: Iterable[Subject]) -> int:
    chapters = [ch for s in subjects for ch in s.chapters]
    if not chapters:
        return 0
    return round_half_up(sum(ch.progress for ch in chapters) / len(chapters))


def chapter_status(progress: int) -> str:
    if progress == 100:
        return "Mastered"
    if progress > 50:
        return "In Progress"
    if progress > 0:
        return "Just Started"
    return "Pending"


# ── Breakdowns ─────────────────────────────────────────────


def subject_hours(sessions: Iterable[StudySession], subject_id: str) -> float:
    seconds = sum(s.duration for s in sessions if s.subject_id == subject_id)
    return round(seconds / SECONDS_PER_HOUR, 1)


def subject_time_breakdown(sessions: Iterable[StudySession], subjects: list[Subject]) -> list[dict]:
    """Cumulative hours per subject name, skipping sessions of deleted subjects."""
    names = {s.id: s.name for s in subjects}
    hours: dict[str, float] = {}
    for s in sessions:
        name = names.get(s.subject_id)
        if name is None:
            continue
        hours[name] = hours.get(name, 0.0) + s.duration / SECONDS_PER_HOUR
    return [{"name": name, "hours": round(h, 1)} for name, h in hours.items()]


def daily_series(sessions: Iterable[StudySession], today: date | None = None, days: int = 7) -> list[dict]:
    """Hours per day for the last ``days`` days, oldest first, zero-filled."""
    end = _today(today)
    dates = [(end - timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]
    totals = daily_totals(sessions)
    return [
        {"date": d, "label": d[5:].replace("-", "/"), "hours": round(totals.get(d, 0) / SECONDS_PER_HOUR, 1)}
        for d in dates
    ]
