"""Dashboard summary route."""

from __future__ import annotations

from flask import Blueprint, jsonify

from analytics import daily_status, overall_progress, subject_progress, task_completion, today_total_seconds
from extensions import TimerManager
from helpers import daily_thresholds, get_store, get_timer, streak_for, today
from models import MOTIVATIONAL_QUOTES

bp = Blueprint("dashboard", __name__)


def quote_of_the_day() -> str:
    return MOTIVATIONAL_QUOTES[today().toordinal() % len(MOTIVATIONAL_QUOTES)]


@bp.route("/api/dashboard")
def api_dashboard():
    store = get_store()
    with TimerManager.lock:
        timer = get_timer()
        in_progress = timer.in_progress_seconds()
        timer_status = timer.status()

    total = today_total_seconds(store.sessions, today()) + in_progress
    min_goal, max_limit = daily_thresholds()
    completed, total_tasks, _ = task_completion(store.tasks, today())

    return jsonify({
        "date": today().isoformat(),
        "today_seconds": total,
        "today_minutes": total // 60,
        "daily_status": daily_status(total, min_goal, max_limit),
        "completed_tasks": completed,
        "total_tasks": total_tasks,
        "streak": streak_for(store),
        "overall_progress": overall_progress(store.subjects),
        "subjects": [
            {"id": s.id, "name": s.name, "progress": subject_progress(s), "chapters": len(s.chapters)}
            for s in store.subjects
        ],
        "timer": timer_status,
        "quote": quote_of_the_day(),
    })
