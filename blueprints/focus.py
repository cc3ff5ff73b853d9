"""Study timer routes.

Every handler holds ``TimerManager.lock`` and syncs the timer with the clock
before acting, so time that passed between requests is applied first.
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from analytics import daily_status, today_total_seconds
from extensions import TimerManager
from helpers import commit_timer_sessions, daily_thresholds, get_store, get_timer, json_body, today
from models import StudySession
from timer import MODES, StudyTimer

bp = Blueprint("focus", __name__)


def _payload(timer: StudyTimer, session: StudySession | None = None) -> dict:
    store = get_store()
    commit_timer_sessions(store)
    total = today_total_seconds(store.sessions, today()) + timer.in_progress_seconds()
    min_goal, max_limit = daily_thresholds()
    return {
        "timer": timer.status(),
        "session": session.to_dict() if session else None,
        "today_seconds": total,
        "daily_status": daily_status(total, min_goal, max_limit),
    }


@bp.route("/api/timer")
def api_timer_status():
    with TimerManager.lock:
        return jsonify(_payload(get_timer()))


@bp.route("/api/timer/select", methods=["POST"])
def api_timer_select():
    data = json_body()
    store = get_store()
    subject = store.subject(data.get("subject_id") or "")
    if subject is None:
        return jsonify({"error": "Subject not found"}), 404
    chapter_id = data.get("chapter_id") or None
    if chapter_id and subject.chapter(chapter_id) is None:
        return jsonify({"error": "Chapter not found"}), 404

    with TimerManager.lock:
        timer = get_timer()
        if not timer.select(subject.id, chapter_id):
            return jsonify({"error": "Cannot change subject while the timer is running"}), 400
        return jsonify(_payload(timer))


@bp.route("/api/timer/mode", methods=["POST"])
def api_timer_mode():
    data = json_body()
    mode = data.get("mode")
    if mode not in MODES:
        return jsonify({"error": f"Mode must be one of: {', '.join(MODES)}"}), 400

    with TimerManager.lock:
        timer = get_timer()
        if not timer.switch_mode(mode, confirm=bool(data.get("confirm", False))):
            return jsonify({
                "error": "The timer is running; confirm to stop it and switch modes",
                "requires_confirm": True,
            }), 400
        return jsonify(_payload(timer))


@bp.route("/api/timer/toggle", methods=["POST"])
def api_timer_toggle():
    with TimerManager.lock:
        timer = get_timer()
        if not timer.toggle():
            return jsonify({"error": "Select a subject before starting the timer"}), 400
        return jsonify(_payload(timer))


@bp.route("/api/timer/stop", methods=["POST"])
def api_timer_stop():
    with TimerManager.lock:
        timer = get_timer()
        session = timer.stop()
        return jsonify(_payload(timer, session))


@bp.route("/api/timer/tick", methods=["POST"])
def api_timer_tick():
    """Apply logical seconds by hand (default one)."""
    seconds = json_body().get("seconds", 1)
    if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 1:
        return jsonify({"error": "seconds must be a positive integer"}), 400

    with TimerManager.lock:
        timer = get_timer()
        session = timer.advance(seconds)
        return jsonify(_payload(timer, session))


@bp.route("/api/timer/focus", methods=["POST"])
def api_timer_focus():
    minutes = json_body().get("minutes")
    if isinstance(minutes, bool):
        minutes = None

    with TimerManager.lock:
        timer = get_timer()
        if not timer.set_focus_minutes(minutes):
            return jsonify({"error": "Focus length must be 1-180 minutes and the timer must be stopped"}), 400
        return jsonify(_payload(timer))
