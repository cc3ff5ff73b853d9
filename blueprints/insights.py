"""Goals, analytics and report card routes."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify

from analytics import (
    daily_report,
    daily_series,
    daily_status,
    goal_progress,
    overall_progress,
    subject_time_breakdown,
    today_total_seconds,
)
from helpers import daily_thresholds, get_store, json_body, streak_for, today

bp = Blueprint("insights", __name__)


# ── Goals ─────────────────────────────────────────────


@bp.route("/api/goals")
def api_goals():
    store = get_store()
    return jsonify({
        "goals": store.goals.to_dict(),
        "progress": goal_progress(list(store.sessions), store.goals, today()),
    })


@bp.route("/api/goals", methods=["PUT"])
def api_goals_update():
    """Update any of daily/weekly/monthly; missing fields keep their value."""
    store = get_store()
    current = store.goals.to_dict()
    data = json_body()
    merged = {k: data.get(k, current[k]) for k in ("daily", "weekly", "monthly")}

    goals = store.set_goals(**merged)
    if goals is None:
        return jsonify({"error": "Goals must be non-negative numbers"}), 400
    return jsonify({
        "success": True,
        "goals": goals.to_dict(),
        "progress": goal_progress(list(store.sessions), goals, today()),
    })


# ── Analytics ─────────────────────────────────────────


@bp.route("/api/analytics")
def api_analytics():
    store = get_store()
    sessions = list(store.sessions)
    day = today()
    total = today_total_seconds(sessions, day)
    min_goal, max_limit = daily_thresholds()

    return jsonify({
        "date": day.isoformat(),
        "goals": goal_progress(sessions, store.goals, day),
        "report": daily_report(sessions, store.tasks, day),
        "streak": streak_for(store),
        "today_seconds": total,
        "daily_status": daily_status(total, min_goal, max_limit),
        "overall_progress": overall_progress(store.subjects),
        "subject_breakdown": subject_time_breakdown(sessions, store.subjects),
        "daily_series": daily_series(sessions, day),
        "total_sessions": len(sessions),
    })


@bp.route("/api/analytics/report.pdf")
def api_report_pdf():
    """Download today's report card as a PDF."""
    from export import generate_report_pdf

    store = get_store()
    sessions = list(store.sessions)
    day = today()
    pdf_bytes = generate_report_pdf(
        daily_report(sessions, store.tasks, day),
        subject_time_breakdown(sessions, store.subjects),
        today=day,
        streak=streak_for(store),
    )
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="Study_Report_{day.isoformat()}.pdf"'
        },
    )
