"""AI tutor chat, study insights and educational video search routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from analytics import SECONDS_PER_HOUR, goal_progress, subject_hours, subject_progress, today_total_seconds
from extensions import limiter
from helpers import get_store, get_tutor, json_body, streak_for, today
from tutor import DEFAULT_RECOMMENDATION, DEFAULT_VIDEO_QUERY, EDUCATIONAL_CHANNELS, SMART_PROMPTS

bp = Blueprint("ai", __name__)


def _ai_limit() -> str:
    return current_app.config.get("AI_RATE_LIMIT", "30 per minute")


def _study_context(store) -> dict:
    """Compact study summary handed to the model."""
    sessions = list(store.sessions)
    return {
        "date": today().isoformat(),
        "today_hours": round(today_total_seconds(sessions, today()) / SECONDS_PER_HOUR, 1),
        "streak_days": streak_for(store),
        "goals": {k: round(v["percent"]) for k, v in goal_progress(sessions, store.goals, today()).items()},
        "subjects": [
            {
                "name": s.name,
                "progress": subject_progress(s),
                "hours": subject_hours(sessions, s.id),
            }
            for s in store.subjects
        ],
    }


# ── AI Tutor ──────────────────────────────────────────


@bp.route("/api/ai/chat", methods=["POST"])
@limiter.limit(_ai_limit)
def api_ai_chat():
    question = json_body().get("message")
    if not isinstance(question, str) or not question.strip():
        return jsonify({"error": "Message is required"}), 400

    store = get_store()
    store.append_chat("user", question.strip())
    reply = get_tutor().ask(question.strip(), _study_context(store))
    store.append_chat("ai", reply)
    return jsonify({"reply": reply, "history": [m.to_dict() for m in store.chat_history]})


@bp.route("/api/ai/history")
def api_ai_history():
    return jsonify({
        "messages": [m.to_dict() for m in get_store().chat_history],
        "prompts": SMART_PROMPTS,
    })


@bp.route("/api/ai/history", methods=["DELETE"])
def api_ai_history_clear():
    get_store().clear_chat()
    return jsonify({"success": True})


@bp.route("/api/ai/insights")
@limiter.limit(_ai_limit)
def api_ai_insights():
    store = get_store()
    context = _study_context(store)
    insights = get_tutor().insights(context["subjects"])
    if insights is None:
        return jsonify({
            "weak_subjects": [],
            "strong_subjects": [],
            "recommendation": DEFAULT_RECOMMENDATION,
            "fallback": True,
        })
    return jsonify({**insights.to_dict(), "fallback": False})


# ── Video Library ─────────────────────────────────────


@bp.route("/api/videos/search")
@limiter.limit(_ai_limit)
def api_video_search():
    query = (request.args.get("q") or "").strip()
    platform = (request.args.get("platform") or "").strip() or None
    store = get_store()
    if query:
        store.record_search(query)

    videos = get_tutor().search_videos(query or DEFAULT_VIDEO_QUERY, platform)
    return jsonify({
        "query": query or DEFAULT_VIDEO_QUERY,
        "platform": platform,
        "videos": [v.to_dict() for v in videos],
        "recent": store.recent_searches,
    })


@bp.route("/api/videos/recent")
def api_video_recent():
    return jsonify({"recent": get_store().recent_searches})


@bp.route("/api/videos/channels")
def api_video_channels():
    return jsonify({"channels": EDUCATIONAL_CHANNELS})
