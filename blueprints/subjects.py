"""Subject and chapter management routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from analytics import chapter_status, subject_hours, subject_progress
from helpers import get_store, json_body
from models import Subject

bp = Blueprint("subjects", __name__)

RECENT_SESSION_LIMIT = 10


def _summary(subject: Subject, sessions) -> dict:
    return {
        "id": subject.id,
        "name": subject.name,
        "progress": subject_progress(subject),
        "chapter_count": len(subject.chapters),
        "hours": subject_hours(sessions, subject.id),
    }


@bp.route("/api/subjects")
def api_subjects():
    store = get_store()
    sessions = store.sessions
    return jsonify({"subjects": [_summary(s, sessions) for s in store.subjects]})


@bp.route("/api/subjects", methods=["POST"])
def api_subject_add():
    store = get_store()
    subject = store.add_subject(json_body().get("name"))
    if subject is None:
        return jsonify({"error": "Subject name is required"}), 400
    return jsonify({"success": True, "subject": subject.to_dict()}), 201


@bp.route("/api/subjects/<subject_id>")
def api_subject_detail(subject_id):
    store = get_store()
    subject = store.subject(subject_id)
    if subject is None:
        return jsonify({"error": "Subject not found"}), 404

    sessions = store.sessions_for_subject(subject_id)
    recent = sorted(sessions, key=lambda s: s.start_time, reverse=True)[:RECENT_SESSION_LIMIT]
    chapter_names = {ch.id: ch.name for ch in subject.chapters}

    data = _summary(subject, sessions)
    data["chapters"] = [
        {**ch.to_dict(), "status": chapter_status(ch.progress)} for ch in subject.chapters
    ]
    data["recent_sessions"] = [
        {**s.to_dict(), "chapter_name": chapter_names.get(s.chapter_id)} for s in recent
    ]
    return jsonify(data)


@bp.route("/api/subjects/<subject_id>", methods=["PATCH"])
def api_subject_rename(subject_id):
    store = get_store()
    if store.subject(subject_id) is None:
        return jsonify({"error": "Subject not found"}), 404
    if not store.rename_subject(subject_id, json_body().get("name")):
        return jsonify({"error": "Subject name is required"}), 400
    return jsonify({"success": True, "subject": store.subject(subject_id).to_dict()})


@bp.route("/api/subjects/<subject_id>", methods=["DELETE"])
def api_subject_delete(subject_id):
    if not get_store().delete_subject(subject_id):
        return jsonify({"error": "Subject not found"}), 404
    return jsonify({"success": True})


# ── Chapters ──────────────────────────────────────────


@bp.route("/api/subjects/<subject_id>/chapters", methods=["POST"])
def api_chapter_add(subject_id):
    store = get_store()
    if store.subject(subject_id) is None:
        return jsonify({"error": "Subject not found"}), 404
    chapter = store.add_chapter(subject_id, json_body().get("name"))
    if chapter is None:
        return jsonify({"error": "Chapter name is required"}), 400
    return jsonify({"success": True, "chapter": chapter.to_dict()}), 201


@bp.route("/api/subjects/<subject_id>/chapters/<chapter_id>", methods=["PATCH"])
def api_chapter_update(subject_id, chapter_id):
    """Rename a chapter and/or set its progress."""
    store = get_store()
    subject = store.subject(subject_id)
    chapter = subject.chapter(chapter_id) if subject else None
    if chapter is None:
        return jsonify({"error": "Chapter not found"}), 404

    data = json_body()
    if "name" not in data and "progress" not in data:
        return jsonify({"error": "Nothing to update"}), 400
    if "name" in data and not store.rename_chapter(subject_id, chapter_id, data["name"]):
        return jsonify({"error": "Chapter name is required"}), 400
    if "progress" in data:
        store.update_chapter_progress(subject_id, chapter_id, data["progress"])

    return jsonify({
        "success": True,
        "chapter": {**chapter.to_dict(), "status": chapter_status(chapter.progress)},
        "subject_progress": subject_progress(subject),
    })


@bp.route("/api/subjects/<subject_id>/chapters/<chapter_id>", methods=["DELETE"])
def api_chapter_delete(subject_id, chapter_id):
    if not get_store().remove_chapter(subject_id, chapter_id):
        return jsonify({"error": "Chapter not found"}), 404
    return jsonify({"success": True})
