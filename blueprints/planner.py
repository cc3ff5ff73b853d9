"""Daily planner routes."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, jsonify, request

from analytics import task_completion
from helpers import get_store, json_body, today

bp = Blueprint("planner", __name__)


def _valid_date(value) -> bool:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return True


@bp.route("/api/tasks")
def api_tasks():
    day = request.args.get("date") or today().isoformat()
    if not _valid_date(day):
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    tasks = get_store().tasks_for(day)
    completed, total, rate = task_completion(tasks, date.fromisoformat(day))
    return jsonify({
        "date": day,
        "tasks": [t.to_dict() for t in tasks],
        "completed": completed,
        "total": total,
        "completion_rate": rate,
    })


@bp.route("/api/tasks", methods=["POST"])
def api_task_add():
    data = json_body()
    day = data.get("date") or None
    if day is not None and not _valid_date(day):
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    task = get_store().add_task(data.get("title"), data.get("time"), day)
    if task is None:
        return jsonify({"error": "Task title and time are required"}), 400
    return jsonify({"success": True, "task": task.to_dict()}), 201


@bp.route("/api/tasks/<task_id>/toggle", methods=["POST"])
def api_task_toggle(task_id):
    task = get_store().toggle_task(task_id)
    if task is None:
        return jsonify({"error": "Task not found"}), 404
    return jsonify({"success": True, "task": task.to_dict()})


@bp.route("/api/tasks/<task_id>", methods=["DELETE"])
def api_task_delete(task_id):
    if not get_store().delete_task(task_id):
        return jsonify({"error": "Task not found"}), 404
    return jsonify({"success": True})
