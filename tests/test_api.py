"""Integration tests for the JSON API."""

from __future__ import annotations

import json
import sqlite3
from unittest.mock import patch

from database import SqliteSnapshotStore
from extensions import TimerManager
from helpers import commit_timer_sessions
from models import MOTIVATIONAL_QUOTES
from store import StudyStore
from tutor import DEFAULT_RECOMMENDATION, EDUCATIONAL_CHANNELS, UNAVAILABLE_MESSAGE


def post(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type="application/json")


def patch_json(client, url, payload):
    return client.patch(url, data=json.dumps(payload), content_type="application/json")


def put(client, url, payload):
    return client.put(url, data=json.dumps(payload), content_type="application/json")


def run_stopwatch(client, subject_id, seconds):
    post(client, "/api/timer/select", {"subject_id": subject_id})
    post(client, "/api/timer/toggle")
    post(client, "/api/timer/tick", {"seconds": seconds})
    return post(client, "/api/timer/stop").get_json()


class TestHealthAndDashboard:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}
        assert resp.headers["X-Content-Type-Options"] == "nosniff"

    def test_dashboard_defaults(self, client):
        data = client.get("/api/dashboard").get_json()
        assert data["today_minutes"] == 0
        assert data["streak"] == 0
        assert data["daily_status"] == "Focusing..."
        assert len(data["subjects"]) == 14
        assert data["overall_progress"] == 0
        assert data["quote"] in MOTIVATIONAL_QUOTES
        assert data["timer"]["state"] == "idle"

    def test_dashboard_includes_running_stopwatch(self, client, subject_id):
        post(client, "/api/timer/select", {"subject_id": subject_id})
        post(client, "/api/timer/toggle")
        post(client, "/api/timer/tick", {"seconds": 125})
        data = client.get("/api/dashboard").get_json()
        assert data["today_seconds"] == 125
        assert data["today_minutes"] == 2


# ── Subjects & chapters ─────────────────────────────────────


class TestSubjects:
    def test_add_and_persist(self, client):
        resp = post(client, "/api/subjects", {"name": "Higher Math"})
        assert resp.status_code == 201
        sid = resp.get_json()["subject"]["id"]

        names = [s["name"] for s in client.get("/api/subjects").get_json()["subjects"]]
        assert "Higher Math" in names
        assert client.get(f"/api/subjects/{sid}").get_json()["chapter_count"] == 0

    def test_blank_name_rejected(self, client):
        resp = post(client, "/api/subjects", {"name": "  "})
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_rename_and_delete(self, client, subject_id):
        assert patch_json(client, f"/api/subjects/{subject_id}", {"name": "Bangla I"}).status_code == 200
        assert patch_json(client, f"/api/subjects/{subject_id}", {"name": ""}).status_code == 400
        assert client.delete(f"/api/subjects/{subject_id}").status_code == 200
        assert client.get(f"/api/subjects/{subject_id}").status_code == 404
        assert client.delete(f"/api/subjects/{subject_id}").status_code == 404

    def test_detail_lists_chapters_with_status(self, client, subject_id):
        data = client.get(f"/api/subjects/{subject_id}").get_json()
        assert len(data["chapters"]) == 15
        assert data["chapters"][0]["status"] == "Pending"
        assert data["recent_sessions"] == []

    def test_chapter_progress_and_rename(self, client, subject_id):
        chapter_id = client.get(f"/api/subjects/{subject_id}").get_json()["chapters"][0]["id"]
        url = f"/api/subjects/{subject_id}/chapters/{chapter_id}"

        data = patch_json(client, url, {"progress": 100, "name": "Poetry"}).get_json()
        assert data["chapter"]["status"] == "Mastered"
        assert data["chapter"]["name"] == "Poetry"
        assert data["subject_progress"] == 7  # 100 / 15 chapters, rounded

        assert patch_json(client, url, {"progress": 250}).get_json()["chapter"]["progress"] == 100
        assert patch_json(client, url, {}).status_code == 400
        assert patch_json(client, f"/api/subjects/{subject_id}/chapters/nope", {"progress": 5}).status_code == 404

    def test_add_and_remove_chapter(self, client, subject_id):
        resp = post(client, f"/api/subjects/{subject_id}/chapters", {"name": "Extra"})
        assert resp.status_code == 201
        chapter_id = resp.get_json()["chapter"]["id"]
        assert client.delete(f"/api/subjects/{subject_id}/chapters/{chapter_id}").status_code == 200
        assert client.delete(f"/api/subjects/{subject_id}/chapters/{chapter_id}").status_code == 404
        assert post(client, "/api/subjects/nope/chapters", {"name": "x"}).status_code == 404


# ── Timer ───────────────────────────────────────────────────


class TestTimer:
    def test_stopwatch_session_is_logged(self, client, subject_id):
        data = run_stopwatch(client, subject_id, 90)
        assert data["session"]["duration"] == 90
        assert data["session"]["subject_id"] == subject_id
        assert data["timer"]["seconds"] == 0
        assert data["today_seconds"] == 90

        detail = client.get(f"/api/subjects/{subject_id}").get_json()
        assert len(detail["recent_sessions"]) == 1

    def test_zero_length_stop_logs_nothing(self, client, subject_id):
        post(client, "/api/timer/select", {"subject_id": subject_id})
        post(client, "/api/timer/toggle")
        data = post(client, "/api/timer/stop").get_json()
        assert data["session"] is None
        assert client.get("/api/analytics").get_json()["total_sessions"] == 0

    def test_toggle_without_subject(self, client):
        resp = post(client, "/api/timer/toggle")
        assert resp.status_code == 400

    def test_select_unknown_subject(self, client, subject_id):
        assert post(client, "/api/timer/select", {"subject_id": "missing"}).status_code == 404
        resp = post(client, "/api/timer/select", {"subject_id": subject_id, "chapter_id": "missing"})
        assert resp.status_code == 404

    def test_mode_switch_requires_confirm_while_running(self, client, subject_id):
        post(client, "/api/timer/select", {"subject_id": subject_id})
        post(client, "/api/timer/toggle")
        post(client, "/api/timer/tick", {"seconds": 30})

        resp = post(client, "/api/timer/mode", {"mode": "pomodoro"})
        assert resp.status_code == 400
        assert resp.get_json()["requires_confirm"] is True

        data = post(client, "/api/timer/mode", {"mode": "pomodoro", "confirm": True}).get_json()
        assert data["timer"]["mode"] == "pomodoro"
        assert data["timer"]["seconds"] == 25 * 60
        assert data["today_seconds"] == 30

    def test_unknown_mode(self, client):
        assert post(client, "/api/timer/mode", {"mode": "lap"}).status_code == 400

    def test_pomodoro_focus_block(self, client, subject_id):
        assert post(client, "/api/timer/focus", {"minutes": 1}).status_code == 200
        post(client, "/api/timer/mode", {"mode": "pomodoro"})
        post(client, "/api/timer/select", {"subject_id": subject_id})
        post(client, "/api/timer/toggle")
        data = post(client, "/api/timer/tick", {"seconds": 60}).get_json()

        assert data["session"]["duration"] == 60
        assert data["timer"]["phase"] == "shortBreak"
        assert data["timer"]["focus_blocks"] == 1
        assert data["timer"]["state"] == "idle"
        assert client.get("/api/analytics").get_json()["total_sessions"] == 1

    def test_invalid_tick_and_focus(self, client):
        assert post(client, "/api/timer/tick", {"seconds": 0}).status_code == 400
        assert post(client, "/api/timer/tick", {"seconds": "5"}).status_code == 400
        assert post(client, "/api/timer/focus", {"minutes": 500}).status_code == 400
        assert post(client, "/api/timer/focus", {"minutes": True}).status_code == 400

    def test_status(self, client):
        data = client.get("/api/timer").get_json()
        assert data["timer"]["mode"] == "stopwatch"
        assert data["session"] is None

    def test_overlapping_requests_keep_both_sessions(self, app, client, subject_id):
        conn = sqlite3.connect(app.config["DATABASE"])
        conn.row_factory = sqlite3.Row
        try:
            # A slow request loads its state before another one logs a session.
            slow = StudyStore(SqliteSnapshotStore(conn))
            run_stopwatch(client, subject_id, 45)

            timer = TimerManager.get_timer()
            timer.toggle()
            timer.advance(30)
            timer.stop()
            with TimerManager.lock:
                assert commit_timer_sessions(slow) == 1
            slow.add_task("Read", "9:00")
            slow.flush()
        finally:
            conn.close()

        assert client.get("/api/analytics").get_json()["total_sessions"] == 2
        assert TimerManager.pending() == []

    def test_committed_session_survives_server_error(self, app, client, subject_id):
        app.config["PROPAGATE_EXCEPTIONS"] = False
        post(client, "/api/timer/select", {"subject_id": subject_id})
        post(client, "/api/timer/toggle")
        post(client, "/api/timer/tick", {"seconds": 30})
        post(client, "/api/timer/toggle")

        with patch("blueprints.focus.daily_status", side_effect=RuntimeError("boom")):
            resp = post(client, "/api/timer/mode", {"mode": "pomodoro", "confirm": True})
        assert resp.status_code == 500

        data = client.get("/api/analytics").get_json()
        assert data["total_sessions"] == 1
        assert data["today_seconds"] == 30


# ── Planner ─────────────────────────────────────────────────


class TestTasks:
    def test_task_lifecycle(self, client):
        resp = post(client, "/api/tasks", {"title": "Past paper", "time": "10:00 AM"})
        assert resp.status_code == 201
        task_id = resp.get_json()["task"]["id"]

        data = client.get("/api/tasks").get_json()
        assert [t["id"] for t in data["tasks"]] == [task_id]
        assert data["completion_rate"] == 0

        assert post(client, f"/api/tasks/{task_id}/toggle").get_json()["task"]["completed"] is True
        assert client.get("/api/tasks").get_json()["completion_rate"] == 100
        assert client.delete(f"/api/tasks/{task_id}").status_code == 200
        assert client.delete(f"/api/tasks/{task_id}").status_code == 404

    def test_validation(self, client):
        assert post(client, "/api/tasks", {"title": "Read"}).status_code == 400
        assert post(client, "/api/tasks", {"title": "Read", "time": "9", "date": "tomorrow"}).status_code == 400
        assert client.get("/api/tasks?date=2026-13-40").status_code == 400
        assert post(client, "/api/tasks/missing/toggle").status_code == 404

    def test_tasks_for_other_day(self, client):
        post(client, "/api/tasks", {"title": "Revise", "time": "8:00", "date": "2030-01-01"})
        assert client.get("/api/tasks?date=2030-01-01").get_json()["total"] == 1
        assert client.get("/api/tasks").get_json()["total"] == 0


# ── Goals & analytics ───────────────────────────────────────


class TestGoalsAndAnalytics:
    def test_default_goals(self, client):
        data = client.get("/api/goals").get_json()
        assert data["goals"] == {"daily": 10, "weekly": 70, "monthly": 300}
        assert data["progress"]["daily"]["status"] == "Starting"

    def test_partial_update(self, client):
        data = put(client, "/api/goals", {"daily": 8}).get_json()
        assert data["goals"]["daily"] == 8
        assert data["goals"]["weekly"] == 70
        assert client.get("/api/goals").get_json()["goals"]["daily"] == 8

    def test_invalid_goals(self, client):
        assert put(client, "/api/goals", {"daily": -2}).status_code == 400
        assert put(client, "/api/goals", {"weekly": "lots"}).status_code == 400
        assert client.get("/api/goals").get_json()["goals"]["daily"] == 10

    def test_analytics_after_study(self, client, subject_id):
        run_stopwatch(client, subject_id, 3600)
        post(client, "/api/tasks", {"title": "Read", "time": "9:00"})

        data = client.get("/api/analytics").get_json()
        assert data["report"]["hours"] == 1
        assert data["report"]["grade"] == "D"
        assert data["report"]["total_tasks"] == 1
        assert data["goals"]["daily"]["percent"] == 10
        assert data["streak"] == 0
        assert data["subject_breakdown"][0]["hours"] == 1.0
        assert len(data["daily_series"]) == 7
        assert data["daily_series"][-1]["hours"] == 1.0

    def test_report_pdf(self, client):
        resp = client.get("/api/analytics/report.pdf")
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")
        assert "attachment" in resp.headers["Content-Disposition"]


# ── AI collaborator ─────────────────────────────────────────


class TestAI:
    def test_chat_records_history(self, client):
        with patch("tutor.resilient_generate", return_value=("Inertia is...", {})) as gen:
            resp = post(client, "/api/ai/chat", {"message": "What is inertia?"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["reply"] == "Inertia is..."
        assert [m["role"] for m in data["history"]] == ["user", "ai"]
        assert '"subjects"' in gen.call_args.kwargs["system"]

        history = client.get("/api/ai/history").get_json()
        assert len(history["messages"]) == 2
        assert len(history["prompts"]) == 4

        assert client.delete("/api/ai/history").status_code == 200
        assert client.get("/api/ai/history").get_json()["messages"] == []

    def test_chat_failure_uses_fallback(self, client):
        with patch("tutor.resilient_generate", side_effect=RuntimeError("offline")):
            data = post(client, "/api/ai/chat", {"message": "Hello"}).get_json()
        assert data["reply"] == UNAVAILABLE_MESSAGE

    def test_blank_message(self, client):
        assert post(client, "/api/ai/chat", {"message": " "}).status_code == 400

    def test_insights(self, client):
        payload = {"weakSubjects": ["ICT"], "strongSubjects": ["Botany"], "recommendation": "Do ICT."}
        with patch("tutor.resilient_generate", return_value=(json.dumps(payload), {})):
            data = client.get("/api/ai/insights").get_json()
        assert data["weak_subjects"] == ["ICT"]
        assert data["fallback"] is False

    def test_insights_fallback(self, client):
        with patch("tutor.resilient_generate", side_effect=RuntimeError("quota")):
            data = client.get("/api/ai/insights").get_json()
        assert data["fallback"] is True
        assert data["recommendation"] == DEFAULT_RECOMMENDATION

    def test_video_search_records_recent(self, client):
        videos = [{"title": "Vectors", "channel": "ACS", "url": "https://youtu.be/dQw4w9WgXcQ"}]
        with patch("tutor.resilient_generate", return_value=(json.dumps(videos), {})):
            data = client.get("/api/videos/search?q=vectors&platform=ACS").get_json()
        assert data["videos"][0]["thumbnail"].endswith("/dQw4w9WgXcQ/maxresdefault.jpg")
        assert data["recent"] == ["vectors"]
        assert client.get("/api/videos/recent").get_json()["recent"] == ["vectors"]

    def test_video_search_failure_is_empty(self, client):
        with patch("tutor.resilient_generate", side_effect=RuntimeError("down")):
            data = client.get("/api/videos/search").get_json()
        assert data["videos"] == []
        assert data["query"] == "HSC Preparation"
        assert data["recent"] == []

    def test_channels(self, client):
        assert client.get("/api/videos/channels").get_json()["channels"] == EDUCATIONAL_CHANNELS
