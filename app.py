"""
Study Tracker: Flask Web Application

Single-user study dashboard: stopwatch/Pomodoro timer, session log, goals,
streaks, daily report card, planner and a Gemini-backed tutor.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from flask import Flask, Response, g, jsonify

import database
from blueprints import register_blueprints
from extensions import limiter

logger = logging.getLogger(__name__)


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    from config import config_by_name
    env = "testing" if test_config and test_config.get("TESTING") else os.environ.get("FLASK_ENV", "development")
    cfg = config_by_name.get(env, config_by_name["development"])
    app.config.from_object(cfg)
    if test_config is not None:
        app.config.update(test_config)
    elif hasattr(cfg, "validate"):
        cfg.validate()

    app.secret_key = app.config.get("SECRET_KEY")
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    # Register database teardown
    database.init_app(app)

    # Rate limiter (disabled in testing)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    register_blueprints(app)

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    # Dirty state is written once per request. Rejected mutations never mark
    # the store dirty. Timer sessions are already written by the time we get here.
    @app.after_request
    def flush_store(response: Response) -> Response:
        store = g.pop("store", None)
        if store is not None and response.status_code < 500 and store.dirty:
            store.flush()
        return response

    # Security headers
    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not app.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
