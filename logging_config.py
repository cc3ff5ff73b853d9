"""
Logging setup for the study tracker API.

Development logs plain text, production logs one JSON object per line. Every
record emitted while a request is being handled carries that request's id,
which is also echoed back in the ``X-Request-ID`` response header.
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, has_request_context, request

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(request_id)s): %(message)s"
SLOW_REQUEST_MS = 1000
QUIET_PATHS = ("/api/health",)


class RequestIdFilter(logging.Filter):
    """Stamp records with the current request id, or ``-`` outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            rid = g.get("request_id", "-") if has_request_context() else "-"
            record.request_id = rid
        return True


class JSONFormatter(logging.Formatter):
    """Single-line JSON records."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def init_logging(app: Flask) -> None:
    """Configure the root logger from LOG_FORMAT / LOG_LEVEL and hook request logging."""
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if app.config.get("LOG_FORMAT", "text") == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    @app.before_request
    def _start_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.request_start = time.perf_counter()

    @app.after_request
    def _access_log(response):
        response.headers["X-Request-ID"] = g.get("request_id", "-")
        if request.path in QUIET_PATHS:
            return response

        elapsed_ms = (time.perf_counter() - g.get("request_start", time.perf_counter())) * 1000
        level = logging.WARNING if elapsed_ms > SLOW_REQUEST_MS else logging.INFO
        app.logger.log(
            level, "%s %s -> %d in %.0fms",
            request.method, request.path, response.status_code, elapsed_ms,
        )
        return response
