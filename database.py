"""
SQLite persistence for the study tracker.

Uses raw sqlite3 with WAL mode and parameterized queries. Application state is
kept as JSON snapshots, one row per key (subjects, sessions, tasks, goals,
chat_history, recent_searches), behind a plain load/save interface.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from flask import current_app, g

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Application state snapshots
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ''
);
"""


class SnapshotStore(Protocol):
    def load(self, key: str) -> Optional[str]: ...
    def save(self, key: str, snapshot: str) -> None: ...
    def commit(self) -> None: ...


class SqliteSnapshotStore:
    """Key-value snapshot storage over the ``snapshots`` table.

    ``save`` does not commit; the caller batches saves and calls ``commit``.
    """

    def __init__(self, db: sqlite3.Connection):
        self._db = db

    def load(self, key: str) -> Optional[str]:
        row = self._db.execute("SELECT payload FROM snapshots WHERE key = ?", (key,)).fetchone()
        return row["payload"] if row else None

    def save(self, key: str, snapshot: str) -> None:
        self._db.execute(
            "INSERT INTO snapshots (key, payload, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at",
            (key, snapshot, datetime.now().isoformat()),
        )

    def commit(self) -> None:
        self._db.commit()

    def keys(self) -> list[str]:
        return [r["key"] for r in self._db.execute("SELECT key FROM snapshots ORDER BY key").fetchall()]


def get_db() -> sqlite3.Connection:
    """Return a DB connection from Flask g, creating if needed."""
    if "db" not in g:
        db_path = current_app.config.get("DATABASE", str(Path(__file__).parent / "study_tracker.db"))
        g.db = sqlite3.connect(db_path)
        g.db.row_factory = sqlite3.Row
        g.db.execute("PRAGMA journal_mode=WAL")
    return g.db


def close_db(e=None) -> None:
    """Teardown handler: close DB connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db() -> None:
    """Execute schema DDL and record the schema version once."""
    db = get_db()
    db.executescript(SCHEMA)
    row = db.execute("SELECT 1 FROM schema_version WHERE version = ?", (SCHEMA_VERSION,)).fetchone()
    if not row:
        db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (SCHEMA_VERSION, datetime.now().isoformat()),
        )
        logger.info("Initialized database schema v%d", SCHEMA_VERSION)
    db.commit()


def init_app(app) -> None:
    """Register teardown and auto-init on first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_db():
        if not getattr(app, "_db_initialized", False):
            init_db()
            app._db_initialized = True
