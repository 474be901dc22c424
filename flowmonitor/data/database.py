"""
SQLite database initialization and connection management.

Single responsibility: own the connection and create tables.
All actual queries live in Repository.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "flow_monitor.db"

SCHEMA_SQL = """
-- Flow sessions ---------------------------------------------------------------
CREATE TABLE IF NOT EXISTS flow_sessions (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time          TEXT    NOT NULL,
    end_time            TEXT,
    duration_seconds    REAL    DEFAULT 0,
    score               REAL    DEFAULT 0,
    avg_score           REAL    DEFAULT 0,
    peak_score          REAL    DEFAULT 0,
    tick_count          INTEGER DEFAULT 0,
    typing_rate         REAL    DEFAULT 0,
    backspace_rate      REAL    DEFAULT 0,
    pointer_distance    REAL    DEFAULT 0,
    tab_switches        INTEGER DEFAULT 0,
    idle_seconds        REAL    DEFAULT 0,
    distractions        INTEGER DEFAULT 0
);

-- Interventions ---------------------------------------------------------------
CREATE TABLE IF NOT EXISTS interventions (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id      INTEGER NOT NULL REFERENCES flow_sessions(id),
    kind            TEXT    NOT NULL,
    reason          TEXT    NOT NULL DEFAULT '',
    triggered_at    TEXT    NOT NULL DEFAULT (datetime('now')),
    completed       INTEGER,
    resolved_at     TEXT
);

CREATE INDEX IF NOT EXISTS idx_sessions_start        ON flow_sessions(start_time);
CREATE INDEX IF NOT EXISTS idx_interventions_session ON interventions(session_id);
"""


class Database:
    """Thin wrapper around a SQLite connection."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.conn: Optional[sqlite3.Connection] = None

    # -- lifecycle -----------------------------------------------------------

    def connect(self) -> sqlite3.Connection:
        """Open (or return existing) connection and ensure schema exists."""
        if self.conn is not None:
            return self.conn
        logger.info("Connecting to SQLite at %s", self.db_path)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        if str(self.db_path) != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()
        return self.conn

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed.")

    # -- internal ------------------------------------------------------------

    def _create_tables(self) -> None:
        assert self.conn is not None
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()
        logger.info("Database schema ensured.")
