"""
Repository — the single place where SQL lives.

Every other module talks to Repository, never to raw SQL.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from .models import FlowSessionRecord, InterventionRecord

logger = logging.getLogger(__name__)

# helper: parse ISO datetime strings from SQLite
_parse_dt = lambda s: datetime.fromisoformat(s) if s else None


class Repository:
    """Data-access layer wrapping a sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ── Sessions ────────────────────────────────────────────────────────────

    def create_flow_session(self, start_time: datetime) -> FlowSessionRecord:
        cur = self.conn.execute(
            "INSERT INTO flow_sessions (start_time) VALUES (?)",
            (start_time.isoformat(),),
        )
        self.conn.commit()
        return FlowSessionRecord(id=cur.lastrowid, start_time=start_time)

    def update_flow_session(
        self,
        session_id: int,
        duration_seconds: float,
        score: float,
        typing_rate: float = 0.0,
        backspace_rate: float = 0.0,
        pointer_distance: float = 0.0,
        tab_switches: int = 0,
        idle_seconds: float = 0.0,
    ) -> None:
        """Record one tick: latest values plus running average/peak/distractions."""
        cur = self.conn.execute(
            """UPDATE flow_sessions SET
                duration_seconds = ?, score = ?,
                avg_score = (avg_score * tick_count + ?) / (tick_count + 1),
                peak_score = MAX(peak_score, ?),
                tick_count = tick_count + 1,
                typing_rate = ?, backspace_rate = ?, pointer_distance = ?,
                tab_switches = ?, idle_seconds = ?,
                distractions = distractions + ?
            WHERE id = ?""",
            (
                duration_seconds, score, score, score,
                typing_rate, backspace_rate, pointer_distance,
                tab_switches, idle_seconds, tab_switches,
                session_id,
            ),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            raise LookupError(f"No flow session with id {session_id}")

    def end_flow_session(self, session_id: int, end_time: datetime,
                         duration_seconds: float) -> None:
        self.conn.execute(
            "UPDATE flow_sessions SET end_time = ?, duration_seconds = ? WHERE id = ?",
            (end_time.isoformat(), duration_seconds, session_id),
        )
        self.conn.commit()

    def get_flow_session(self, session_id: int) -> Optional[FlowSessionRecord]:
        row = self.conn.execute(
            "SELECT * FROM flow_sessions WHERE id = ?", (session_id,)
        ).fetchone()
        return self._row_to_session(row) if row else None

    def list_flow_sessions(
        self,
        start_after: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        completed_only: bool = True,
        limit: int = 500,
    ) -> List[FlowSessionRecord]:
        query = "SELECT * FROM flow_sessions"
        conditions: List[str] = []
        params: list = []

        if start_after:
            conditions.append("start_time >= ?")
            params.append(start_after.isoformat())
        if start_before:
            conditions.append("start_time <= ?")
            params.append(start_before.isoformat())
        if completed_only:
            conditions.append("end_time IS NOT NULL")

        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY start_time DESC LIMIT ?"
        params.append(limit)

        rows = self.conn.execute(query, params).fetchall()
        return [self._row_to_session(r) for r in rows]

    # ── Interventions ───────────────────────────────────────────────────────

    def add_intervention(self, session_id: int, kind: str, reason: str,
                         triggered_at: Optional[datetime] = None) -> InterventionRecord:
        ts = triggered_at or datetime.now()
        cur = self.conn.execute(
            "INSERT INTO interventions (session_id, kind, reason, triggered_at) "
            "VALUES (?, ?, ?, ?)",
            (session_id, kind, reason, ts.isoformat()),
        )
        self.conn.commit()
        return InterventionRecord(id=cur.lastrowid, session_id=session_id,
                                  kind=kind, reason=reason, triggered_at=ts)

    def resolve_intervention(self, intervention_id: int, completed: bool,
                             resolved_at: Optional[datetime] = None) -> None:
        ts = resolved_at or datetime.now()
        self.conn.execute(
            "UPDATE interventions SET completed = ?, resolved_at = ? WHERE id = ?",
            (int(completed), ts.isoformat(), intervention_id),
        )
        self.conn.commit()

    def list_interventions(self, session_id: Optional[int] = None) -> List[InterventionRecord]:
        if session_id is not None:
            rows = self.conn.execute(
                "SELECT * FROM interventions WHERE session_id = ? ORDER BY triggered_at, id",
                (session_id,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM interventions ORDER BY triggered_at, id"
            ).fetchall()
        return [self._row_to_intervention(r) for r in rows]

    # ── Aggregate helpers (for dashboard) ───────────────────────────────────

    def get_dashboard_stats(
        self,
        start_after: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
    ) -> dict:
        """Return aggregate stats over completed sessions."""
        sessions = self.list_flow_sessions(
            start_after=start_after, start_before=start_before, limit=10000,
        )
        if not sessions:
            return self._empty_stats()

        def avg(lst: list) -> Optional[float]:
            return sum(lst) / len(lst) if lst else None

        rows = self.conn.execute(
            "SELECT kind, COUNT(*) AS n FROM interventions GROUP BY kind"
        ).fetchall()

        return {
            "session_count": len(sessions),
            "total_seconds": sum(s.duration_seconds for s in sessions),
            "avg_duration_seconds": avg([s.duration_seconds for s in sessions]),
            "avg_score": avg([s.avg_score for s in sessions if s.tick_count]),
            "best_peak_score": max(s.peak_score for s in sessions),
            "avg_distractions": avg([s.distractions for s in sessions]),
            "interventions_by_kind": {r["kind"]: r["n"] for r in rows},
            "sessions": sessions,
        }

    @staticmethod
    def _empty_stats() -> dict:
        return {
            "session_count": 0,
            "total_seconds": 0.0,
            "avg_duration_seconds": None,
            "avg_score": None,
            "best_peak_score": None,
            "avg_distractions": None,
            "interventions_by_kind": {},
            "sessions": [],
        }

    # ── Data export ─────────────────────────────────────────────────────────

    def export_sessions_csv(self) -> str:
        """Return all completed sessions as CSV text."""
        rows = self.conn.execute(
            "SELECT * FROM flow_sessions WHERE end_time IS NOT NULL ORDER BY start_time"
        ).fetchall()
        if not rows:
            return ""
        headers = rows[0].keys()
        lines = [",".join(headers)]
        for r in rows:
            lines.append(",".join(str(r[h]) if r[h] is not None else "" for h in headers))
        return "\n".join(lines)

    # ── Row mappers ─────────────────────────────────────────────────────────

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> FlowSessionRecord:
        return FlowSessionRecord(
            id=row["id"],
            start_time=_parse_dt(row["start_time"]),
            end_time=_parse_dt(row["end_time"]),
            duration_seconds=row["duration_seconds"] or 0.0,
            score=row["score"] or 0.0,
            avg_score=row["avg_score"] or 0.0,
            peak_score=row["peak_score"] or 0.0,
            tick_count=row["tick_count"] or 0,
            typing_rate=row["typing_rate"] or 0.0,
            backspace_rate=row["backspace_rate"] or 0.0,
            pointer_distance=row["pointer_distance"] or 0.0,
            tab_switches=row["tab_switches"] or 0,
            idle_seconds=row["idle_seconds"] or 0.0,
            distractions=row["distractions"] or 0,
        )

    @staticmethod
    def _row_to_intervention(row: sqlite3.Row) -> InterventionRecord:
        completed = row["completed"]
        return InterventionRecord(
            id=row["id"], session_id=row["session_id"],
            kind=row["kind"], reason=row["reason"],
            triggered_at=_parse_dt(row["triggered_at"]),
            completed=None if completed is None else bool(completed),
            resolved_at=_parse_dt(row["resolved_at"]),
        )


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The Repository is the ONLY place raw SQL queries live. The session store
#   adapter calls repo.update_flow_session() instead of writing SQL strings.
#
# Key methods:
#   - create/update/end for flow sessions; update folds each tick into a
#     running average, a peak, and a distraction total in a single UPDATE.
#   - add/resolve for interventions, so we know which prompts were followed.
#   - get_dashboard_stats() and export_sessions_csv() for reporting.
#
# Interviewer-friendly talking points:
#   1. Running aggregates in SQL: avg_score is updated incrementally with
#      tick_count, so no per-tick history table is needed.
#   2. update_flow_session raises LookupError on a missing id, which the
#      store adapter surfaces to the engine as a (logged) persistence failure.
