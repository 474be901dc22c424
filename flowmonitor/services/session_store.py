"""
Session persistence collaborator.

SessionStore is the interface the lifecycle manager talks to. Every call may
fail; the manager treats failures as transient. RepositorySessionStore backs
it with the local SQLite repository.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from flowmonitor.data.repository import Repository
from flowmonitor.engine.models import InterventionEvent

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Payload for update_session:
        {"duration_seconds": float, "score": float,
         "metrics": {<MetricsSnapshot.as_dict()>}, "ended": bool (optional)}
    """

    def create_session(self) -> Any:
        raise NotImplementedError

    def update_session(self, session_id: Any, payload: dict) -> None:
        raise NotImplementedError

    def record_intervention(self, session_id: Any, event: InterventionEvent) -> Optional[Any]:
        return None

    def resolve_intervention(self, record_id: Any, completed: bool) -> None:
        return None


class RepositorySessionStore(SessionStore):
    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def create_session(self) -> int:
        record = self.repo.create_flow_session(datetime.now())
        logger.info("Flow session %d created.", record.id)
        return record.id

    def update_session(self, session_id: int, payload: dict) -> None:
        metrics = payload.get("metrics") or {}
        duration = float(payload.get("duration_seconds", 0.0))
        if payload.get("ended"):
            self.repo.end_flow_session(session_id, datetime.now(), duration)
            logger.info("Flow session %d ended after %.0f s.", session_id, duration)
            return
        self.repo.update_flow_session(
            session_id,
            duration_seconds=duration,
            score=float(payload.get("score", 0.0)),
            typing_rate=metrics.get("typing_rate_per_minute", 0.0),
            backspace_rate=metrics.get("backspace_rate_per_minute", 0.0),
            pointer_distance=metrics.get("pointer_distance_per_tick", 0.0),
            tab_switches=int(metrics.get("tab_switch_count", 0)),
            idle_seconds=metrics.get("idle_seconds", 0.0),
        )

    def record_intervention(self, session_id: int, event: InterventionEvent) -> int:
        record = self.repo.add_intervention(session_id, event.kind.value, event.reason)
        return record.id

    def resolve_intervention(self, record_id: int, completed: bool) -> None:
        self.repo.resolve_intervention(record_id, completed)
