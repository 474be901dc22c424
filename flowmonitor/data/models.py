"""
Persisted row types for FlowMonitor.

Plain dataclasses mirroring the SQLite rows, so the store adapter and the
tests never handle raw sqlite3.Row objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class FlowSessionRecord:
    """One monitoring period, from start() to stop()."""
    id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    score: float = 0.0             # latest tick's score
    avg_score: float = 0.0
    peak_score: float = 0.0
    tick_count: int = 0
    typing_rate: float = 0.0
    backspace_rate: float = 0.0
    pointer_distance: float = 0.0
    tab_switches: int = 0
    idle_seconds: float = 0.0
    distractions: int = 0          # tab switches summed over the whole session


@dataclass
class InterventionRecord:
    """
    An intervention shown during a session.

    kind is an InterventionKind value: a rule-triggered 'fatigue', 'eye_strain'
    or 'distraction', or a scheduled 'breathing', 'posture' or 'hydration'.
    completed is None until the prompt is dismissed or expires.
    """
    id: Optional[int] = None
    session_id: Optional[int] = None
    kind: str = ""
    reason: str = ""
    triggered_at: Optional[datetime] = None
    completed: Optional[bool] = None
    resolved_at: Optional[datetime] = None
