"""
Analytics — turns repository aggregates into the text the stats panel shows,
and writes the CSV export.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from flowmonitor.data.models import InterventionRecord
from flowmonitor.data.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30


def range_bounds(days: int = DEFAULT_RANGE_DAYS,
                 now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Midnight `days` ago through the end of today."""
    now = now or datetime.now()
    start = datetime.combine((now - timedelta(days=days)).date(), datetime.min.time())
    end = datetime.combine(now.date(), datetime.max.time())
    return start, end


def _minutes(seconds: Optional[float]) -> str:
    return "–" if seconds is None else f"{seconds / 60:.1f} min"


def _number(value: Optional[float], fmt: str = "{:.1f}") -> str:
    return "–" if value is None else fmt.format(value)


def summary_lines(stats: dict) -> List[str]:
    """Human-readable lines for a get_dashboard_stats() result."""
    if not stats["session_count"]:
        return ["No completed flow sessions yet."]
    lines = [
        f"Sessions: {stats['session_count']}",
        f"Total time: {_minutes(stats['total_seconds'])}",
        f"Average session: {_minutes(stats['avg_duration_seconds'])}",
        f"Average score: {_number(stats['avg_score'])}",
        f"Best peak: {_number(stats['best_peak_score'], '{:.0f}')}",
        f"Distractions per session: {_number(stats['avg_distractions'])}",
    ]
    by_kind = stats["interventions_by_kind"]
    if by_kind:
        parts = ", ".join(f"{kind} {n}" for kind, n in sorted(by_kind.items()))
        lines.append(f"Interventions: {parts}")
    return lines


def follow_through(records: Iterable[InterventionRecord]) -> Optional[str]:
    """'Followed 3 of 5 prompts' over resolved interventions, None if there are none."""
    resolved = [r for r in records if r.completed is not None]
    if not resolved:
        return None
    followed = sum(1 for r in resolved if r.completed)
    return f"Followed {followed} of {len(resolved)} prompts"


def recent_summary(repo: Repository, days: int = DEFAULT_RANGE_DAYS,
                   now: Optional[datetime] = None) -> List[str]:
    start, end = range_bounds(days, now)
    stats = repo.get_dashboard_stats(start_after=start, start_before=end)
    lines = summary_lines(stats)
    if stats["session_count"]:
        line = follow_through(
            r for r in repo.list_interventions()
            if r.triggered_at is not None and start <= r.triggered_at <= end
        )
        if line:
            lines.append(line)
    return lines


def export_csv(repo: Repository, path: Path) -> bool:
    """Write completed sessions to path. Returns False when there is nothing to write."""
    csv_text = repo.export_sessions_csv()
    if not csv_text:
        return False
    Path(path).write_text(csv_text, encoding="utf-8")
    logger.info("Exported sessions to %s", path)
    return True


def tick_caption(history: Dict[str, List[float]]) -> str:
    """One-line digest of FlowMonitor.get_history() for the live session."""
    scores = history.get("score", [])
    if not scores:
        return ""
    avg = sum(scores) / len(scores)
    tabs = sum(history.get("tab_switches", []))
    typing = history.get("typing_rate", [])
    typing_avg = sum(typing) / len(typing) if typing else 0.0
    return (f"Last {len(scores)} ticks: avg score {avg:.0f}, "
            f"{typing_avg:.0f} keys/min, {tabs:.0f} tab switches")
