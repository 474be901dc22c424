"""Unit tests for the data layer (database, repository, session store adapter)."""

import sqlite3
import pytest
from datetime import datetime, timedelta

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from flowmonitor.data.database import Database
from flowmonitor.data.repository import Repository
from flowmonitor.engine.models import InterventionEvent, InterventionKind, MetricsSnapshot
from flowmonitor.services import analytics
from flowmonitor.services.session_store import RepositorySessionStore


@pytest.fixture
def repo():
    """Create an in-memory database for testing."""
    db = Database(db_path=Path(":memory:"))
    return Repository(db.connect())


def finished_session(repo, start, scores, duration=600.0, tabs=0):
    s = repo.create_flow_session(start)
    for score in scores:
        repo.update_flow_session(s.id, duration, score, tab_switches=tabs)
    repo.end_flow_session(s.id, start + timedelta(seconds=duration), duration)
    return s.id


class TestFlowSession:
    def test_create_session(self, repo: Repository):
        now = datetime.now()
        s = repo.create_flow_session(now)
        assert s.id is not None
        loaded = repo.get_flow_session(s.id)
        assert loaded.start_time == now
        assert loaded.end_time is None
        assert loaded.tick_count == 0

    def test_update_keeps_running_aggregates(self, repo: Repository):
        s = repo.create_flow_session(datetime.now())
        repo.update_flow_session(s.id, 10.0, 60.0, typing_rate=30.0, tab_switches=2)
        repo.update_flow_session(s.id, 20.0, 80.0, typing_rate=50.0, tab_switches=3)

        loaded = repo.get_flow_session(s.id)
        assert loaded.score == 80.0
        assert loaded.avg_score == pytest.approx(70.0)
        assert loaded.peak_score == 80.0
        assert loaded.tick_count == 2
        assert loaded.typing_rate == 50.0
        assert loaded.tab_switches == 3
        assert loaded.distractions == 5
        assert loaded.duration_seconds == 20.0

    def test_update_missing_session(self, repo: Repository):
        with pytest.raises(LookupError):
            repo.update_flow_session(999, 10.0, 50.0)

    def test_end_and_list(self, repo: Repository):
        now = datetime.now()
        finished_session(repo, now - timedelta(days=1), [50.0])
        repo.create_flow_session(now)  # still open

        assert len(repo.list_flow_sessions()) == 1
        assert len(repo.list_flow_sessions(completed_only=False)) == 2
        assert len(repo.list_flow_sessions(start_after=now - timedelta(days=2))) == 1
        assert len(repo.list_flow_sessions(start_after=now + timedelta(days=1))) == 0


class TestInterventions:
    def test_add_and_resolve(self, repo: Repository):
        s = repo.create_flow_session(datetime.now())
        rec = repo.add_intervention(s.id, "eye_strain", "20-20-20")
        assert rec.completed is None

        repo.resolve_intervention(rec.id, completed=True)
        loaded = repo.list_interventions(s.id)
        assert len(loaded) == 1
        assert loaded[0].kind == "eye_strain"
        assert loaded[0].completed is True
        assert loaded[0].resolved_at is not None

    def test_unknown_session_rejected(self, repo: Repository):
        with pytest.raises(sqlite3.IntegrityError):
            repo.add_intervention(42, "fatigue", "tired")


class TestDashboardStats:
    def test_empty_stats(self, repo: Repository):
        stats = repo.get_dashboard_stats()
        assert stats["session_count"] == 0
        assert stats["avg_score"] is None

    def test_stats_with_data(self, repo: Repository):
        now = datetime.now()
        a = finished_session(repo, now - timedelta(days=1), [60.0, 80.0], tabs=1)
        finished_session(repo, now - timedelta(days=2), [40.0], duration=300.0)
        repo.add_intervention(a, "distraction", "tabs")
        repo.add_intervention(a, "distraction", "tabs")

        stats = repo.get_dashboard_stats()
        assert stats["session_count"] == 2
        assert stats["total_seconds"] == 900.0
        assert stats["avg_score"] == pytest.approx(55.0)
        assert stats["best_peak_score"] == 80.0
        assert stats["avg_distractions"] == 1.0
        assert stats["interventions_by_kind"] == {"distraction": 2}

    def test_export_csv(self, repo: Repository):
        assert repo.export_sessions_csv() == ""
        finished_session(repo, datetime.now(), [70.0])
        lines = repo.export_sessions_csv().splitlines()
        assert lines[0].startswith("id,start_time")
        assert len(lines) == 2


class TestRepositorySessionStore:
    def test_round_trip_through_store(self, repo: Repository):
        store = RepositorySessionStore(repo)
        sid = store.create_session()
        metrics = MetricsSnapshot(typing_rate_per_minute=42.0, tab_switch_count=2,
                                  idle_seconds=3.0).as_dict()
        store.update_session(sid, {"duration_seconds": 10.0, "score": 85.0, "metrics": metrics})

        loaded = repo.get_flow_session(sid)
        assert loaded.score == 85.0
        assert loaded.typing_rate == 42.0
        assert loaded.distractions == 2
        assert loaded.end_time is None

        store.update_session(sid, {"duration_seconds": 12.0, "score": 85.0,
                                   "metrics": metrics, "ended": True})
        loaded = repo.get_flow_session(sid)
        assert loaded.end_time is not None
        assert loaded.duration_seconds == 12.0
        assert loaded.tick_count == 1

    def test_interventions_through_store(self, repo: Repository):
        store = RepositorySessionStore(repo)
        sid = store.create_session()
        event = InterventionEvent(InterventionKind.FATIGUE, "tired", 0.0)
        record_id = store.record_intervention(sid, event)
        store.resolve_intervention(record_id, completed=False)
        [rec] = repo.list_interventions(sid)
        assert rec.kind == "fatigue"
        assert rec.completed is False

    def test_update_unknown_session_raises(self, repo: Repository):
        store = RepositorySessionStore(repo)
        with pytest.raises(LookupError):
            store.update_session(123, {"duration_seconds": 1.0, "score": 50.0, "metrics": {}})


class TestAnalytics:
    def test_range_bounds(self):
        start, end = analytics.range_bounds(7, now=datetime(2024, 3, 10, 15, 30))
        assert start == datetime(2024, 3, 3)
        assert end.date() == datetime(2024, 3, 10).date()
        assert end.hour == 23

    def test_empty_summary(self, repo: Repository):
        assert analytics.recent_summary(repo) == ["No completed flow sessions yet."]

    def test_summary_lines(self, repo: Repository):
        now = datetime.now()
        sid = finished_session(repo, now - timedelta(hours=2), [60.0, 80.0], duration=1200.0)
        repo.add_intervention(sid, "distraction", "tabs", triggered_at=now - timedelta(hours=2))
        followed = repo.add_intervention(sid, "posture", "scheduled",
                                         triggered_at=now - timedelta(hours=1))
        repo.resolve_intervention(followed.id, completed=True)

        lines = analytics.recent_summary(repo, now=now)
        assert "Sessions: 1" in lines
        assert "Average session: 20.0 min" in lines
        assert "Average score: 70.0" in lines
        assert "Best peak: 80" in lines
        assert "Interventions: distraction 1, posture 1" in lines
        assert lines[-1] == "Followed 1 of 1 prompts"

    def test_old_sessions_out_of_range(self, repo: Repository):
        finished_session(repo, datetime.now() - timedelta(days=90), [50.0])
        assert analytics.recent_summary(repo) == ["No completed flow sessions yet."]

    def test_follow_through_ignores_unresolved(self, repo: Repository):
        sid = finished_session(repo, datetime.now(), [50.0])
        a = repo.add_intervention(sid, "fatigue", "tired")
        b = repo.add_intervention(sid, "hydration", "water")
        repo.add_intervention(sid, "posture", "sit up")
        repo.resolve_intervention(a.id, completed=False)
        repo.resolve_intervention(b.id, completed=True)
        assert analytics.follow_through(repo.list_interventions()) == "Followed 1 of 2 prompts"
        assert analytics.follow_through([]) is None

    def test_export_csv(self, repo: Repository, tmp_path):
        out = tmp_path / "sessions.csv"
        assert analytics.export_csv(repo, out) is False
        assert not out.exists()

        finished_session(repo, datetime.now(), [70.0])
        assert analytics.export_csv(repo, out) is True
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("id,start_time")
        assert len(lines) == 2
