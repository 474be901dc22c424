"""Unit tests for the engine: scheduler, collector, aggregation, scoring, policy."""

import math
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from flowmonitor.engine import interventions, scorer
from flowmonitor.engine.aggregator import AggregationWindow, path_distance
from flowmonitor.engine.animator import ScoreAnimator, flow_level
from flowmonitor.engine.clock import ManualScheduler
from flowmonitor.engine.collector import SignalCollector
from flowmonitor.engine.events import EventBus, EventKind, InputEvent
from flowmonitor.engine.models import InterventionKind, MetricsSnapshot


def snap(typing=0.0, backspace=0.0, pointer=0.0, tabs=0, idle=0.0):
    return MetricsSnapshot(
        typing_rate_per_minute=typing,
        backspace_rate_per_minute=backspace,
        pointer_distance_per_tick=pointer,
        tab_switch_count=tabs,
        idle_seconds=idle,
    )


@pytest.fixture
def sched():
    return ManualScheduler()


@pytest.fixture
def collector(sched):
    return SignalCollector(sched.now)


class TestManualScheduler:
    def test_call_every_fires_per_period(self, sched):
        calls = []
        sched.call_every(1000, lambda: calls.append(sched.now()))
        sched.advance(3500)
        assert calls == [1000, 2000, 3000]
        assert sched.now() == 3500

    def test_cancel_stops_timer(self, sched):
        calls = []
        handle = sched.call_every(1000, lambda: calls.append(1))
        sched.advance(1000)
        handle.cancel()
        handle.cancel()  # idempotent
        sched.advance(5000)
        assert len(calls) == 1
        assert sched.active_timer_count == 0

    def test_call_later_fires_once(self, sched):
        calls = []
        sched.call_later(500, lambda: calls.append(sched.now()))
        sched.advance(2000)
        assert calls == [500]

    def test_defer_never_runs_inline(self, sched):
        calls = []
        sched.defer(lambda: calls.append("deferred"))
        assert calls == []
        sched.advance(0)
        assert calls == ["deferred"]


class TestSignalCollector:
    def test_counts_keys_and_backspaces(self, collector):
        collector.record(InputEvent(EventKind.KEY_DOWN, key="a"))
        collector.record(InputEvent(EventKind.KEY_DOWN, key="Backspace"))
        collector.record(InputEvent(EventKind.KEY_DOWN, key="Delete"))
        assert collector.key_count == 3
        assert collector.backspace_count == 2
        assert len(collector.keystroke_times) == 3

    def test_tab_switches(self, collector):
        collector.record(InputEvent(EventKind.VISIBILITY_CHANGE, hidden=True))
        collector.record(InputEvent(EventKind.VISIBILITY_CHANGE, hidden=False))
        collector.record(InputEvent(EventKind.WINDOW_BLUR))
        assert collector.tab_switch_count == 2

    def test_pointer_ring_buffer_keeps_last_n(self, sched):
        n = 50
        collector = SignalCollector(sched.now, pointer_capacity=n)
        for i in range(n + 5):
            collector.record(InputEvent(EventKind.POINTER_MOVE, x=i, y=0, timestamp=i))
        assert len(collector.pointer_trace) == n
        assert [s[0] for s in collector.pointer_trace] == [float(i) for i in range(5, n + 5)]

    def test_keystroke_ring_buffer_evicts_oldest(self, sched):
        collector = SignalCollector(sched.now, keystroke_capacity=3)
        for t in (1, 2, 3, 4):
            collector.record(InputEvent(EventKind.KEY_DOWN, key="x", timestamp=t))
        assert list(collector.keystroke_times) == [2, 3, 4]
        assert collector.key_count == 4

    @pytest.mark.parametrize("event", [
        InputEvent(EventKind.POINTER_MOVE, x=None, y=3),
        InputEvent(EventKind.POINTER_MOVE, x=float("nan"), y=3),
        InputEvent(EventKind.POINTER_MOVE, x=True, y=3),
        InputEvent(EventKind.VISIBILITY_CHANGE, hidden=None),
        InputEvent(EventKind.KEY_DOWN, key=42),
        InputEvent(EventKind.KEY_DOWN, key="a", timestamp=1e18),
        InputEvent(EventKind.POINTER_MOVE, x=1, y=1, timestamp=5000),
    ])
    def test_malformed_events_are_discarded(self, collector, event):
        collector.record(event)
        assert collector.key_count == 0
        assert collector.tab_switch_count == 0
        assert len(collector.pointer_trace) == 0
        assert collector.discarded == 1

    def test_activity_updates_last_activity(self, sched, collector):
        sched.advance(4000)
        collector.record(InputEvent(EventKind.POINTER_CLICK))
        assert collector.last_activity == 4000
        collector.record(InputEvent(EventKind.WINDOW_BLUR))
        assert collector.last_activity == 4000

    def test_future_timestamp_does_not_freeze_idle(self, sched, collector):
        window = AggregationWindow(collector)
        collector.record(InputEvent(EventKind.KEY_DOWN, key="a", timestamp=1e18))
        sched.advance(120_000)
        s = window.tick(sched.now())
        assert s.idle_seconds == pytest.approx(120.0)
        assert s.typing_rate_per_minute == 0
        assert collector.discarded == 1

    def test_late_event_does_not_rewind_activity(self, sched, collector):
        sched.advance(5000)
        collector.record(InputEvent(EventKind.POINTER_CLICK))
        collector.record(InputEvent(EventKind.KEY_DOWN, key="a", timestamp=1000))
        assert collector.last_activity == 5000
        assert collector.key_count == 1

    def test_attach_and_detach(self, collector):
        bus = EventBus()
        collector.attach(bus)
        assert bus.subscriber_count() == len(EventKind)
        bus.publish(InputEvent(EventKind.KEY_DOWN, key="a"))
        collector.detach()
        assert bus.subscriber_count() == 0
        bus.publish(InputEvent(EventKind.KEY_DOWN, key="b"))
        assert collector.key_count == 1


class TestAggregationWindow:
    def test_path_distance(self):
        assert path_distance([(0, 0, 0), (3, 4, 1), (6, 8, 2)]) == pytest.approx(10.0)
        assert path_distance([(5, 5, 0)]) == 0.0
        assert path_distance([]) == 0.0

    def test_tick_computes_rates(self, sched, collector):
        window = AggregationWindow(collector, period_s=10)
        for key in ("a", "b", "Backspace"):
            collector.record(InputEvent(EventKind.KEY_DOWN, key=key))
        for x, y in ((0, 0), (30, 40), (60, 80)):
            collector.record(InputEvent(EventKind.POINTER_MOVE, x=x, y=y))
        collector.record(InputEvent(EventKind.WINDOW_BLUR))
        sched.advance(4000)

        s = window.tick(sched.now())
        assert s.typing_rate_per_minute == 18
        assert s.backspace_rate_per_minute == 6
        assert s.pointer_distance_per_tick == pytest.approx(10.0)
        assert s.tab_switch_count == 1
        assert s.idle_seconds == pytest.approx(4.0)

    def test_tick_resets_window_but_keeps_rhythm(self, sched, collector):
        window = AggregationWindow(collector)
        collector.record(InputEvent(EventKind.KEY_DOWN, key="a"))
        collector.record(InputEvent(EventKind.POINTER_MOVE, x=1, y=1))
        window.tick(sched.now())
        assert collector.key_count == 0
        assert collector.tab_switch_count == 0
        assert len(collector.pointer_trace) == 0
        assert len(collector.keystroke_times) == 1

    def test_empty_ticks(self, sched, collector):
        window = AggregationWindow(collector)
        sched.advance(10_000)
        first = window.tick(sched.now())
        sched.advance(10_000)
        second = window.tick(sched.now())
        for s in (first, second):
            assert s.typing_rate_per_minute == 0
            assert s.backspace_rate_per_minute == 0
            assert s.tab_switch_count == 0
        assert second.idle_seconds >= first.idle_seconds

    def test_rejects_bad_period(self, collector):
        with pytest.raises(ValueError):
            AggregationWindow(collector, period_s=0)


class TestFlowScorer:
    def test_all_zero_snapshot(self):
        # typing -10, tabs +15, backspace +10, idle +5
        assert scorer.score(snap()) == 70

    def test_flow_scenario_is_clamped(self):
        s = snap(typing=70, backspace=2, pointer=50, tabs=1, idle=1)
        assert scorer.score(s) == 100

    def test_distraction_penalty(self):
        assert scorer.score(snap(tabs=20)) == 35

    def test_heavy_penalties_clamp_at_zero(self):
        s = snap(typing=0, backspace=30, pointer=200, tabs=40, idle=120)
        assert scorer.score(s) == 0

    def test_typing_contribution_monotonic(self):
        values = [scorer.typing_contribution(r) for r in range(10, 71)]
        assert all(b >= a for a, b in zip(values, values[1:]))

    def test_boundedness(self):
        for typing in (0, 30, 50, 90):
            for tabs in (0, 5, 20):
                for pointer in (0, 50, 100, 300):
                    for idle in (0, 10, 45, 90):
                        s = scorer.score(snap(typing, 10, pointer, tabs, idle))
                        assert 0 <= s <= 100

    def test_rhythm_needs_five_intervals(self):
        assert scorer.rhythm_deviation_ms([0, 100, 200, 300, 400]) is None
        assert scorer.rhythm_deviation_ms([0, 100, 200, 300, 400, 500]) == 0.0

    def test_rhythm_bonus(self):
        s = snap(typing=50, idle=10)
        steady = scorer.score_with_adjustments(s, [0, 200, 400, 600, 800, 1000])
        uneven = scorer.score_with_adjustments(s, [0, 100, 500, 600, 1000, 1100])
        assert steady.rhythm_bonus == 5
        assert steady.final == steady.base + 5
        assert uneven.rhythm_bonus == 0

    def test_long_idle_penalty(self):
        b = scorer.adjust(scorer.score(snap(idle=61)), snap(idle=61))
        assert b.base == 45
        assert b.idle_penalty == 15
        assert b.final == 30

    def test_adjusted_score_clamped(self):
        s = snap(typing=70, backspace=2, pointer=50, tabs=1, idle=1)
        b = scorer.adjust(scorer.score(s), s, rhythm_std_ms=10.0)
        assert b.final == 100


class TestInterventionPolicy:
    def test_fatigue(self):
        event = interventions.evaluate(snap(typing=15, backspace=20, tabs=2, idle=10), 40)
        assert event.kind == InterventionKind.FATIGUE
        assert "fatigue" in event.reason.lower()

    def test_eye_strain(self):
        event = interventions.evaluate(snap(typing=70, idle=1), 85)
        assert event.kind == InterventionKind.EYE_STRAIN
        assert "20-20-20" in event.reason

    def test_distraction(self):
        s = snap(tabs=20)
        event = interventions.evaluate(s, scorer.score(s))
        assert event.kind == InterventionKind.DISTRACTION

    def test_fatigue_beats_distraction(self):
        event = interventions.evaluate(snap(typing=10, backspace=20, tabs=20), 20)
        assert event.kind == InterventionKind.FATIGUE

    def test_flow_scenario_triggers_eye_rest(self):
        s = snap(typing=70, backspace=2, pointer=50, tabs=1, idle=1)
        event = interventions.evaluate(s, scorer.score(s))
        assert event.kind == InterventionKind.EYE_STRAIN

    def test_no_match(self):
        s = snap()
        assert interventions.evaluate(s, scorer.score(s)) is None

    def test_triggered_at_defaults_to_snapshot_time(self):
        s = MetricsSnapshot(tab_switch_count=16, taken_at=12_000)
        assert interventions.evaluate(s, 10).triggered_at == 12_000


class TestSnapshot:
    def test_rejects_negative_fields(self):
        with pytest.raises(ValueError):
            MetricsSnapshot(idle_seconds=-1)

    def test_is_immutable(self):
        s = snap()
        with pytest.raises(Exception):
            s.idle_seconds = 3

    def test_as_dict_drops_timestamp(self):
        d = MetricsSnapshot(typing_rate_per_minute=6, taken_at=5).as_dict()
        assert "taken_at" not in d
        assert d["typing_rate_per_minute"] == 6


class TestScoreAnimator:
    def test_eases_then_snaps(self):
        anim = ScoreAnimator()
        anim.set_target(100)
        assert anim.step() == pytest.approx(10)
        assert anim.step() == pytest.approx(19)
        for _ in range(100):
            anim.step()
        assert anim.displayed == 100

    def test_flow_levels(self):
        assert flow_level(85) == "Deep Flow"
        assert flow_level(60) == "Flow"
        assert flow_level(40) == "Focused"
        assert flow_level(39.9) == "Distracted"
