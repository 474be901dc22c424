"""Unit tests for the pointer-driven attention estimator."""

import random
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from flowmonitor.engine.attention import (
    CLASSES, AttentionClass, AttentionEstimator, engagement, smooth,
    target_distribution, uniform_distribution,
)


def l1_from_uniform(dist):
    u = 1.0 / len(CLASSES)
    return sum(abs(p - u) for p in dist.values())


class TestTargetDistribution:
    def test_sums_to_one_and_bounded(self):
        for x in range(0, 1001, 125):
            for y in range(0, 801, 100):
                dist = target_distribution(x, y, 1000, 800)
                assert sum(dist.values()) == pytest.approx(1.0)
                assert all(0.0 <= p <= 1.0 for p in dist.values())

    def test_top_left_favours_actively_looking(self):
        dist = target_distribution(0, 0, 1000, 1000)
        assert max(dist, key=dist.get) == AttentionClass.ACTIVELY_LOOKING
        assert dist[AttentionClass.ACTIVELY_LOOKING] == pytest.approx(0.88 / 1.24018, abs=1e-3)

    def test_bottom_right_favours_drowsy(self):
        dist = target_distribution(1000, 1000, 1000, 1000)
        assert max(dist, key=dist.get) == AttentionClass.DROWSY

    def test_center_is_closer_to_uniform_than_corner(self):
        center = target_distribution(500, 500, 1000, 1000)
        corner = target_distribution(0, 0, 1000, 1000)
        assert l1_from_uniform(center) < l1_from_uniform(corner)
        corner_classes = (AttentionClass.ACTIVELY_LOOKING, AttentionClass.DISTRACTED,
                          AttentionClass.TALKING_TO_PEERS, AttentionClass.DROWSY)
        spread = [center[c] for c in corner_classes]
        assert max(spread) - min(spread) < 0.05

    @pytest.mark.parametrize("width,height", [(0, 800), (1000, 0), (-5, 10), (float("nan"), 10)])
    def test_missing_viewport_falls_back_to_uniform(self, width, height):
        assert target_distribution(10, 10, width, height) == uniform_distribution()

    def test_positions_outside_viewport_are_clamped(self):
        assert target_distribution(-50, -50, 100, 100) == target_distribution(0, 0, 100, 100)


class TestSmoothing:
    def test_pure_and_reproducible(self):
        prev = uniform_distribution()
        target = target_distribution(0, 0, 100, 100)
        noise = [0.001, -0.002, 0.0, 0.003, -0.001, 0.0]
        assert smooth(prev, target, 0.15, noise) == smooth(prev, target, 0.15, noise)

    def test_moves_toward_target(self):
        prev = uniform_distribution()
        target = target_distribution(0, 0, 100, 100)
        out = smooth(prev, target, 0.15, [0.0] * len(CLASSES))
        looking = AttentionClass.ACTIVELY_LOOKING
        assert prev[looking] < out[looking] < target[looking]
        assert sum(out.values()) == pytest.approx(1.0)

    def test_full_factor_reaches_target(self):
        target = target_distribution(300, 700, 1000, 1000)
        out = smooth(uniform_distribution(), target, 1.0, [0.0] * len(CLASSES))
        for c in CLASSES:
            assert out[c] == pytest.approx(target[c])


class TestEngagement:
    def test_uniform_is_neutral(self):
        assert engagement(uniform_distribution()) == pytest.approx(0.45)

    def test_bounds(self):
        assert engagement({c: (1.0 if c == AttentionClass.ACTIVELY_LOOKING else 0.0) for c in CLASSES}) == 1.0
        assert engagement({c: (1.0 if c == AttentionClass.DROWSY else 0.0) for c in CLASSES}) == pytest.approx(0.1)


class TestAttentionEstimator:
    def test_starts_uniform(self):
        est = AttentionEstimator(rng=random.Random(1))
        assert est.display == uniform_distribution()
        assert est.engagement() == pytest.approx(0.45)

    def test_first_observation_snaps_display(self):
        est = AttentionEstimator(rng=random.Random(1))
        target = est.observe(0, 0, 100, 100)
        assert est.display == target
        est.observe(100, 100, 100, 100)
        assert est.display == target  # later samples only move the target

    def test_step_is_seeded(self):
        a = AttentionEstimator(rng=random.Random(7))
        b = AttentionEstimator(rng=random.Random(7))
        for est in (a, b):
            est.observe(0, 0, 100, 100)
            est.observe(100, 0, 100, 100)
            est.step()
        assert a.display == b.display

    def test_steps_stay_normalized(self):
        est = AttentionEstimator(rng=random.Random(3))
        est.observe(900, 100, 1000, 1000)
        for _ in range(50):
            dist = est.step()
            assert sum(dist.values()) == pytest.approx(1.0)
            assert all(0.0 <= p <= 1.0 for p in dist.values())
        assert est.predicted_class() == AttentionClass.DISTRACTED
        assert 0 < est.confidence() <= 1

    def test_reset(self):
        est = AttentionEstimator()
        est.observe(0, 0, 10, 10)
        est.reset()
        assert not est.has_signal
        assert est.display == uniform_distribution()
