"""
Unit tests for the animation clock.

Run with: python -m pytest tests/test_animation_clock.py -v
"""

import pytest

from murmur.core.animation_clock import AnimationClock
from murmur.core.bar_smoother import BarSmoother
from murmur.theme import BAR_MAX_HEIGHT, BAR_MIN_HEIGHT, RMS_SCALE, TICK_DELTA


class TestAnimationClock:
    """Phase advance, smoothing and repaint per tick."""

    def test_fixed_delta(self):
        clock = AnimationClock(BarSmoother())
        for _ in range(60):
            clock.tick()
        assert clock.anim_time == pytest.approx(1.0)
        assert clock.shimmer_phase == pytest.approx(1.0)

    def test_explicit_delta(self):
        clock = AnimationClock(BarSmoother())
        clock.tick(0.5)
        clock.tick(0.25)
        assert clock.anim_time == pytest.approx(0.75)
        assert clock.shimmer_phase == pytest.approx(0.75)

    def test_tick_steps_smoother(self):
        smoother = BarSmoother(1)
        smoother.retarget([RMS_SCALE])
        clock = AnimationClock(smoother)
        clock.tick()
        assert smoother.heights[0] == pytest.approx(
            BAR_MIN_HEIGHT * 0.7 + BAR_MAX_HEIGHT * 0.3
        )

    def test_tick_requests_repaint(self):
        repaints = []
        clock = AnimationClock(BarSmoother(), request_repaint=lambda: repaints.append(1))
        clock.tick()
        clock.tick()
        assert len(repaints) == 2

    def test_measured_delta(self):
        times = iter([10.0, 10.05, 10.25])
        clock = AnimationClock(BarSmoother(), measure_delta=True, clock=lambda: next(times))

        clock.tick()  # first tick has nothing to measure against
        assert clock.anim_time == pytest.approx(TICK_DELTA)

        clock.tick()
        clock.tick()
        assert clock.anim_time == pytest.approx(TICK_DELTA + 0.25)

    def test_phases_never_reset(self):
        clock = AnimationClock(BarSmoother())
        for _ in range(600):
            clock.tick()
        assert clock.anim_time > 4.0
        assert clock.shimmer_phase > 1.5
