"""
Unit tests for level normalization and bar smoothing.

Run with: python -m pytest tests/test_bar_smoother.py -v
"""

import pytest

from murmur.core.bar_smoother import BarSmoother, normalize_level, target_height
from murmur.core.ring_buffer import RingBuffer
from murmur.theme import BAR_MAX_HEIGHT, BAR_MIN_HEIGHT, RMS_SCALE


class TestNormalization:
    """Raw level → target height mapping."""

    def test_silence_maps_to_min(self):
        assert target_height(0.0) == BAR_MIN_HEIGHT

    def test_negative_clamps_to_min(self):
        assert normalize_level(-0.5) == 0.0
        assert target_height(-0.5) == BAR_MIN_HEIGHT

    def test_half_scale(self):
        assert target_height(RMS_SCALE / 2) == pytest.approx(
            BAR_MIN_HEIGHT + 0.5 * (BAR_MAX_HEIGHT - BAR_MIN_HEIGHT)
        )

    @pytest.mark.parametrize("rms", [RMS_SCALE, 0.1, 0.5, 3.0])
    def test_full_scale_and_above(self, rms):
        assert normalize_level(rms) == 1.0
        assert target_height(rms) == BAR_MAX_HEIGHT

    def test_monotonic_below_scale(self):
        samples = [i * RMS_SCALE / 50 for i in range(51)]
        heights = [target_height(s) for s in samples]
        for lower, higher in zip(heights, heights[1:]):
            assert lower < higher


class TestBarSmoother:
    """Retargeting and exponential smoothing."""

    def test_initial_heights_at_min(self):
        smoother = BarSmoother(7)
        assert smoother.heights == [BAR_MIN_HEIGHT] * 7
        assert smoother.targets == [BAR_MIN_HEIGHT] * 7

    def test_retarget_uses_whole_snapshot(self):
        ring = RingBuffer(7)
        smoother = BarSmoother(7)
        ring.push(RMS_SCALE)
        smoother.retarget(ring.snapshot_oldest_first())

        # Newest sample sits in the rightmost bar
        assert smoother.targets == [BAR_MIN_HEIGHT] * 6 + [BAR_MAX_HEIGHT]

        ring.push(0.0)
        smoother.retarget(ring.snapshot_oldest_first())
        # ...and scrolls one bar left on the next push
        assert smoother.targets == [BAR_MIN_HEIGHT] * 5 + [BAR_MAX_HEIGHT, BAR_MIN_HEIGHT]

    def test_retarget_does_not_move_displayed_heights(self):
        smoother = BarSmoother(3)
        smoother.retarget([RMS_SCALE] * 3)
        assert smoother.heights == [BAR_MIN_HEIGHT] * 3

    def test_retarget_wrong_length(self):
        smoother = BarSmoother(7)
        with pytest.raises(ValueError):
            smoother.retarget([0.0] * 3)

    def test_single_step(self):
        smoother = BarSmoother(1)
        smoother.retarget([RMS_SCALE])
        smoother.step()
        assert smoother.heights[0] == pytest.approx(
            BAR_MIN_HEIGHT * 0.7 + BAR_MAX_HEIGHT * 0.3
        )

    @pytest.mark.parametrize("ticks", [1, 2, 5, 13, 30])
    def test_convergence_is_geometric(self, ticks):
        """|h_k - T| == 0.7^k * |h_0 - T| for a constant target."""
        smoother = BarSmoother(7)
        smoother.retarget([RMS_SCALE] * 7)
        initial_error = BAR_MAX_HEIGHT - BAR_MIN_HEIGHT

        for _ in range(ticks):
            smoother.step()

        for height in smoother.heights:
            assert abs(height - BAR_MAX_HEIGHT) == pytest.approx(
                0.7 ** ticks * initial_error, rel=1e-9, abs=1e-9
            )

    def test_within_one_percent_after_13_ticks(self):
        smoother = BarSmoother(1)
        smoother.retarget([RMS_SCALE])
        for _ in range(13):
            smoother.step()
        error = abs(smoother.heights[0] - BAR_MAX_HEIGHT)
        assert error < 0.01 * (BAR_MAX_HEIGHT - BAR_MIN_HEIGHT)

    def test_heights_stay_in_bounds(self):
        smoother = BarSmoother(2)
        for target in (10.0, 0.0, 0.08, 0.01, 5.0):
            smoother.retarget([target, 0.0])
            for _ in range(4):
                smoother.step()
                for height in smoother.heights:
                    assert BAR_MIN_HEIGHT <= height <= BAR_MAX_HEIGHT

    def test_reset(self):
        smoother = BarSmoother(3)
        smoother.retarget([RMS_SCALE] * 3)
        smoother.step()
        smoother.reset()
        assert smoother.heights == [BAR_MIN_HEIGHT] * 3
        assert smoother.targets == [BAR_MIN_HEIGHT] * 3
