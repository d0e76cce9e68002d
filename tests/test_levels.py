"""
Unit tests for audio level helpers.

Run with: python -m pytest tests/test_levels.py -v
"""

from itertools import islice

import numpy as np
import pytest

from murmur.core.levels import compute_rms, synthetic_levels


class TestComputeRms:

    def test_empty_chunk(self):
        assert compute_rms([]) == 0.0

    def test_constant_signal(self):
        assert compute_rms(np.full(160, 0.05, dtype=np.float32)) == pytest.approx(0.05, rel=1e-6)

    def test_sine_wave(self):
        t = np.arange(16000) / 16000.0
        chunk = 0.5 * np.sin(2 * np.pi * 440 * t)
        assert compute_rms(chunk) == pytest.approx(0.5 / np.sqrt(2), rel=1e-3)

    def test_accepts_lists(self):
        assert compute_rms([0.3, -0.3]) == pytest.approx(0.3)


class TestSyntheticLevels:

    def test_levels_are_bounded(self):
        levels = list(islice(synthetic_levels(), 200))
        assert all(0.0 <= level < 0.3 for level in levels)

    def test_levels_vary(self):
        levels = list(islice(synthetic_levels(), 100))
        assert max(levels) > 0.1
        assert min(levels) < 0.05

    def test_deterministic_for_seed(self):
        first = list(islice(synthetic_levels(seed=3), 20))
        second = list(islice(synthetic_levels(seed=3), 20))
        assert first == second
