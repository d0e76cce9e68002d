"""
Unit tests for the level ring buffer.

Run with: python -m pytest tests/test_ring_buffer.py -v
"""

import pytest

from murmur.core.ring_buffer import RingBuffer


class TestRingBuffer:
    """Push and snapshot behaviour."""

    def test_starts_with_zeros(self):
        ring = RingBuffer(7)
        assert list(ring.snapshot_oldest_first()) == [0.0] * 7
        assert ring.head == 0
        assert len(ring) == 7

    def test_push_advances_head(self):
        ring = RingBuffer(3)
        ring.push(1.0)
        assert ring.head == 1
        ring.push(2.0)
        ring.push(3.0)
        assert ring.head == 0

    def test_oldest_first_before_wrap(self):
        ring = RingBuffer(4)
        ring.push(1.0)
        ring.push(2.0)
        # Two untouched zero slots are older than anything pushed
        assert list(ring.snapshot_oldest_first()) == [0.0, 0.0, 1.0, 2.0]

    @pytest.mark.parametrize("extra", [1, 3, 7, 12])
    def test_wraparound_keeps_last_n(self, extra):
        """Pushing N+k samples leaves exactly the last N, oldest first."""
        capacity = 7
        ring = RingBuffer(capacity)
        pushed = [float(i) for i in range(capacity + extra)]
        for sample in pushed:
            ring.push(sample)

        assert list(ring.snapshot_oldest_first()) == pushed[-capacity:]
        assert ring.head == (capacity + extra) % capacity

    def test_snapshot_is_restartable(self):
        ring = RingBuffer(3)
        for sample in (0.1, 0.2, 0.3, 0.4):
            ring.push(sample)

        snapshot = ring.snapshot_oldest_first()
        assert list(snapshot) == [0.2, 0.3, 0.4]
        assert list(snapshot) == [0.2, 0.3, 0.4]
        assert len(snapshot) == 3

    def test_capacity_never_changes(self):
        ring = RingBuffer(5)
        for i in range(100):
            ring.push(float(i))
        assert ring.capacity == 5
        assert len(list(ring.snapshot_oldest_first())) == 5

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RingBuffer(0)

    def test_repr(self):
        assert "capacity=7" in repr(RingBuffer())
