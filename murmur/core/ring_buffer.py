"""
Level Ring Buffer for Murmur

Fixed-capacity circular store holding the most recent audio-level samples.
Written by the dispatcher on the UI thread, read in full by the bar smoother
after every write.
"""

from typing import Iterator, List

from murmur.theme import ITEM_COUNT


class LevelSnapshot:
    """
    Oldest-first view over a ring buffer at a fixed head position.

    Iterating starts at the head slot and wraps once, so the view can be
    walked any number of times and always yields exactly `capacity` samples.
    """

    def __init__(self, slots: List[float], head: int):
        self._slots = slots
        self._head = head

    def __iter__(self) -> Iterator[float]:
        capacity = len(self._slots)
        for i in range(capacity):
            yield self._slots[(self._head + i) % capacity]

    def __len__(self) -> int:
        return len(self._slots)


class RingBuffer:
    """
    Circular buffer of float samples with a fixed capacity.

    `head` is the next write position. The buffer starts filled with zeros
    and is overwritten in place; it never grows.

    Example:
        >>> ring = RingBuffer(3)
        >>> for sample in (0.1, 0.2, 0.3, 0.4):
        ...     ring.push(sample)
        >>> list(ring.snapshot_oldest_first())
        [0.2, 0.3, 0.4]
    """

    def __init__(self, capacity: int = ITEM_COUNT):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self._slots: List[float] = [0.0] * capacity
        self._head = 0

    def push(self, sample: float) -> None:
        """Overwrite the slot at head and advance head by one."""
        self._slots[self._head] = sample
        self._head = (self._head + 1) % len(self._slots)

    def snapshot_oldest_first(self) -> LevelSnapshot:
        """
        Get the stored samples ordered from oldest to newest.

        Returns:
            Restartable view reading from the current head. The view shares
            storage with the buffer, so consume it before the next push.
        """
        return LevelSnapshot(self._slots, self._head)

    @property
    def head(self) -> int:
        return self._head

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={len(self._slots)}, head={self._head})"
