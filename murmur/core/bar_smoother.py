"""
Bar Smoother for Murmur

Turns ring-buffer level samples into per-bar target heights and low-pass
filters the displayed heights toward them once per animation tick.

Mapping:
    norm   = clamp(rms / RMS_SCALE, 0, 1)
    target = BAR_MIN_HEIGHT + norm * (BAR_MAX_HEIGHT - BAR_MIN_HEIGHT)

Smoothing (fixed-coefficient IIR):
    current = current * 0.7 + target * 0.3
"""

from typing import Iterable, List
import logging

from murmur.theme import (
    BAR_MAX_HEIGHT,
    BAR_MIN_HEIGHT,
    ITEM_COUNT,
    RMS_SCALE,
    SMOOTHING_KEEP,
    SMOOTHING_TAKE,
)

logger = logging.getLogger(__name__)


def normalize_level(rms: float, scale: float = RMS_SCALE) -> float:
    """
    Normalize a raw RMS level to the 0.0-1.0 range.

    Args:
        rms: Raw level sample (values below zero are treated as silence)
        scale: Level that maps to full scale

    Returns:
        Normalized level, clamped to [0.0, 1.0]
    """
    return max(0.0, min(1.0, rms / scale))


def target_height(
    rms: float,
    min_height: float = BAR_MIN_HEIGHT,
    max_height: float = BAR_MAX_HEIGHT,
    scale: float = RMS_SCALE
) -> float:
    """Bar height in pixels that a raw level sample maps to."""
    return min_height + normalize_level(rms, scale) * (max_height - min_height)


class BarSmoother:
    """
    Per-bar target and displayed heights for the recording waveform.

    Targets are recomputed from the full ring-buffer snapshot on every push,
    so bar i always shows the sample that is i steps from the oldest. This
    scrolls the waveform left to right instead of blinking a single bar.

    Displayed heights only change in step(), which the animation clock calls
    once per tick.
    """

    def __init__(
        self,
        count: int = ITEM_COUNT,
        min_height: float = BAR_MIN_HEIGHT,
        max_height: float = BAR_MAX_HEIGHT,
        scale: float = RMS_SCALE
    ):
        self._min_height = min_height
        self._max_height = max_height
        self._scale = scale

        self._current: List[float] = [min_height] * count
        self._targets: List[float] = [min_height] * count

    def retarget(self, samples: Iterable[float]) -> None:
        """
        Recompute every target height from an oldest-first sample sequence.

        Args:
            samples: One sample per bar, oldest first (a ring-buffer snapshot)
        """
        targets = [
            target_height(rms, self._min_height, self._max_height, self._scale)
            for rms in samples
        ]
        if len(targets) != len(self._targets):
            raise ValueError(
                f"Expected {len(self._targets)} samples, got {len(targets)}"
            )
        self._targets = targets

    def step(self) -> None:
        """Move every displayed height 30% of the way toward its target."""
        self._current = [
            current * SMOOTHING_KEEP + target * SMOOTHING_TAKE
            for current, target in zip(self._current, self._targets)
        ]

    def reset(self) -> None:
        """Drop displayed and target heights back to the minimum."""
        count = len(self._current)
        self._current = [self._min_height] * count
        self._targets = [self._min_height] * count
        logger.debug("Bar heights reset to minimum")

    @property
    def heights(self) -> List[float]:
        """Displayed (smoothed) heights, one per bar."""
        return list(self._current)

    @property
    def targets(self) -> List[float]:
        """Target heights derived from the latest ring-buffer snapshot."""
        return list(self._targets)

    def __len__(self) -> int:
        return len(self._current)
