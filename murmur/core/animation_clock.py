"""
Animation Clock for Murmur

Advances the idle-pulse and shimmer phases once per timer tick, steps the
bar smoother, then asks the overlay to repaint.

The clock assumes a constant 1/60 s per tick regardless of the wall time
between timer callbacks, so a loaded system plays the animation slower
than real time. Measured deltas are available as an opt-in.
"""

from typing import Callable, Optional
import logging
import time

from murmur.core.bar_smoother import BarSmoother
from murmur.theme import TICK_DELTA

logger = logging.getLogger(__name__)


class AnimationClock:
    """
    Two monotonically increasing phase counters plus the per-tick update.

    Attributes:
        anim_time: Seconds of idle-pulse animation played so far
        shimmer_phase: Seconds of shimmer animation played so far

    Args:
        smoother: Bar smoother stepped once per tick
        request_repaint: Called after every tick (e.g. QWidget.update)
        measure_delta: Use measured wall-clock deltas instead of 1/60 s
        clock: Monotonic time source, used only when measure_delta is set
    """

    def __init__(
        self,
        smoother: BarSmoother,
        request_repaint: Optional[Callable[[], None]] = None,
        measure_delta: bool = False,
        clock: Callable[[], float] = time.monotonic
    ):
        self.anim_time = 0.0
        self.shimmer_phase = 0.0

        self._smoother = smoother
        self._request_repaint = request_repaint
        self._measure_delta = measure_delta
        self._clock = clock
        self._last_tick: Optional[float] = None

        if measure_delta:
            logger.info("Animation clock using measured tick deltas")

    def tick(self, dt: Optional[float] = None) -> None:
        """
        Advance one frame.

        Args:
            dt: Seconds to advance. Defaults to 1/60 s, or to the measured
                time since the previous tick when measure_delta is enabled.
        """
        if dt is None:
            dt = self._next_delta()

        self.anim_time += dt
        self.shimmer_phase += dt

        self._smoother.step()

        if self._request_repaint is not None:
            self._request_repaint()

    def _next_delta(self) -> float:
        if not self._measure_delta:
            return TICK_DELTA

        now = self._clock()
        last, self._last_tick = self._last_tick, now
        if last is None:
            return TICK_DELTA
        return max(0.0, now - last)

    def __repr__(self) -> str:
        return (
            f"AnimationClock(anim_time={self.anim_time:.3f}, "
            f"shimmer_phase={self.shimmer_phase:.3f})"
        )
