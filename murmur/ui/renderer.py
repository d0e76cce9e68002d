"""
Capsule Renderer for Murmur

Pure functions from overlay state + animation phases to a list of drawing
commands. Nothing here touches Qt, so frames can be inspected in tests;
OverlayPainter turns the commands into QPainter calls.

Frame layout (220x52 canvas):
    - Pill background and 1.5px translucent rim (every state)
    - IDLE: 7 dots pulsing as a travelling wave (period 4s)
    - RECORDING: 7 rounded bars at their smoothed heights
    - TRANSCRIBING: "transcribing" label with a sweeping highlight (period 1.5s)
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple, Union
import math

from murmur.core.state_machine import OverlayState
from murmur.theme import (
    BAR_RADIUS,
    BAR_SPACING,
    BAR_WIDTH,
    BG_COLOR,
    BORDER_COLOR,
    BORDER_WIDTH,
    DOT_ALPHA_MIN,
    DOT_ALPHA_RANGE,
    DOT_RADIUS,
    DOT_SPACING,
    IDLE_PULSE_PERIOD,
    ITEM_COUNT,
    LABEL_ALPHA,
    LABEL_TEXT,
    OVERLAY_HEIGHT,
    OVERLAY_RADIUS,
    OVERLAY_WIDTH,
    SHIMMER_MARGIN,
    SHIMMER_PEAK_ALPHA,
    SHIMMER_PERIOD,
    SHIMMER_WIDTH,
    TAU,
)

Color = Tuple[float, float, float, float]


@dataclass(frozen=True)
class TextExtents:
    """Ink bounds of a string, measured from its baseline origin."""
    width: float
    height: float
    x_bearing: float
    y_bearing: float


TextMeasure = Callable[[str], TextExtents]


@dataclass(frozen=True)
class FillPill:
    color: Color


@dataclass(frozen=True)
class StrokePill:
    color: Color
    line_width: float


@dataclass(frozen=True)
class FillCircle:
    cx: float
    cy: float
    radius: float
    color: Color


@dataclass(frozen=True)
class FillRoundedRect:
    x: float
    y: float
    width: float
    height: float
    radius: float
    color: Color


@dataclass(frozen=True)
class DrawText:
    """Text drawn with its baseline origin at (x, y)."""
    text: str
    x: float
    y: float
    color: Color


@dataclass(frozen=True)
class DrawShimmerText:
    """
    Text clipped to the pill and filled with a horizontal gradient.

    The gradient runs from gradient_x0 to gradient_x1; stops are
    (offset, alpha) pairs on white.
    """
    text: str
    x: float
    y: float
    gradient_x0: float
    gradient_x1: float
    stops: Tuple[Tuple[float, float], ...]


DrawCommand = Union[
    FillPill, StrokePill, FillCircle, FillRoundedRect, DrawText, DrawShimmerText
]

WHITE = (1.0, 1.0, 1.0, 1.0)


def dot_alpha(index: int, anim_time: float, count: int = ITEM_COUNT) -> float:
    """
    Opacity of idle dot `index` at time `anim_time`.

    alpha = 0.35 + 0.65 * sin(phi)^2, phi = 2π·t/4 + i·2π/count.
    Periodic in t with period 4s and bounded to [0.35, 1.0].
    """
    phi = TAU * anim_time / IDLE_PULSE_PERIOD + index * TAU / count
    s = math.sin(phi)
    return DOT_ALPHA_MIN + DOT_ALPHA_RANGE * s * s


def shimmer_center(shimmer_phase: float, text_left: float, text_width: float) -> float:
    """
    Horizontal centre of the shimmer highlight.

    Sweeps linearly from text_left - 40 to text_left + text_width + 40
    once every 1.5 seconds.
    """
    progress = math.fmod(shimmer_phase, SHIMMER_PERIOD) / SHIMMER_PERIOD
    span = text_width + 2.0 * SHIMMER_MARGIN
    return text_left - SHIMMER_MARGIN + span * progress


def _row_start(spacing: float, count: int) -> float:
    total = (count - 1) * spacing
    return (OVERLAY_WIDTH - total) / 2.0


def render_idle(anim_time: float, count: int = ITEM_COUNT) -> List[DrawCommand]:
    start_x = _row_start(DOT_SPACING, count)
    center_y = OVERLAY_HEIGHT / 2.0

    return [
        FillCircle(
            start_x + i * DOT_SPACING,
            center_y,
            DOT_RADIUS,
            (1.0, 1.0, 1.0, dot_alpha(i, anim_time, count))
        )
        for i in range(count)
    ]


def render_recording(bar_heights: Sequence[float]) -> List[DrawCommand]:
    count = len(bar_heights)
    start_x = _row_start(BAR_SPACING, count)
    center_y = OVERLAY_HEIGHT / 2.0

    commands: List[DrawCommand] = []
    for i, height in enumerate(bar_heights):
        cx = start_x + i * BAR_SPACING
        # Short bars would self-intersect with the full corner radius
        radius = min(BAR_RADIUS, height / 2.0)
        commands.append(FillRoundedRect(
            cx - BAR_WIDTH / 2.0,
            center_y - height / 2.0,
            BAR_WIDTH,
            height,
            radius,
            WHITE
        ))
    return commands


def render_transcribing(shimmer_phase: float, measure_text: TextMeasure) -> List[DrawCommand]:
    ext = measure_text(LABEL_TEXT)

    tx = OVERLAY_WIDTH / 2.0 - ext.width / 2.0 - ext.x_bearing
    ty = OVERLAY_HEIGHT / 2.0 - ext.height / 2.0 - ext.y_bearing

    center = shimmer_center(shimmer_phase, tx, ext.width)
    half = SHIMMER_WIDTH / 2.0

    return [
        DrawText(LABEL_TEXT, tx, ty, (1.0, 1.0, 1.0, LABEL_ALPHA)),
        DrawShimmerText(
            LABEL_TEXT,
            tx,
            ty,
            center - half,
            center + half,
            ((0.0, 0.0), (0.5, SHIMMER_PEAK_ALPHA), (1.0, 0.0))
        ),
    ]


def render_frame(
    state: OverlayState,
    anim_time: float,
    shimmer_phase: float,
    bar_heights: Sequence[float],
    measure_text: TextMeasure
) -> List[DrawCommand]:
    """
    Build the drawing commands for one frame.

    Args:
        state: Current overlay state
        anim_time: Idle pulse clock in seconds
        shimmer_phase: Shimmer clock in seconds
        bar_heights: Smoothed bar heights (used in RECORDING)
        measure_text: Returns TextExtents for a string in the label font

    Returns:
        Commands in paint order
    """
    commands: List[DrawCommand] = [
        FillPill(BG_COLOR),
        StrokePill(BORDER_COLOR, BORDER_WIDTH),
    ]

    if state == OverlayState.IDLE:
        commands.extend(render_idle(anim_time))
    elif state == OverlayState.RECORDING:
        commands.extend(render_recording(bar_heights))
    elif state == OverlayState.TRANSCRIBING:
        commands.extend(render_transcribing(shimmer_phase, measure_text))

    return commands


def pill_geometry() -> Tuple[float, float, float, float, float]:
    """(x, y, width, height, radius) of the capsule outline."""
    return (0.0, 0.0, float(OVERLAY_WIDTH), float(OVERLAY_HEIGHT), OVERLAY_RADIUS)
