"""
Capsule Overlay Theme

Geometry, colour and timing constants shared by the renderer, the bar smoother
and the overlay widget.
"""

import math

TAU = 2.0 * math.pi

# Canvas
OVERLAY_WIDTH = 220
OVERLAY_HEIGHT = 52
OVERLAY_RADIUS = 26.0
ITEM_COUNT = 7  # dots in idle mode, bars in recording mode

# Pill background (#1A1A1A @ 90%) and rim
BG_COLOR = (0.102, 0.102, 0.102, 0.90)
BORDER_COLOR = (1.0, 1.0, 1.0, 0.30)
BORDER_WIDTH = 1.5

# Recording bars
BAR_WIDTH = 5.0
BAR_RADIUS = 2.5
BAR_SPACING = 8.0
BAR_MIN_HEIGHT = 4.0
BAR_MAX_HEIGHT = 40.0
RMS_SCALE = 0.08
SMOOTHING_KEEP = 0.7
SMOOTHING_TAKE = 0.3

# Idle dots
DOT_RADIUS = 3.0
DOT_SPACING = 10.0
DOT_ALPHA_MIN = 0.35
DOT_ALPHA_RANGE = 0.65
IDLE_PULSE_PERIOD = 4.0

# Transcribing label
LABEL_TEXT = "transcribing"
LABEL_FONT_FAMILY = "Sans"
LABEL_FONT_SIZE = 14.0
LABEL_ALPHA = 0.7
SHIMMER_PERIOD = 1.5
SHIMMER_MARGIN = 40.0
SHIMMER_WIDTH = 40.0
SHIMMER_PEAK_ALPHA = 0.5

# Timing
TICK_INTERVAL_MS = 16
TICK_DELTA = 1.0 / 60.0

# Placement
SCREEN_MARGIN = 24
