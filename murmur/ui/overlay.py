"""
Capsule Overlay for Murmur

Small always-on-top pill that shows what the dictation pipeline is doing:
pulsing dots when idle, live level bars while recording, and a shimmering
"transcribing" label while text is being produced.

The widget owns one of each core piece (state machine, ring buffer, bar
smoother, animation clock, dispatcher) and an optional global hotkey. Other
threads talk to it only through post_state() and post_level().
"""

from dataclasses import dataclass
from typing import Callable, List, Optional
from PySide6.QtWidgets import QApplication, QMenu, QWidget
from PySide6.QtGui import QPainter
from PySide6.QtCore import QRect, Qt, QTimer, Signal
import logging

from murmur.core.animation_clock import AnimationClock
from murmur.core.bar_smoother import BarSmoother
from murmur.core.dispatcher import CrossThreadDispatcher
from murmur.core.hotkey_capture import HotkeyCapture, HotkeyError
from murmur.core.key_sources import KeySource, select_key_source
from murmur.core.ring_buffer import RingBuffer
from murmur.core.state_machine import OverlayState, OverlayStateMachine
from murmur.theme import (
    ITEM_COUNT,
    OVERLAY_HEIGHT,
    OVERLAY_WIDTH,
    SCREEN_MARGIN,
    TICK_INTERVAL_MS,
)
from murmur.ui.overlay_painter import OverlayPainter
from murmur.ui.renderer import render_frame

logger = logging.getLogger(__name__)


@dataclass
class OverlayMenuActions:
    """
    Right-click menu actions, held by the overlay that shows the menu.

    Attributes:
        open_settings: Called when "Open Settings" is chosen
        quit: Called when "Quit" is chosen
    """
    open_settings: Callable[[], None]
    quit: Callable[[], None]


class CapsuleOverlay(QWidget):
    """
    Always-on-top capsule status indicator.

    Features:
        - Frameless, translucent, non-focusable 220x52 window
        - 16 ms animation tick driving dots, bars and shimmer
        - Thread-safe state and level updates via the dispatcher
        - Optional global hotkey with press/release callbacks
        - Right-click menu with "Open Settings" and "Quit"

    Signals:
        state_changed(OverlayState): Re-emitted from the state machine

    Args:
        position: "bottom-center" or "top-center"
        margin: Distance from the screen edge in pixels
        monitor_index: Screen index (0 = primary)
        measure_tick_delta: Advance animations by measured wall time
        tick_ms: Animation timer interval

    Example:
        >>> app = QApplication([])
        >>> overlay = CapsuleOverlay()
        >>> overlay.show()
        >>> overlay.post_state(OverlayState.RECORDING)  # from any thread
    """

    state_changed = Signal(OverlayState)

    def __init__(
        self,
        position: str = "bottom-center",
        margin: int = SCREEN_MARGIN,
        monitor_index: int = 0,
        measure_tick_delta: bool = False,
        tick_ms: int = TICK_INTERVAL_MS
    ):
        super().__init__()

        self._position_setting = position
        self._margin = margin
        self._monitor_setting = monitor_index

        # Core state (UI thread only)
        self._machine = OverlayStateMachine()
        self._machine.state_changed.connect(self.state_changed)
        self._ring = RingBuffer(ITEM_COUNT)
        self._smoother = BarSmoother(ITEM_COUNT)
        self._clock = AnimationClock(
            self._smoother,
            request_repaint=self.update,
            measure_delta=measure_tick_delta
        )
        self._dispatcher = CrossThreadDispatcher(self._apply_state, self.push_level)
        self._painter_backend = OverlayPainter()

        # Hotkey and menu
        self._hotkey: Optional[HotkeyCapture] = None
        self._key_source: Optional[KeySource] = None
        self._menu_actions: Optional[OverlayMenuActions] = None

        self._setup_window()

        # Animation timer (~60 FPS)
        self._animation_timer = QTimer(self)
        self._animation_timer.setInterval(tick_ms)
        self._animation_timer.timeout.connect(self._on_animation_tick)
        self._animation_timer.start()

        logger.info("CapsuleOverlay initialized")

    def _setup_window(self) -> None:
        """
        Configure window flags and attributes for an always-on-top overlay.

        Sets:
            - Frameless window
            - Always on top
            - Tool window (kept out of the taskbar and pager)
            - Does not accept focus
            - Translucent background
        """
        self.setWindowTitle("Murmur Overlay")
        self.setWindowFlags(
            Qt.FramelessWindowHint |
            Qt.WindowStaysOnTopHint |
            Qt.Tool |
            Qt.WindowDoesNotAcceptFocus
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WA_ShowWithoutActivating, True)
        self.setFocusPolicy(Qt.NoFocus)
        self.setFixedSize(OVERLAY_WIDTH, OVERLAY_HEIGHT)
        self.setGeometry(self._calculate_geometry())

    def _calculate_geometry(self) -> QRect:
        """Place the capsule centred at the top or bottom of the target screen."""
        screens = QApplication.screens()
        if not screens:
            return QRect(0, 0, OVERLAY_WIDTH, OVERLAY_HEIGHT)

        if 0 <= self._monitor_setting < len(screens):
            screen = screens[self._monitor_setting]
        else:
            screen = QApplication.primaryScreen()

        screen_geo = screen.geometry()
        x = screen_geo.x() + (screen_geo.width() - OVERLAY_WIDTH) // 2

        if "top" in self._position_setting:
            y = screen_geo.y() + self._margin
        else:
            y = screen_geo.y() + screen_geo.height() - OVERLAY_HEIGHT - self._margin

        return QRect(x, y, OVERLAY_WIDTH, OVERLAY_HEIGHT)

    def set_position(self, position: str = "bottom-center", monitor_index: int = 0) -> None:
        """
        Move the overlay.

        Args:
            position: "bottom-center" or "top-center"
            monitor_index: Monitor index (0 = primary/default)
        """
        self._position_setting = position
        self._monitor_setting = monitor_index
        self.setGeometry(self._calculate_geometry())

    # ------------------------------------------------------------------
    # Cross-thread API
    # ------------------------------------------------------------------

    def post_state(self, state: OverlayState) -> None:
        """Request a state change. Safe to call from any thread."""
        self._dispatcher.post_state(state)

    def post_level(self, rms: float) -> None:
        """Push an audio level sample. Safe to call from any thread."""
        self._dispatcher.post_level(rms)

    # ------------------------------------------------------------------
    # UI-thread handlers
    # ------------------------------------------------------------------

    def _apply_state(self, state: OverlayState) -> None:
        self._machine.set_state(state)
        self.update()

    def push_level(self, rms: float) -> None:
        """
        Record a level sample and recompute all bar targets (UI thread only).

        Every target is rebuilt from the whole ring buffer, so bar i always
        tracks the sample i steps from the oldest.
        """
        self._ring.push(rms)
        self._smoother.retarget(self._ring.snapshot_oldest_first())

    def _on_animation_tick(self) -> None:
        self._clock.tick()

    def tick(self, dt: Optional[float] = None) -> None:
        """Advance the animation by one frame outside the timer."""
        self._clock.tick(dt)

    def process_pending(self) -> int:
        """Apply queued updates now instead of on the next event-loop turn."""
        return self._dispatcher.drain()

    # ------------------------------------------------------------------
    # Hotkey and menu
    # ------------------------------------------------------------------

    def install_hotkey(
        self,
        trigger: str,
        on_down: Callable[[], None],
        on_up: Callable[[], None],
        key_source: Optional[KeySource] = None
    ) -> Optional[HotkeyCapture]:
        """
        Register a global shortcut tied to this overlay.

        Args:
            trigger: e.g. "ctrl+shift+space"
            on_down: Called once per press (on the key source's thread)
            on_up: Called once per release (on the key source's thread)
            key_source: Backend to use (default: select_key_source())

        Returns:
            The HotkeyCapture, or None if the trigger could not be parsed.
            An unsupported platform returns a capture that never fires.
        """
        self.uninstall_hotkey()

        try:
            capture = HotkeyCapture(trigger, on_down, on_up)
        except HotkeyError as e:
            logger.error(f"Invalid hotkey '{trigger}': {e}")
            return None

        if key_source is None:
            key_source = select_key_source()

        capture.install(key_source)
        self._hotkey = capture
        self._key_source = key_source
        return capture

    def uninstall_hotkey(self) -> None:
        """Release the current shortcut and its key source."""
        if self._hotkey is not None:
            self._hotkey.uninstall()
            self._hotkey = None
        if self._key_source is not None:
            self._key_source.close()
            self._key_source = None

    def install_context_menu(self, actions: OverlayMenuActions) -> None:
        """Enable the right-click menu with the given actions."""
        self._menu_actions = actions
        self.setContextMenuPolicy(Qt.DefaultContextMenu)

    def build_context_menu(self) -> Optional[QMenu]:
        """Create the context menu, or None if no actions are installed."""
        if self._menu_actions is None:
            return None

        menu = QMenu(self)
        menu.addAction("Open Settings", self._menu_actions.open_settings)
        menu.addSeparator()
        menu.addAction("Quit", self._menu_actions.quit)
        return menu

    def contextMenuEvent(self, event):
        """Show the context menu at the pointer."""
        menu = self.build_context_menu()
        if menu is None:
            super().contextMenuEvent(event)
            return
        menu.exec(event.globalPos())
        event.accept()

    # ------------------------------------------------------------------
    # Painting and teardown
    # ------------------------------------------------------------------

    def paintEvent(self, event):
        """Render the current frame."""
        commands = render_frame(
            self._machine.current_state,
            self._clock.anim_time,
            self._clock.shimmer_phase,
            self._smoother.heights,
            self._painter_backend.measure_text
        )

        painter = QPainter(self)
        painter.setCompositionMode(QPainter.CompositionMode_Source)
        painter.fillRect(self.rect(), Qt.transparent)
        painter.setCompositionMode(QPainter.CompositionMode_SourceOver)
        self._painter_backend.paint(painter, commands)
        painter.end()

    def closeEvent(self, event):
        """Stop animating, drop pending updates and release the hotkey."""
        self.shutdown()
        super().closeEvent(event)

    def shutdown(self) -> None:
        """Tear down timers, dispatcher and hotkey. Safe to call twice."""
        self._animation_timer.stop()
        self._dispatcher.close()
        self.uninstall_hotkey()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> OverlayState:
        return self._machine.current_state

    @property
    def bar_heights(self) -> List[float]:
        return self._smoother.heights

    @property
    def bar_targets(self) -> List[float]:
        return self._smoother.targets

    @property
    def clock(self) -> AnimationClock:
        return self._clock

    @property
    def hotkey(self) -> Optional[HotkeyCapture]:
        return self._hotkey

    def __repr__(self) -> str:
        return f"CapsuleOverlay(state={self.state.name}, visible={self.isVisible()})"
