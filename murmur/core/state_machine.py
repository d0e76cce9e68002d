"""
Overlay State Machine for Murmur

Holds the overlay's visual mode. Transitions come only from application
logic (through the dispatcher); the machine never changes state on its own.
"""

from enum import Enum
from PySide6.QtCore import QObject, Signal
import logging

logger = logging.getLogger(__name__)


class OverlayState(Enum):
    """
    Visual modes of the capsule overlay.

    State Flow (driven externally, any order allowed):
        IDLE → RECORDING (capture started)
        RECORDING → TRANSCRIBING (capture stopped)
        TRANSCRIBING → IDLE (text delivered)
    """
    IDLE = 0          # Pulsing dots
    RECORDING = 1     # Live level bars
    TRANSCRIBING = 2  # Shimmering label


class OverlayStateMachine(QObject):
    """
    Current overlay mode, owned by the UI thread.

    Unlike an application workflow machine there is no transition table:
    every state may follow every other one, and there are no timeouts.
    Setting the state it already holds is accepted and changes nothing.

    Signals:
        state_changed(OverlayState): Emitted after the mode actually changes
    """

    state_changed = Signal(OverlayState)

    def __init__(self):
        """Initialize in IDLE state"""
        super().__init__()

        self._current_state = OverlayState.IDLE

        logger.debug("OverlayStateMachine initialized in IDLE state")

    def set_state(self, new_state: OverlayState) -> bool:
        """
        Switch to new_state.

        Args:
            new_state: Target overlay state

        Returns:
            True if the state changed, False if it was already current

        Raises:
            TypeError: If new_state is not an OverlayState
        """
        if not isinstance(new_state, OverlayState):
            raise TypeError(f"Expected OverlayState, got {type(new_state).__name__}")

        old_state = self._current_state
        if old_state == new_state:
            return False

        self._current_state = new_state
        logger.info(f"Overlay state: {old_state.name} → {new_state.name}")

        self.state_changed.emit(new_state)
        return True

    @property
    def current_state(self) -> OverlayState:
        return self._current_state

    def is_recording(self) -> bool:
        return self._current_state == OverlayState.RECORDING

    def __repr__(self) -> str:
        return f"OverlayStateMachine(current_state={self._current_state.name})"
