"""
Global Key Sources for Murmur

A key source is the platform capability behind HotkeyCapture: it resolves
key symbols to keycodes, grabs a keycode + modifier mask, and delivers raw
press/release events to a handler.

Sources:
    XlibKeySource   - X11 passive grab on the root window (python-xlib)
    PynputKeySource - pynput listener (macOS, Windows)
    NullKeySource   - no global capture (Wayland, headless)

select_key_source() picks one at startup. Callers only check `available`,
never the platform.
"""

from typing import Callable, Dict, Optional
import logging
import os
import sys
import threading

from Xlib import X, XK, display as xdisplay, error as xerror

from murmur.core.hotkey_capture import (
    FUNCTION_KEYS,
    LOCK_COMBINATIONS,
    KeyEvent,
    KeyEventType,
    ModifierMask,
)

logger = logging.getLogger(__name__)

KeyHandler = Callable[[KeyEvent], bool]


def is_wayland() -> bool:
    """Check if the session runs under a Wayland compositor."""
    if os.environ.get('WAYLAND_DISPLAY'):
        return True
    return os.environ.get('XDG_SESSION_TYPE', '') == 'wayland'


class KeySource:
    """
    Interface for global key capture backends.

    Attributes:
        name: Short backend name used in log messages
        available: False if the backend cannot capture global keys
    """

    name = "none"
    available = False

    def resolve(self, key: str) -> Optional[object]:
        """Map a normalized key symbol to a backend keycode, or None."""
        return None

    def grab(self, keycode: object, modifiers: ModifierMask, handler: KeyHandler) -> None:
        """Start delivering events for keycode to handler."""

    def ungrab(self, keycode: object, modifiers: ModifierMask) -> None:
        """Stop delivering events for keycode."""

    def close(self) -> None:
        """Release all backend resources."""


class NullKeySource(KeySource):
    """Key source for environments without global key capture."""

    def __init__(self, reason: str = "unsupported"):
        self.name = reason


class XlibKeySource(KeySource):
    """
    X11 global hotkeys through XGrabKey on the root window.

    Each combination is grabbed four times, once per Caps Lock / Num Lock
    state. Grabbed events are delivered only to this client, so matching
    keys never reach the focused window. A daemon thread reads the X
    connection and calls the handler for every grabbed key event.

    Args:
        display_name: X display to connect to (default: $DISPLAY)

    Raises:
        Xlib.error.DisplayError: If the X server cannot be reached
    """

    name = "x11"
    available = True

    _NAMED_KEYSYMS = {
        'space': XK.XK_space,
        'enter': XK.XK_Return,
        'tab': XK.XK_Tab,
    }

    def __init__(self, display_name: Optional[str] = None):
        self._display = xdisplay.Display(display_name)
        self._root = self._display.screen().root
        self._handlers: Dict[int, KeyHandler] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def resolve(self, key: str) -> Optional[int]:
        keysym = self._keysym_for(key)
        if not keysym:
            return None
        keycode = self._display.keysym_to_keycode(keysym)
        return keycode or None

    def _keysym_for(self, key: str) -> int:
        if key in self._NAMED_KEYSYMS:
            return self._NAMED_KEYSYMS[key]
        if key in FUNCTION_KEYS:
            return XK.XK_F1 + int(key[1:]) - 1
        # Latin-1 keysyms equal their code point ("," has the name "comma")
        return XK.string_to_keysym(key) or ord(key)

    def grab(self, keycode: int, modifiers: ModifierMask, handler: KeyHandler) -> None:
        for lock in LOCK_COMBINATIONS:
            self._root.grab_key(
                keycode,
                int(modifiers | lock),
                True,
                X.GrabModeAsync,
                X.GrabModeAsync,
                onerror=self._on_grab_error
            )
        self._display.flush()

        with self._lock:
            self._handlers[keycode] = handler
        self._start()

    def ungrab(self, keycode: int, modifiers: ModifierMask) -> None:
        with self._lock:
            self._handlers.pop(keycode, None)

        for lock in LOCK_COMBINATIONS:
            self._root.ungrab_key(keycode, int(modifiers | lock))
        self._display.flush()

    def _on_grab_error(self, err, request) -> None:
        # Usually BadAccess: another client already owns the combination
        logger.warning(f"X server refused key grab: {err}")

    def _start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._event_loop,
            name="murmur-x11-keys",
            daemon=True
        )
        self._thread.start()

    def _event_loop(self) -> None:
        logger.debug("X11 key event loop started")
        while self._running:
            try:
                event = self._display.next_event()
            except xerror.ConnectionClosedError:
                break

            if event.type == X.KeyPress:
                event_type = KeyEventType.PRESS
            elif event.type == X.KeyRelease:
                event_type = KeyEventType.RELEASE
            else:
                continue

            with self._lock:
                handler = self._handlers.get(event.detail)
            if handler is not None:
                handler(KeyEvent(event_type, event.detail, event.state))

        logger.debug("X11 key event loop stopped")

    def close(self) -> None:
        self._running = False
        self._display.close()


class PynputKeySource(KeySource):
    """
    Global key capture through a pynput keyboard listener.

    pynput reports keys without modifier state, so held modifier keys are
    tracked here and folded into a ModifierMask. Events are observed, not
    intercepted: the focused application still receives them.

    Args:
        keyboard: The pynput.keyboard module (default), or any object
            exposing the same Key, KeyCode and Listener names
    """

    name = "pynput"
    available = True

    def __init__(self, keyboard=None):
        if keyboard is None:
            # Imported lazily: pynput connects to the display on import
            from pynput import keyboard

        self._keyboard = keyboard
        self._listener = keyboard.Listener(
            on_press=self._on_press,
            on_release=self._on_release
        )
        self._modifier_keys = {
            keyboard.Key.shift: ModifierMask.SHIFT,
            keyboard.Key.shift_l: ModifierMask.SHIFT,
            keyboard.Key.shift_r: ModifierMask.SHIFT,
            keyboard.Key.ctrl: ModifierMask.CONTROL,
            keyboard.Key.ctrl_l: ModifierMask.CONTROL,
            keyboard.Key.ctrl_r: ModifierMask.CONTROL,
            keyboard.Key.alt: ModifierMask.MOD1,
            keyboard.Key.alt_l: ModifierMask.MOD1,
            keyboard.Key.alt_r: ModifierMask.MOD1,
            keyboard.Key.cmd: ModifierMask.MOD4,
            keyboard.Key.cmd_l: ModifierMask.MOD4,
            keyboard.Key.cmd_r: ModifierMask.MOD4,
        }
        self._held: Dict[object, ModifierMask] = {}
        self._handlers: Dict[object, KeyHandler] = {}
        self._lock = threading.Lock()

    def resolve(self, key: str) -> Optional[object]:
        Key = self._keyboard.Key
        if key == 'space':
            resolved = Key.space
        elif key == 'enter':
            resolved = Key.enter
        elif key == 'tab':
            resolved = Key.tab
        elif key in FUNCTION_KEYS:
            resolved = getattr(Key, key)
        else:
            resolved = self._keyboard.KeyCode.from_char(key)
        return self._listener.canonical(resolved)

    def grab(self, keycode: object, modifiers: ModifierMask, handler: KeyHandler) -> None:
        with self._lock:
            self._handlers[keycode] = handler
        if not self._listener.running:
            self._listener.start()

    def ungrab(self, keycode: object, modifiers: ModifierMask) -> None:
        with self._lock:
            self._handlers.pop(keycode, None)

    def _current_mask(self) -> ModifierMask:
        mask = ModifierMask.NONE
        for bit in self._held.values():
            mask |= bit
        return mask

    def _on_press(self, key) -> None:
        if key in self._modifier_keys:
            self._held[key] = self._modifier_keys[key]
            return
        self._dispatch(KeyEventType.PRESS, key)

    def _on_release(self, key) -> None:
        if key in self._modifier_keys:
            self._held.pop(key, None)
            return
        self._dispatch(KeyEventType.RELEASE, key)

    def _dispatch(self, event_type: KeyEventType, key) -> None:
        keycode = self._listener.canonical(key)
        with self._lock:
            handler = self._handlers.get(keycode)
        if handler is not None:
            handler(KeyEvent(event_type, keycode, int(self._current_mask())))

    def close(self) -> None:
        self._listener.stop()


def select_key_source() -> KeySource:
    """
    Pick the global key source this session supports.

    Returns:
        An available backend, or a NullKeySource naming why none is
    """
    if is_wayland():
        logger.warning(
            "Running on Wayland session. Global hotkeys are not supported; "
            "bind a desktop shortcut to 'murmur --toggle' instead."
        )
        return NullKeySource("wayland")

    if sys.platform.startswith('linux'):
        if not os.environ.get('DISPLAY'):
            logger.warning("No X display found, global hotkeys disabled")
            return NullKeySource("no-display")
        try:
            return XlibKeySource()
        except xerror.DisplayError as e:
            logger.warning(f"Cannot connect to X display: {e}")
            return NullKeySource("x11-unreachable")

    if sys.platform in ('darwin', 'win32'):
        return PynputKeySource()

    logger.warning(f"Global hotkeys not supported on {sys.platform}")
    return NullKeySource(sys.platform)
