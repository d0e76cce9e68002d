"""
Shared pytest fixtures for Murmur tests.

Widgets are created on Qt's offscreen platform so the suite runs without
a display server.
"""

import os
import sys

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

from murmur.core.hotkey_capture import KeyEvent, KeyEventType
from murmur.core.key_sources import KeySource


@pytest.fixture(scope="session")
def qapp():
    """Create QApplication instance for tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    yield app


class FakeKeySource(KeySource):
    """
    In-memory key source.

    Records grabs like an X server would (one per lock combination) and
    lets tests inject raw events through press()/release().
    """

    name = "fake"
    available = True

    def __init__(self, keycodes=None):
        self.keycodes = keycodes or {'space': 65, 'r': 27, 'f9': 75, 'enter': 36, 'tab': 23}
        self.grabs = []
        self.handlers = {}
        self.closed = False

    def resolve(self, key):
        return self.keycodes.get(key)

    def grab(self, keycode, modifiers, handler):
        from murmur.core.hotkey_capture import LOCK_COMBINATIONS
        for lock in LOCK_COMBINATIONS:
            self.grabs.append((keycode, int(modifiers | lock)))
        self.handlers[keycode] = handler

    def ungrab(self, keycode, modifiers):
        self.handlers.pop(keycode, None)
        self.grabs = [g for g in self.grabs if g[0] != keycode]

    def close(self):
        self.closed = True

    def send(self, event_type, keycode, modifiers=0):
        """Deliver an event the way the backend would; returns consumed flag."""
        handler = self.handlers.get(keycode)
        if handler is None:
            return False
        return handler(KeyEvent(event_type, keycode, modifiers))

    def press(self, keycode, modifiers=0):
        return self.send(KeyEventType.PRESS, keycode, modifiers)

    def release(self, keycode, modifiers=0):
        return self.send(KeyEventType.RELEASE, keycode, modifiers)


@pytest.fixture
def key_source():
    """Fresh fake key source for each test."""
    return FakeKeySource()
