#!/usr/bin/env python3
"""
Murmur: Overlay Application Entry Point

Wires the capsule overlay to its configuration, the global hotkey and the
trigger server, and exposes the hotkey edges to the rest of a dictation
application as Qt signals.

Workflow:
1. User presses the hotkey (Ctrl+Shift+Space) → overlay shows RECORDING
2. User releases it → overlay shows TRANSCRIBING
3. The application calls finish_transcription() → overlay returns to IDLE
"""

import argparse
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from PySide6.QtWidgets import QApplication
from PySide6.QtCore import QCoreApplication, QObject, QTimer, QUrl, Signal
from PySide6.QtGui import QDesktopServices

from murmur.core.hotkey_capture import HotkeyCapture
from murmur.core.key_sources import KeySource
from murmur.core.levels import synthetic_levels
from murmur.core.state_machine import OverlayState
from murmur.core.trigger_server import TriggerServer, send_trigger_command
from murmur.data.config import ConfigManager
from murmur.ui.overlay import CapsuleOverlay, OverlayMenuActions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "murmur" / "config.yaml"


def configure_logging(level: str = "info") -> None:
    """Set up root logging in the application's format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
        ],
        force=True
    )


class DemoFeeder:
    """
    Background producer that drives the overlay through a scripted cycle.

    Runs on its own thread and talks to the overlay only through
    post_state()/post_level(): idle for 2s, recording with synthetic
    levels for 4s, transcribing for 3s, repeat.
    """

    def __init__(
        self,
        overlay: CapsuleOverlay,
        chunk_ms: int = 30,
        idle_s: float = 2.0,
        recording_s: float = 4.0,
        transcribing_s: float = 3.0
    ):
        self._overlay = overlay
        self._chunk_ms = chunk_ms
        self._idle_s = idle_s
        self._recording_s = recording_s
        self._transcribing_s = transcribing_s
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="murmur-demo", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=1.0)

    def _run(self) -> None:
        levels = synthetic_levels(chunk_ms=self._chunk_ms)
        while not self._stop.is_set():
            self._overlay.post_state(OverlayState.IDLE)
            if self._stop.wait(self._idle_s):
                break

            self._overlay.post_state(OverlayState.RECORDING)
            deadline = time.monotonic() + self._recording_s
            while time.monotonic() < deadline and not self._stop.is_set():
                self._overlay.post_level(next(levels))
                self._stop.wait(self._chunk_ms / 1000.0)

            self._overlay.post_state(OverlayState.TRANSCRIBING)
            if self._stop.wait(self._transcribing_s):
                break


class MurmurApp(QObject):
    """
    Application orchestrator for the overlay.

    Signals:
        hotkey_down(): Capture should start (hotkey pressed or toggle on)
        hotkey_up(): Capture should stop (hotkey released or toggle off)
        settings_requested(): "Open Settings" chosen in the overlay menu
    """

    hotkey_down = Signal()
    hotkey_up = Signal()
    settings_requested = Signal()

    def __init__(
        self,
        config_path: Optional[str] = None,
        debug: bool = False,
        key_source: Optional[KeySource] = None
    ):
        super().__init__()

        # Qt Application
        self.app = QApplication.instance()
        if self.app is None:
            self.app = QApplication(sys.argv)

        self.app.setApplicationName("Murmur")
        self.app.setOrganizationName("Murmur")
        self.app.setQuitOnLastWindowClosed(False)
        self._cleanup_done = False
        self._exit_requested = False
        self.app.aboutToQuit.connect(self.cleanup)

        self.config = ConfigManager(str(config_path or DEFAULT_CONFIG_PATH))
        configure_logging('debug' if debug else self.config.get('app.log_level', 'info'))

        logger.info("Initializing overlay...")
        self.overlay = CapsuleOverlay(
            position=self.config.get('overlay.position', 'bottom-center'),
            margin=self.config.get('overlay.margin', 24),
            monitor_index=self.config.get('overlay.monitor', 0),
            measure_tick_delta=self.config.get('overlay.measure_tick_delta', False)
        )
        self.overlay.install_context_menu(OverlayMenuActions(
            open_settings=self.open_settings,
            quit=self.request_exit
        ))

        self.hotkey: Optional[HotkeyCapture] = self.overlay.install_hotkey(
            self.config.get('hotkey.trigger', 'ctrl+shift+space'),
            self._on_hotkey_down,
            self._on_hotkey_up,
            key_source=key_source
        )

        self.trigger_server: Optional[TriggerServer] = None
        if self.config.get('trigger_server.enabled', True):
            self.trigger_server = TriggerServer(
                on_down=self._on_hotkey_down,
                on_up=self._on_hotkey_up,
                name=self.config.get('trigger_server.name', 'murmur')
            )

        self.demo: Optional[DemoFeeder] = None

        logger.info("Murmur initialized successfully")

    def _on_hotkey_down(self) -> None:
        # Runs on the key source's thread
        self.overlay.post_state(OverlayState.RECORDING)
        self.hotkey_down.emit()

    def _on_hotkey_up(self) -> None:
        self.overlay.post_state(OverlayState.TRANSCRIBING)
        self.hotkey_up.emit()

    def push_level(self, rms: float) -> None:
        """Forward a level sample from the capture thread to the overlay."""
        self.overlay.post_level(rms)

    def finish_transcription(self) -> None:
        """Return the overlay to IDLE once text has been delivered."""
        self.overlay.post_state(OverlayState.IDLE)

    def open_settings(self) -> None:
        """Open the YAML config in the desktop's default editor."""
        self.settings_requested.emit()
        # Recreate the file if it was deleted after startup
        if not self.config.config_path.exists():
            self.config.save()
        url = QUrl.fromLocalFile(str(self.config.config_path))
        if not QDesktopServices.openUrl(url):
            logger.warning(f"Could not open settings file: {self.config.config_path}")

    def start_demo(self) -> None:
        """Drive the overlay from a synthetic producer thread."""
        self.demo = DemoFeeder(self.overlay)
        self.demo.start()
        logger.info("Demo producer started")

    def run(self) -> int:
        """Show the overlay and enter the Qt event loop."""
        if self.trigger_server is not None:
            self.trigger_server.start()

        if self.config.get('overlay.enabled', True):
            self.overlay.show()
        else:
            logger.info("Overlay disabled in config, running hidden")

        return self.app.exec()

    def cleanup(self) -> None:
        """Stop producers, release the hotkey and close the trigger server."""
        if self._cleanup_done:
            return
        self._cleanup_done = True

        logger.info("Cleaning up...")

        if self.demo is not None:
            self.demo.stop()

        if self.trigger_server is not None:
            self.trigger_server.stop()

        self.overlay.shutdown()

        logger.info("Cleanup complete")

    def request_exit(self) -> None:
        """Hide UI instantly, then perform shutdown and quit."""
        if self._exit_requested:
            return
        self._exit_requested = True

        self.overlay.hide()
        QTimer.singleShot(0, self._finalize_exit)

    def _finalize_exit(self) -> None:
        self.cleanup()
        self.app.quit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="murmur",
        description="Always-on-top dictation status overlay"
    )
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument(
        "--toggle",
        action="store_true",
        help="Toggle capture in the running instance (for Wayland shortcuts)"
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Animate the overlay with a synthetic audio signal"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def toggle_running_instance(config_path: Optional[str] = None) -> int:
    """Send "toggle" to a running instance. Returns a process exit code."""
    config = ConfigManager(str(config_path or DEFAULT_CONFIG_PATH))
    name = config.get('trigger_server.name', 'murmur')

    # QLocalSocket needs an application instance
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)  # noqa: F841
    reply = send_trigger_command("toggle", name=name)
    if reply is None:
        logger.error("Murmur is not running")
        return 1

    print(reply or "OK")
    return 0


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    if args.toggle:
        configure_logging('debug' if args.debug else 'warning')
        sys.exit(toggle_running_instance(args.config))

    try:
        app = MurmurApp(config_path=args.config, debug=args.debug)
        if args.demo:
            app.start_demo()
        sys.exit(app.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == '__main__':
    main()
