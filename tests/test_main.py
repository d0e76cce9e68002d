"""
Tests for the application wiring in murmur.main.

Run with: python -m pytest tests/test_main.py -v
"""

import os
import time
from types import SimpleNamespace

import pytest
import yaml

import murmur.main as main_module
from murmur.core.state_machine import OverlayState
from murmur.main import DemoFeeder, MurmurApp, main, toggle_running_instance
from murmur.theme import BAR_MAX_HEIGHT, BAR_MIN_HEIGHT
from murmur.ui.overlay import CapsuleOverlay

SERVER_NAME = f"murmur-main-test-{os.getpid()}"


def write_config(path, data):
    data.setdefault('trigger_server', {})['name'] = SERVER_NAME
    path.write_text(yaml.safe_dump(data))
    return path


def pump(qapp, done, timeout=1.0):
    """Run the event loop until done() or timeout."""
    deadline = time.monotonic() + timeout
    while not done() and time.monotonic() < deadline:
        qapp.processEvents()
        time.sleep(0.005)


@pytest.fixture
def config_file(tmp_path):
    return write_config(tmp_path / "config.yaml", {})


@pytest.fixture
def murmur_app(qapp, config_file, key_source):
    application = MurmurApp(config_path=str(config_file), key_source=key_source)
    yield application
    application.cleanup()
    application.overlay.close()


class TestMurmurApp:
    """Hotkey edges, levels and teardown."""

    def test_hotkey_drives_overlay_states(self, murmur_app, key_source):
        edges = []
        murmur_app.hotkey_down.connect(lambda: edges.append('down'))
        murmur_app.hotkey_up.connect(lambda: edges.append('up'))
        overlay = murmur_app.overlay

        key_source.press(65, 5)
        overlay.process_pending()
        assert overlay.state == OverlayState.RECORDING

        key_source.release(65, 5)
        overlay.process_pending()
        assert overlay.state == OverlayState.TRANSCRIBING

        murmur_app.finish_transcription()
        overlay.process_pending()
        assert overlay.state == OverlayState.IDLE
        assert edges == ['down', 'up']

    def test_push_level_reaches_bars(self, murmur_app):
        murmur_app.push_level(0.08)
        murmur_app.overlay.process_pending()
        assert murmur_app.overlay.bar_targets[-1] == BAR_MAX_HEIGHT

    def test_hotkey_installed_on_given_source(self, murmur_app, key_source):
        assert murmur_app.hotkey is not None
        assert murmur_app.hotkey.installed
        assert (65, 5) in key_source.grabs

    def test_trigger_server_toggles_overlay(self, murmur_app):
        murmur_app.trigger_server.handle_command("toggle")
        murmur_app.overlay.process_pending()
        assert murmur_app.overlay.state == OverlayState.RECORDING

        murmur_app.trigger_server.handle_command("toggle")
        murmur_app.overlay.process_pending()
        assert murmur_app.overlay.state == OverlayState.TRANSCRIBING

    def test_request_exit_cleans_up_once(self, qapp, murmur_app, monkeypatch):
        shutdowns = []
        original_shutdown = murmur_app.overlay.shutdown
        monkeypatch.setattr(
            murmur_app.overlay, 'shutdown',
            lambda: (shutdowns.append(1), original_shutdown())
        )
        quits = []
        murmur_app.app = SimpleNamespace(quit=lambda: quits.append(1))

        murmur_app.request_exit()
        murmur_app.request_exit()
        pump(qapp, lambda: quits)
        murmur_app.cleanup()

        assert quits == [1]
        assert shutdowns == [1]
        assert not murmur_app.overlay.isVisible()

    def test_open_settings_recreates_missing_file(self, murmur_app, config_file, monkeypatch):
        opened = []
        monkeypatch.setattr(main_module, 'QDesktopServices', SimpleNamespace(
            openUrl=lambda url: opened.append(url.toLocalFile()) or True
        ))
        requested = []
        murmur_app.settings_requested.connect(lambda: requested.append(1))

        config_file.unlink()
        murmur_app.open_settings()

        assert config_file.exists()
        assert opened == [str(config_file)]
        assert requested == [1]


class TestConfigFallback:
    """Invalid config values never stop the overlay from starting."""

    def test_invalid_overlay_values(self, qapp, tmp_path, key_source):
        path = write_config(tmp_path / "bad.yaml", {
            'overlay': {'position': 5, 'margin': 'wide', 'monitor': -2},
        })

        application = MurmurApp(config_path=str(path), key_source=key_source)
        try:
            screen = qapp.primaryScreen().geometry()
            geo = application.overlay.geometry()
            assert geo.bottom() + 1 == screen.y() + screen.height() - 24
        finally:
            application.cleanup()
            application.overlay.close()

    def test_invalid_trigger_uses_default(self, qapp, tmp_path, key_source):
        path = write_config(tmp_path / "bad.yaml", {'hotkey': {'trigger': 'ctrl+'}})

        application = MurmurApp(config_path=str(path), key_source=key_source)
        try:
            assert str(application.hotkey.spec) == 'ctrl+shift+space'
            assert application.hotkey.installed
        finally:
            application.cleanup()
            application.overlay.close()


class TestToggleCommand:
    """`murmur --toggle` without a running instance."""

    def test_returns_error_code(self, qapp, config_file):
        assert toggle_running_instance(str(config_file)) == 1

    def test_main_exits_with_error(self, qapp, config_file):
        with pytest.raises(SystemExit) as excinfo:
            main(['--toggle', '--config', str(config_file)])
        assert excinfo.value.code == 1


class TestDemoFeeder:
    """Synthetic producer thread."""

    def test_cycles_through_states(self, qapp):
        overlay = CapsuleOverlay(tick_ms=60_000)
        states = []
        overlay.state_changed.connect(states.append)

        feeder = DemoFeeder(
            overlay, chunk_ms=5, idle_s=0.01, recording_s=0.1, transcribing_s=0.01
        )
        feeder.start()
        time.sleep(0.3)
        feeder.stop()
        overlay.process_pending()

        try:
            assert states[:2] == [OverlayState.RECORDING, OverlayState.TRANSCRIBING]
            assert max(overlay.bar_targets) > BAR_MIN_HEIGHT
        finally:
            overlay.close()
