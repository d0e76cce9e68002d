"""
Trigger Server for Murmur (Wayland hotkey support)

Wayland compositors do not let clients grab global keys. Instead, the user
binds a desktop shortcut to `murmur --toggle`, which connects to this
server and sends a command.

Protocol:
    Client connects to the local server named "murmur", sends a UTF-8
    command string, and reads one reply line.

Commands:
    "toggle" - First toggle acts as hotkey down (reply "RECORDING"),
               the next as hotkey up (reply "STOPPED"), and so on.
"""

from typing import Callable, Optional
from PySide6.QtCore import QObject, Signal
from PySide6.QtNetwork import QLocalServer, QLocalSocket
import logging

logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "murmur"


class TriggerServer(QObject):
    """
    Local trigger server using QLocalServer (Unix domain socket).

    Args:
        on_down: Called on the UI thread when a toggle starts capture
        on_up: Called on the UI thread when a toggle stops capture
        name: Local server name

    Signals:
        command_received(str): Emitted for every non-empty command
    """

    command_received = Signal(str)

    def __init__(
        self,
        on_down: Optional[Callable[[], None]] = None,
        on_up: Optional[Callable[[], None]] = None,
        name: str = DEFAULT_SERVER_NAME
    ):
        super().__init__()
        self._name = name
        self._on_down = on_down
        self._on_up = on_up
        self._active = False

        self._server = QLocalServer(self)
        self._server.newConnection.connect(self._on_new_connection)

    def start(self) -> bool:
        """
        Start listening for trigger connections.

        Returns:
            True if server started, False on failure
        """
        # Remove stale socket from previous crash
        QLocalServer.removeServer(self._name)

        if not self._server.listen(self._name):
            logger.error(f"Trigger server failed to start: {self._server.errorString()}")
            return False

        logger.info(f"Trigger server listening on '{self._name}'")
        return True

    def stop(self) -> None:
        """Stop the trigger server."""
        if self._server.isListening():
            self._server.close()
            logger.info("Trigger server stopped")

    def handle_command(self, command: str) -> Optional[str]:
        """
        Apply one command.

        Args:
            command: Command string sent by a client

        Returns:
            Reply line, or None for unknown commands
        """
        if command != "toggle":
            logger.warning(f"Unknown trigger command: {command}")
            return None

        self._active = not self._active
        if self._active:
            logger.info("Trigger: capture started")
            if self._on_down is not None:
                self._on_down()
            return "RECORDING"

        logger.info("Trigger: capture stopped")
        if self._on_up is not None:
            self._on_up()
        return "STOPPED"

    def _on_new_connection(self) -> None:
        """Handle incoming trigger connections."""
        while self._server.hasPendingConnections():
            socket = self._server.nextPendingConnection()
            if socket is None:
                continue

            # Wait briefly for data (non-blocking with timeout)
            if socket.waitForReadyRead(500):
                data = decode_command(socket.readAll().data())
                logger.debug(f"Trigger command received: '{data}'")
                if data:
                    self.command_received.emit(data)
                    reply = self.handle_command(data)
                    if reply is not None:
                        socket.write(f"{reply}\n".encode('utf-8'))
                        socket.flush()
                        socket.waitForBytesWritten(500)

            socket.disconnectFromServer()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def name(self) -> str:
        return self._name


def decode_command(raw: bytes) -> str:
    """Client bytes to a command string; undecodable bytes become U+FFFD."""
    return raw.decode('utf-8', errors='replace').strip()


def send_trigger_command(command: str, name: str = DEFAULT_SERVER_NAME) -> Optional[str]:
    """
    Send a command to the running Murmur instance.

    Args:
        command: Command string (e.g., "toggle")
        name: Local server name

    Returns:
        Reply line from the server ("" if none arrived), or None if the
        app is not running
    """
    socket = QLocalSocket()
    socket.connectToServer(name)

    if not socket.waitForConnected(1000):
        return None

    socket.write(command.encode('utf-8'))
    socket.flush()
    socket.waitForBytesWritten(1000)

    reply = ""
    if socket.waitForReadyRead(1000):
        reply = decode_command(socket.readAll().data())

    socket.disconnectFromServer()
    return reply
