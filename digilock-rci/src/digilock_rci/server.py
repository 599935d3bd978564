"""TCP server exposing a DigiLock emulator.

Serves a :class:`DigiLockEmulator` over TCP so the real socket transport,
telnet or netcat can talk to it. Unlike a line-oriented SCPI server the
stream is passed through raw: whatever the client sends is fed to the
emulator and whatever the emulator produced is sent back, including the
greeting printed on attach.

Example:
    Start an emulator server on an ephemeral port::

        from digilock_rci import EmulatorServer, make_digilock_emulator, open_channel

        server = EmulatorServer(make_digilock_emulator(), port=0)
        server.start()

        host, port = server.address
        with open_channel(host, port) as dl:
            print(dl.query("pid1:input?"))

        server.stop()
"""

from __future__ import annotations

import logging
import socket
import socketserver
import threading
from typing import Any

from digilock_rci.emulator import DigiLockEmulator
from digilock_rci.transport import ENCODING

logger = logging.getLogger(__name__)


class _RciRequestHandler(socketserver.BaseRequestHandler):
    """Handle one TCP connection, relaying raw text to the emulator."""

    server: _RciTcpServer

    def setup(self) -> None:
        with self.server.lock:
            self.server.clients.add(self.request)

    def finish(self) -> None:
        with self.server.lock:
            self.server.clients.discard(self.request)

    def handle(self) -> None:
        emulator = self.server.emulator
        with self.server.lock:
            greeting = emulator.attach().read_available()
        self.request.sendall(greeting.encode(ENCODING))

        while True:
            try:
                data = self.request.recv(4096)
                if not data:
                    break
                with self.server.lock:
                    emulator.write(data.decode(ENCODING, errors="replace"))
                    reply = emulator.read_available()
                if reply:
                    self.request.sendall(reply.encode(ENCODING))
            except OSError as exc:
                logger.debug("Client connection error: %s", exc)
                break

        with self.server.lock:
            emulator.close()


class _RciTcpServer(socketserver.TCPServer):
    """TCPServer subclass that holds the emulator being served."""

    allow_reuse_address = True

    def __init__(
        self,
        server_address: tuple[str, int],
        emulator: DigiLockEmulator,
        **kwargs: Any,
    ) -> None:
        self.emulator = emulator
        self.lock = threading.Lock()
        self.clients: set[socket.socket] = set()
        super().__init__(server_address, _RciRequestHandler, **kwargs)


class EmulatorServer:
    """TCP server wrapping a :class:`DigiLockEmulator`.

    Runs in a background daemon thread and handles one client connection at
    a time.

    Args:
        emulator: The emulator to serve.
        host: Bind address (default ``"127.0.0.1"``).
        port: Bind port (default ``60001``). Use ``0`` for an OS-assigned
            ephemeral port.
    """

    def __init__(
        self,
        emulator: DigiLockEmulator,
        host: str = "127.0.0.1",
        port: int = 60001,
    ) -> None:
        self._server = _RciTcpServer((host, port), emulator)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start serving in a daemon thread."""
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("DigiLock emulator listening on %s:%d", *self.address)

    def stop(self) -> None:
        """Shut down the server and wait for the thread to exit.

        An attached client is disconnected first so the request handler
        returns and the serve loop can exit.
        """
        with self._server.lock:
            clients = list(self._server.clients)
        for client in clients:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                # Client already gone.
                pass
        self._server.shutdown()
        if self._thread is not None:
            self._thread.join()
        self._server.server_close()

    @property
    def address(self) -> tuple[str, int]:
        """Return the actual bound ``(host, port)`` address."""
        addr = self._server.server_address
        return (str(addr[0]), int(addr[1]))

    def __enter__(self) -> EmulatorServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
