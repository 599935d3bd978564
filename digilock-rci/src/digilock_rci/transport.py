"""RCI transport protocol and TCP socket implementation.

A transport moves raw text between the client and the instrument. It knows
nothing about commands, replies or line framing: the RCI stream carries no
message boundaries, so the command channel decides when a reply is complete
by draining whatever has arrived.

Implementations include:
- :class:`SocketTransport`: TCP stream to a real instrument
- :class:`digilock_rci.emulator.DigiLockEmulator`: in-process emulator
"""

from __future__ import annotations

import logging
import select
import socket
from typing import Protocol

from digilock_rci.errors import RciConnectionError

logger = logging.getLogger(__name__)

ENCODING = "ascii"
_RECV_SIZE = 4096


class RciTransport(Protocol):
    """Protocol for an open RCI byte stream.

    Failures are reported as :class:`OSError` subclasses: ``TimeoutError``
    when a blocking read or write exceeds the transport timeout, and a
    :class:`ConnectionError` subclass when the peer has closed the stream.

    Example:
        >>> class MyTransport:
        ...     def write(self, message: str) -> None: ...
        ...     def read_available(self) -> str: return ""
        ...     def read_some(self) -> str: return "x=1\\r\\n"
        ...     def close(self) -> None: ...
        ...
        >>> transport: RciTransport = MyTransport()  # Type checks OK
    """

    def write(self, message: str) -> None:
        """Send *message* exactly as given (terminators included)."""
        ...

    def read_available(self) -> str:
        """Return everything received so far without blocking.

        Returns:
            The pending text, or ``""`` if nothing has arrived.
        """
        ...

    def read_some(self) -> str:
        """Block until at least one chunk arrives or the timeout elapses.

        Returns:
            The received text (never empty).
        """
        ...

    def close(self) -> None:
        """Close the stream and release resources."""
        ...


class SocketTransport:
    """RCI transport over a TCP socket.

    Attributes:
        host: Instrument hostname or IP address.
        port: Instrument TCP port.
        is_open: Whether the socket is currently open.

    Args:
        host: Instrument hostname or IP address.
        port: Instrument TCP port.
        timeout: Connect, read and write timeout in seconds.

    Example:
        >>> transport = SocketTransport("192.168.1.100", 60001)
        >>> transport.open()
        >>> transport.write("pid1:gain?\\r\\n")
        >>> print(transport.read_some())
        >>> transport.close()
    """

    def __init__(self, host: str, port: int, *, timeout: float = 5.0) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._sock: socket.socket | None = None

    # -- Properties ----------------------------------------------------------

    @property
    def host(self) -> str:
        """The instrument host."""
        return self._host

    @property
    def port(self) -> int:
        """The instrument port."""
        return self._port

    @property
    def is_open(self) -> bool:
        """Return True if the socket is currently open."""
        return self._sock is not None

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the TCP connection.

        Raises:
            RciConnectionError: If the connection is refused, the host cannot
                be resolved or reached, or the connect times out.
        """
        if self._sock is not None:
            return

        address = f"{self._host}:{self._port}"
        try:
            logger.debug("Connecting to %s (timeout %.1fs)", address, self._timeout)
            sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
        except ConnectionRefusedError as exc:
            raise RciConnectionError(f"Connection refused by {address}") from exc
        except socket.timeout as exc:
            raise RciConnectionError(f"Connection to {address} timed out") from exc
        except socket.gaierror as exc:
            raise RciConnectionError(f"Cannot resolve host {self._host!r}: {exc}") from exc
        except OSError as exc:
            raise RciConnectionError(f"Failed to connect to {address}: {exc}") from exc

        sock.settimeout(self._timeout)
        self._sock = sock

    def close(self) -> None:
        """Close the socket. Safe to call multiple times."""
        if self._sock is None:
            return
        sock, self._sock = self._sock, None
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer already gone; close() below still releases the descriptor.
            pass
        sock.close()

    # -- Transport interface -------------------------------------------------

    def write(self, message: str) -> None:
        """Send *message* to the instrument.

        Raises:
            ConnectionError: If the socket is not open or the peer is gone.
            TimeoutError: If the send did not complete within the timeout.
        """
        sock = self._require_socket()
        sock.sendall(message.encode(ENCODING))

    def read_available(self) -> str:
        """Drain every byte that is already waiting on the socket.

        If the peer closed the stream after sending data, that data is
        returned and the closure is reported by the next read.

        Raises:
            ConnectionError: If the socket is not open, or the peer closed it
                and nothing was left to read.
        """
        sock = self._require_socket()
        chunks: list[bytes] = []
        while True:
            ready, _, _ = select.select([sock], [], [], 0)
            if not ready:
                break
            try:
                chunks.append(self._recv(sock))
            except ConnectionAbortedError:
                if not chunks:
                    raise
                break
        return b"".join(chunks).decode(ENCODING, errors="replace")

    def read_some(self) -> str:
        """Block for the next chunk of data, bounded by the timeout.

        Raises:
            ConnectionError: If the socket is not open or the peer closed it.
            TimeoutError: If nothing arrived within the timeout.
        """
        sock = self._require_socket()
        return self._recv(sock).decode(ENCODING, errors="replace")

    # -- Private helpers -----------------------------------------------------

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionAbortedError(f"Socket to {self._host}:{self._port} is not open")
        return self._sock

    @staticmethod
    def _recv(sock: socket.socket) -> bytes:
        data = sock.recv(_RECV_SIZE)
        if not data:
            raise ConnectionAbortedError("Connection closed by peer")
        return data


def open_socket_transport(host: str, port: int, timeout: float) -> SocketTransport:
    """Create and open a :class:`SocketTransport`.

    Args:
        host: Instrument hostname or IP address.
        port: Instrument TCP port.
        timeout: Connect, read and write timeout in seconds.

    Returns:
        The open transport.

    Raises:
        RciConnectionError: If the connection could not be established.
    """
    transport = SocketTransport(host, port, timeout=timeout)
    transport.open()
    return transport
