"""Connection lifecycle for an RCI session.

A session owns the transport to one instrument. It opens the stream,
discards the greeting the instrument prints on attach, and closes the
stream exactly once::

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED

A failed connect falls back to ``DISCONNECTED``. Nothing reconnects
automatically; callers disconnect and connect again.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from types import TracebackType
from typing import Callable

from digilock_rci.config import RciConfig
from digilock_rci.errors import NotConnectedError, RciConnectionError
from digilock_rci.transport import RciTransport, open_socket_transport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[RciConfig], RciTransport]


def _default_transport_factory(config: RciConfig) -> RciTransport:
    return open_socket_transport(config.host, config.port, config.timeout)


class SessionState(Enum):
    """Connection state of an :class:`RciSession`."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class RciSession:
    """Owns the stream to one DigiLock instrument.

    Use as a context manager to guarantee the stream is closed on every exit
    path::

        with RciSession(RciConfig(host="192.168.1.100")) as session:
            channel = RciChannel(session)
            ...

    Args:
        config: Connection settings.
        transport_factory: Callable returning an open transport for a
            config. Defaults to a TCP socket.
    """

    def __init__(
        self,
        config: RciConfig,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config
        self._transport_factory = transport_factory or _default_transport_factory
        self._transport: RciTransport | None = None
        self._state = SessionState.DISCONNECTED

    # -- Properties ----------------------------------------------------------

    @property
    def config(self) -> RciConfig:
        """Return the configuration."""
        return self._config

    @property
    def host(self) -> str:
        """Return the instrument host."""
        return self._config.host

    @property
    def port(self) -> int:
        """Return the RCI TCP port."""
        return self._config.port

    @property
    def timeout(self) -> float:
        """Return the connect and read timeout in seconds."""
        return self._config.timeout

    @property
    def state(self) -> SessionState:
        """Return the current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Return True if the session is connected."""
        return self._state is SessionState.CONNECTED

    @property
    def transport(self) -> RciTransport:
        """Return the open transport.

        Raises:
            NotConnectedError: If the session is not connected.
        """
        if self._state is not SessionState.CONNECTED or self._transport is None:
            raise NotConnectedError(f"Not connected to {self._address}")
        return self._transport

    # -- Lifecycle -----------------------------------------------------------

    def connect(self) -> None:
        """Open the stream and discard the instrument's greeting.

        Waits ``config.banner_settle`` seconds after the stream opens and
        throws away whatever arrived in that window. Connecting an already
        connected session does nothing.

        Raises:
            RciConnectionError: If the stream cannot be opened.
        """
        if self._state is SessionState.CONNECTED:
            logger.warning("%s: already connected", self._address)
            return

        self._state = SessionState.CONNECTING
        logger.info("Connecting to DigiLock at %s", self._address)
        try:
            transport = self._transport_factory(self._config)
        except RciConnectionError:
            self._state = SessionState.DISCONNECTED
            raise
        except OSError as exc:
            self._state = SessionState.DISCONNECTED
            raise RciConnectionError(f"Failed to connect to {self._address}: {exc}") from exc

        try:
            self._drain_banner(transport)
        except OSError as exc:
            transport.close()
            self._state = SessionState.DISCONNECTED
            raise RciConnectionError(f"Connection to {self._address} lost during attach: {exc}") from exc

        self._transport = transport
        self._state = SessionState.CONNECTED
        logger.info("Connected to DigiLock at %s", self._address)

    def disconnect(self) -> None:
        """Close the stream. Safe to call on a disconnected session."""
        if self._transport is None:
            self._state = SessionState.DISCONNECTED
            return
        logger.info("Disconnecting from DigiLock at %s", self._address)
        self._release()

    def drop(self, reason: str) -> None:
        """Tear down a session whose stream failed unrecoverably.

        Args:
            reason: Description of the failure, for the log.
        """
        if self._transport is None:
            return
        logger.warning("%s: dropping session: %s", self._address, reason)
        self._release()

    def __enter__(self) -> RciSession:
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.disconnect()

    # -- Private helpers -----------------------------------------------------

    @property
    def _address(self) -> str:
        return f"{self._config.host}:{self._config.port}"

    def _drain_banner(self, transport: RciTransport) -> None:
        if self._config.banner_settle > 0:
            time.sleep(self._config.banner_settle)
        banner = transport.read_available()
        if banner:
            logger.debug("%s: discarded greeting %r", self._address, banner)

    def _release(self) -> None:
        transport, self._transport = self._transport, None
        self._state = SessionState.DISCONNECTED
        if transport is None:
            return
        try:
            transport.close()
        except OSError as exc:
            logger.warning("%s: error while closing stream: %s", self._address, exc)
