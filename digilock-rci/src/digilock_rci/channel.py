"""RCI command channel with reply correlation.

This module provides the :class:`RciChannel` class, which serializes
commands onto a connected :class:`RciSession` and matches each query with
its reply.

The RCI stream has no request identifiers and no message framing, so a
reply is correlated with its query by timing alone: write the query, wait
a settle interval, drain what arrived and pick the first ``key=value``
line. That logic lives in :meth:`RciChannel._exchange`.

Typical usage::

    from digilock_rci import open_channel

    with open_channel("192.168.1.100") as dl:
        dl.send("pid1:gain=5.000000")
        gain = dl.query_number("pid1:gain?")
        trace = dl.query_waveform("scope:graph?", channel=1, length=1000)
"""

from __future__ import annotations

import logging
import threading
import time
from types import TracebackType

from digilock_rci.config import DEFAULT_PORT, RciConfig
from digilock_rci.errors import QueryError, RciIOError, WriteError
from digilock_rci.number import parse_bool, parse_number
from digilock_rci.session import RciSession, TransportFactory
from digilock_rci.transport import RciTransport
from digilock_rci.waveform import check_request, decode_waveform

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r\n"
REPLY_DELIMITER = "="


def extract_reply(text: str) -> str:
    """Select the answer from the raw text drained after a query.

    Banner noise and echoed lines are skipped: the answer is the first line
    holding a ``=``, and the reply is whatever follows the first ``=``,
    trimmed.

    Args:
        text: Everything read after the query, possibly several lines.

    Returns:
        The reply value, or ``""`` if no line holds a ``=``.
    """
    for line in text.splitlines():
        if REPLY_DELIMITER in line:
            return line.partition(REPLY_DELIMITER)[2].strip()
    return ""


class RciChannel:
    """Serialized command/query access to a DigiLock instrument.

    Only one exchange is in flight at a time: every operation holds a
    re-entrant lock for the full write/settle/read cycle, so concurrent
    callers block instead of stealing each other's replies.

    Args:
        session: The session whose stream this channel drives. The channel
            does not connect it; use :func:`open_channel` or connect first.

    Example:
        >>> session = RciSession(RciConfig(host="192.168.1.100"))
        >>> session.connect()
        >>> dl = RciChannel(session)
        >>> dl.send("scope:timescale=100ms")
        >>> dl.query("pid1:input?")
        'main in'
    """

    def __init__(self, session: RciSession) -> None:
        self._session = session
        self._lock = threading.RLock()
        self._log_level = logging.INFO if session.config.verbose else logging.DEBUG

    # -- Properties ----------------------------------------------------------

    @property
    def session(self) -> RciSession:
        """Return the session this channel drives."""
        return self._session

    @property
    def config(self) -> RciConfig:
        """Return the session configuration."""
        return self._session.config

    @property
    def is_connected(self) -> bool:
        """Return True if the underlying session is connected."""
        return self._session.is_connected

    # -- Core operations -----------------------------------------------------

    def send(self, command: str) -> None:
        """Send a directive without waiting for a reply.

        Pauses ``config.write_delay`` afterwards so consecutive directives
        reach the instrument as separate lines.

        Args:
            command: The directive (e.g. ``"pid1:gain=5.000000"``).

        Raises:
            NotConnectedError: If the session is not connected.
            WriteError: If the command cannot be written.
        """
        _check_command(command)
        with self._lock:
            transport = self._session.transport
            self._trace(">> %s", command)
            self._write(transport, command, WriteError)
            if self.config.write_delay > 0:
                time.sleep(self.config.write_delay)

    def query(self, command: str) -> str:
        """Send a query and return its reply value.

        Args:
            command: The query (e.g. ``"pid1:input?"``).

        Returns:
            The text after ``=`` on the first reply line that has one, or
            ``""`` when the instrument answered with no such line.

        Raises:
            NotConnectedError: If the session is not connected.
            QueryError: If the exchange fails or the reply read times out.
        """
        _check_command(command)
        with self._lock:
            reply = extract_reply(self._exchange(command))
            self._trace("<< %s", reply if reply else "(no response)")
            return reply

    # -- Typed query variants ------------------------------------------------

    def query_number(self, command: str) -> float:
        """Query and decode the reply as a number with optional SI suffix.

        Raises:
            InvalidResponseError: If the reply is empty or not numeric.
            NotConnectedError: If the session is not connected.
            QueryError: If the exchange fails.
        """
        return parse_number(self.query(command))

    def query_bool(self, command: str) -> bool:
        """Query and decode a ``true``/``false`` reply.

        Raises:
            InvalidResponseError: If the reply is not a boolean token.
            NotConnectedError: If the session is not connected.
            QueryError: If the exchange fails.
        """
        return parse_bool(self.query(command))

    def query_waveform(self, command: str, channel: int, length: int) -> tuple[float, ...]:
        """Acquire one channel of an interleaved graph reply.

        The instrument sometimes answers a graph query with nothing, or with
        the name of the scope input instead of sample data. In that case the
        query is repeated once after ``config.waveform_retry_delay``; there
        is no further retry.

        Args:
            command: The graph query (e.g. ``"scope:graph?"``).
            channel: 1-based channel number.
            length: Number of samples to return.

        Returns:
            Exactly *length* samples. All zeros if neither reply held data.

        Raises:
            ValueError: If *channel* or *length* is out of range.
            NotConnectedError: If the session is not connected.
            QueryError: If an exchange fails.
        """
        num_channels = self.config.waveform_channels
        check_request(channel, length, num_channels)
        with self._lock:
            reply = self.query(command)
            if self._is_missing_waveform(reply):
                logger.debug("No waveform data for %r (reply %r); retrying once", command, reply)
                if self.config.waveform_retry_delay > 0:
                    time.sleep(self.config.waveform_retry_delay)
                reply = self.query(command)
                if self._is_missing_waveform(reply):
                    logger.warning("No waveform data for %r after retry; returning zeros", command)
        return decode_waveform(reply, channel, length, num_channels)

    # -- Lifecycle -----------------------------------------------------------

    def connect(self) -> None:
        """Connect the underlying session."""
        self._session.connect()

    def close(self) -> None:
        """Disconnect the underlying session. Safe to call repeatedly."""
        with self._lock:
            self._session.disconnect()

    def __enter__(self) -> RciChannel:
        if not self._session.is_connected:
            self._session.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Private helpers -----------------------------------------------------

    def _exchange(self, command: str) -> str:
        """Write a query and return the raw text that answered it.

        Stale bytes left over from earlier directives are discarded before
        the query goes out. After the settle delay everything pending is
        read; if that ends mid-line before any complete ``key=value`` line,
        the rest of the line is awaited, bounded by the transport timeout.
        A trailing partial line after a complete reply is not waited for.
        """
        transport = self._session.transport
        try:
            stale = transport.read_available()
        except OSError as exc:
            raise self._io_failure(exc, QueryError, f"Failed to query {command!r}") from exc
        if stale:
            logger.debug("Discarded stale input before %r: %r", command, stale)

        self._trace(">> %s", command)
        self._write(transport, command, QueryError)
        if self.config.query_settle > 0:
            time.sleep(self.config.query_settle)

        try:
            text = transport.read_available()
            while text and not _reply_complete(text):
                text += transport.read_some()
        except TimeoutError as exc:
            raise QueryError(f"Timed out waiting for reply to {command!r}") from exc
        except OSError as exc:
            raise self._io_failure(exc, QueryError, f"Failed to read reply to {command!r}") from exc
        return text

    def _write(self, transport: RciTransport, command: str, error: type[RciIOError]) -> None:
        try:
            transport.write(command + LINE_TERMINATOR)
        except OSError as exc:
            raise self._io_failure(exc, error, f"Failed to write {command!r}") from exc

    def _io_failure(self, exc: OSError, error: type[RciIOError], message: str) -> RciIOError:
        """Build the error to raise, dropping the session if the stream is dead."""
        if isinstance(exc, ConnectionError):
            self._session.drop(str(exc))
        return error(f"{message}: {exc}")

    def _is_missing_waveform(self, reply: str) -> bool:
        token = reply.strip().lower()
        return not token or token in {s.lower() for s in self.config.waveform_sentinels}

    def _trace(self, fmt: str, value: str) -> None:
        logger.log(self._log_level, fmt, value)


def _reply_complete(text: str) -> bool:
    """Return True once *text* ends a line or holds a full ``key=value`` line."""
    if text.endswith(("\n", "\r")):
        return True
    complete = text[: max(text.rfind("\n"), text.rfind("\r")) + 1]
    return any(REPLY_DELIMITER in line for line in complete.splitlines())


def _check_command(command: str) -> None:
    if not command or "\r" in command or "\n" in command:
        raise ValueError(f"Command must be a single non-empty line: {command!r}")


def open_channel(
    host: str,
    port: int = DEFAULT_PORT,
    *,
    timeout: float = 5.0,
    verbose: bool = False,
    config: RciConfig | None = None,
    transport_factory: TransportFactory | None = None,
) -> RciChannel:
    """Connect to a DigiLock and return a ready channel.

    Standard entry point for programmatic use. When *config* is given it
    takes precedence over *host*, *port*, *timeout* and *verbose*.

    Args:
        host: Instrument hostname or IP address.
        port: RCI TCP port.
        timeout: Connect and read timeout in seconds.
        verbose: Log every command and reply at INFO level.
        config: Complete configuration to use instead of the arguments.
        transport_factory: Override for the TCP transport (emulators, tests).

    Returns:
        A connected :class:`RciChannel`.

    Raises:
        RciConnectionError: If the connection could not be established.
    """
    if config is None:
        config = RciConfig(host=host, port=port, timeout=timeout, verbose=verbose)
    session = RciSession(config, transport_factory)
    session.connect()
    return RciChannel(session)
