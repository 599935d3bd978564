"""Exception types for the DigiLock RCI client.

All client exceptions inherit from :class:`RciError`, allowing callers to
catch every protocol-channel failure with a single except clause.

Exception hierarchy:
    RciError (base)
    +-- RciConnectionError: Connecting to the instrument failed
    +-- NotConnectedError: Operation attempted on a disconnected session
    +-- RciIOError: I/O failure in the middle of an exchange
    |   +-- WriteError: Sending a command failed
    |   +-- QueryError: Reading a reply failed or timed out
    +-- InvalidResponseError: Reply present but not decodable
"""

from __future__ import annotations


class RciError(Exception):
    """Base exception for all RCI client errors."""


class RciConnectionError(RciError, ConnectionError):
    """Raised when the stream to the instrument cannot be opened.

    Covers refused connections, unresolvable or unreachable hosts and
    connect timeouts. Also a builtin :class:`ConnectionError` so generic
    network error handlers catch it.
    """


class NotConnectedError(RciError):
    """Raised when a channel operation is attempted while disconnected.

    No I/O is attempted before this is raised.
    """


class RciIOError(RciError):
    """Raised when the stream fails in the middle of an exchange."""


class WriteError(RciIOError):
    """Raised when a command cannot be written to the stream."""


class QueryError(RciIOError):
    """Raised when a query's reply cannot be read.

    This includes the transport read timeout and the peer closing the
    stream while a reply was expected.
    """


class InvalidResponseError(RciError):
    """Raised when a reply cannot be decoded as the requested type.

    Attributes:
        response: The offending reply text, kept for diagnostics.
    """

    def __init__(self, message: str, response: str = "") -> None:
        """Initialize with a message and the undecodable reply.

        Args:
            message: Human-readable description of the failure.
            response: The raw reply text that failed to decode.
        """
        self.response = response
        super().__init__(message)
