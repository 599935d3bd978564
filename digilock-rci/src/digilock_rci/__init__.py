"""Remote control client for the Toptica DigiLock 110.

This package implements the protocol-channel layer for the DigiLock's RCI
text protocol over TCP. It includes:

- Session lifecycle with greeting drain and guaranteed teardown
- A command channel that correlates queries with their replies
- Decoding of numeric replies with SI magnitude suffixes
- Decoding of interleaved multi-channel waveform replies
- An in-process emulator and TCP emulator server for testing

Feature-specific helpers (PID, scan, lock-in, ...) are built on top of the
channel's ``send`` / ``query`` / ``query_number`` / ``query_waveform``.

Typical usage::

    from digilock_rci import open_channel

    with open_channel("192.168.1.100", 60001, verbose=True) as dl:
        dl.send("pid1:proportional=1.000000")
        p_gain = dl.query_number("pid1:proportional?")
        main_in = dl.query_waveform("scope:graph?", channel=1, length=1000)
"""

from digilock_rci.channel import RciChannel, extract_reply, open_channel
from digilock_rci.config import DEFAULT_PORT, RciConfig, load_config
from digilock_rci.emulator import DigiLockEmulator, DigiLockEmulatorConfig, make_digilock_emulator
from digilock_rci.errors import (
    InvalidResponseError,
    NotConnectedError,
    QueryError,
    RciConnectionError,
    RciError,
    RciIOError,
    WriteError,
)
from digilock_rci.number import (
    KNOWN_UNITS,
    MAGNITUDE_SUFFIXES,
    format_bool,
    parse_bool,
    parse_magnitude,
    parse_number,
)
from digilock_rci.server import EmulatorServer
from digilock_rci.session import RciSession, SessionState
from digilock_rci.transport import RciTransport, SocketTransport
from digilock_rci.waveform import decode_waveform, split_channels

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Channel
    "RciChannel",
    "extract_reply",
    "open_channel",
    # Session
    "RciSession",
    "SessionState",
    # Config
    "DEFAULT_PORT",
    "RciConfig",
    "load_config",
    # Errors
    "InvalidResponseError",
    "NotConnectedError",
    "QueryError",
    "RciConnectionError",
    "RciError",
    "RciIOError",
    "WriteError",
    # Number parsing/formatting
    "KNOWN_UNITS",
    "MAGNITUDE_SUFFIXES",
    "format_bool",
    "parse_bool",
    "parse_magnitude",
    "parse_number",
    # Waveforms
    "decode_waveform",
    "split_channels",
    # Transport
    "RciTransport",
    "SocketTransport",
    # Emulator
    "DigiLockEmulator",
    "DigiLockEmulatorConfig",
    "EmulatorServer",
    "make_digilock_emulator",
]
