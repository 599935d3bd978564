"""DigiLock 110 RCI emulator.

Provides an in-process emulator implementing the ``RciTransport`` protocol.
It keeps a table of ``path:key`` settings, answers queries with
``path:key=value`` lines, prints a greeting on attach and serves synthetic
two-channel data for the scope and spectrum graph queries.

The emulator can also reproduce the instrument's quirks: echoing
directives back, and answering a graph query with the scope input name or
with nothing at all.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Sequence

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_GREETING = "Toptica DigiLock 110 remote control interface\r\nversion=2.1.0\r\n"

GRAPH_KEYS: frozenset[str] = frozenset({"scope:graph", "spectrum:graph"})

_DEFAULT_SETTINGS: dict[str, str] = {
    "pid1:input": "main in",
    "pid1:output": "main out",
    "pid1:gain": "1.000000",
    "pid1:proportional": "1.000000",
    "pid1:integral": "0.000000",
    "pid1:differential": "0.000000",
    "pid1:setpoint": "0.000000",
    "pid1:sign": "true",
    "pid1:lock:enable": "false",
    "pid1:lock:state": "false",
    "pid2:input": "aux in",
    "pid2:output": "aux out",
    "pid2:gain": "1.000000",
    "scope:ch1:channel": "main in",
    "scope:ch2:channel": "main out",
    "scope:timescale": "100ms",
    "scope:xymode": "false",
    "spectrum:frequency scale": "10kHz",
    "li:modulation:frequency set": "100k",
    "li:modulation:frequency act": "99.99k",
    "li:modulation:amplitude": "10m",
    "li:modulation:enable": "false",
    "main in:gain": "1",
    "main in:input offset": "0.000000",
    "offset:output": "sc110 out",
    "offset:value": "0.000000",
}


def _split_lines(buffer: str) -> tuple[list[str], str]:
    """Split complete lines off *buffer*, returning (lines, remainder)."""
    normalized = buffer.replace("\r\n", "\n").replace("\r", "\n")
    *lines, rest = normalized.split("\n")
    return lines, rest


def _parse_directive(line: str) -> tuple[str, str] | None:
    """Split ``path:key=value`` or ``path:key value`` into (key, value)."""
    if "=" in line:
        key, _, value = line.partition("=")
    elif " " in line:
        key, _, value = line.rpartition(" ")
    else:
        return None
    return key.strip(), value.strip()


def synthetic_trace(num_samples: int) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Generate a sine on channel 1 and a ramp on channel 2."""
    ch1 = tuple(math.sin(2.0 * math.pi * i / num_samples) for i in range(num_samples))
    ch2 = tuple(i / num_samples for i in range(num_samples))
    return ch1, ch2


def format_graph(channels: Sequence[Sequence[float]]) -> str:
    """Interleave channel samples into a tab-separated graph reply body."""
    count = min((len(ch) for ch in channels), default=0)
    tokens = [f"{ch[i]:.6e}" for i in range(count) for ch in channels]
    return "\t".join(tokens)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DigiLockEmulatorConfig:
    """Configuration for a DigiLock emulator instance.

    Args:
        greeting: Text printed on every attach.
        num_samples: Samples per channel in generated graph replies.
        echo_directives: Echo every directive back as a ``key=value`` line.
        settings: Initial settings, merged over the built-in defaults.
    """

    greeting: str = DEFAULT_GREETING
    num_samples: int = 1000
    echo_directives: bool = False
    settings: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.num_samples < 0:
            raise ValueError("num_samples must be >= 0")


# ---------------------------------------------------------------------------
# Emulator
# ---------------------------------------------------------------------------


class DigiLockEmulator:
    """In-process DigiLock 110 emulator implementing ``RciTransport``.

    Args:
        config: Emulator configuration. Defaults to
            :class:`DigiLockEmulatorConfig` defaults.
    """

    def __init__(self, config: DigiLockEmulatorConfig | None = None) -> None:
        self._config = config or DigiLockEmulatorConfig()
        self._settings: dict[str, str] = {**_DEFAULT_SETTINGS, **self._config.settings}
        self._graphs: dict[str, tuple[tuple[float, ...], ...]] = {
            key: synthetic_trace(self._config.num_samples) for key in GRAPH_KEYS
        }
        self._graph_quirks: deque[str] = deque()
        self._input = ""
        self._output = ""
        self.received: list[str] = []
        self.closed = False

    # -- Lifecycle ----------------------------------------------------------

    def attach(self) -> DigiLockEmulator:
        """Start a new client attachment: reopen and queue the greeting."""
        self.closed = False
        self._input = ""
        self._output = self._config.greeting
        return self

    # -- Transport interface ------------------------------------------------

    def write(self, message: str) -> None:
        """Process every complete line in *message*."""
        if self.closed:
            raise ConnectionAbortedError("Emulator is closed")
        lines, self._input = _split_lines(self._input + message)
        for line in lines:
            line = line.strip()
            if line:
                self.received.append(line)
                self._handle_line(line)

    def read_available(self) -> str:
        """Return and clear the buffered output."""
        if self.closed:
            raise ConnectionAbortedError("Emulator is closed")
        out, self._output = self._output, ""
        return out

    def read_some(self) -> str:
        """Return buffered output, or time out if there is none."""
        out = self.read_available()
        if not out:
            raise TimeoutError("No data from emulator")
        return out

    def close(self) -> None:
        """Mark the emulator closed."""
        self.closed = True

    # -- Test helpers -------------------------------------------------------

    def get_setting(self, key: str) -> str | None:
        """Return the stored value for *key*, or None if unset."""
        return self._settings.get(key)

    def set_graph(self, key: str, channels: Sequence[Sequence[float]]) -> None:
        """Set the per-channel samples returned for a graph query.

        Args:
            key: ``"scope:graph"`` or ``"spectrum:graph"``.
            channels: One sample sequence per channel.
        """
        if key not in GRAPH_KEYS:
            raise ValueError(f"Unknown graph {key!r}")
        self._graphs[key] = tuple(tuple(ch) for ch in channels)

    def queue_graph_quirk(self, reply: str) -> None:
        """Answer the next graph query with *reply* instead of data.

        An empty string makes the emulator send nothing at all. Quirks are
        consumed one per graph query, in order.
        """
        self._graph_quirks.append(reply)

    # -- Private helpers ----------------------------------------------------

    def _handle_line(self, line: str) -> None:
        if line.endswith("?"):
            self._handle_query(line[:-1].strip())
            return
        parsed = _parse_directive(line)
        if parsed is None:
            self._emit(f"Error: unknown command '{line}'")
            return
        key, value = parsed
        self._settings[key] = value
        if self._config.echo_directives:
            self._emit(f"{key}={value}")

    def _handle_query(self, key: str) -> None:
        if key in GRAPH_KEYS:
            if self._graph_quirks:
                quirk = self._graph_quirks.popleft()
                if quirk:
                    self._emit(f"{key}={quirk}")
                return
            self._emit(f"{key}={format_graph(self._graphs[key])}")
            return
        value = self._settings.get(key)
        if value is None:
            self._emit(f"Error: unknown parameter '{key}'")
        else:
            self._emit(f"{key}={value}")

    def _emit(self, line: str) -> None:
        self._output += line + "\r\n"


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def make_digilock_emulator(num_samples: int = 1000, *, echo_directives: bool = False) -> DigiLockEmulator:
    """Create a DigiLock 110 emulator with default settings.

    Args:
        num_samples: Samples per channel in graph replies.
        echo_directives: Echo directives back like some firmware versions do.

    Returns:
        Configured emulator instance.
    """
    return DigiLockEmulator(
        DigiLockEmulatorConfig(num_samples=num_samples, echo_directives=echo_directives)
    )
