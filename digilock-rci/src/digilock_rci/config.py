"""Configuration for DigiLock RCI connections.

Example YAML configuration::

    digilock:
      host: "192.168.1.100"
      port: 60001
      timeout: 5.0
      verbose: true
      query_settle: 0.3
      waveform_sentinels: ["main in", "aux in"]

The ``digilock:`` wrapper is optional; a flat mapping of the same keys is
accepted too.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_PORT = 60001


@dataclass(frozen=True)
class RciConfig:
    """Settings for one RCI session and its command channel.

    The settle delays are empirical values tied to the instrument's response
    latency, not protocol guarantees.

    Attributes:
        host: Instrument hostname or IP address.
        port: RCI TCP port (the DUI port, 60001 by default).
        timeout: Connect and read timeout in seconds.
        verbose: Log every command and reply at INFO instead of DEBUG.
        banner_settle: Seconds to wait after connecting before discarding
            the instrument's greeting.
        write_delay: Seconds to pause after each directive.
        query_settle: Seconds to wait between writing a query and draining
            its reply.
        waveform_retry_delay: Extra seconds to wait before re-issuing a
            waveform query whose first reply held no data.
        waveform_channels: Number of channels interleaved in graph replies.
        waveform_sentinels: Replies (case-insensitive) that mean the
            instrument echoed a channel name instead of sample data.
    """

    host: str
    port: int = DEFAULT_PORT
    timeout: float = 5.0
    verbose: bool = False
    banner_settle: float = 0.3
    write_delay: float = 0.05
    query_settle: float = 0.3
    waveform_retry_delay: float = 0.1
    waveform_channels: int = 2
    waveform_sentinels: tuple[str, ...] = ("main in", "aux in")

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.host:
            raise ValueError("host is required")
        if not 0 < self.port < 65536:
            raise ValueError("port must be in 1..65535")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        for name in ("banner_settle", "write_delay", "query_settle", "waveform_retry_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.waveform_channels < 1:
            raise ValueError("waveform_channels must be >= 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RciConfig:
        """Create a config from a mapping, rejecting unknown keys.

        Args:
            data: Mapping of field names to values.

        Returns:
            RciConfig instance.

        Raises:
            ValueError: If a key is unknown or a value is invalid.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config field(s): {', '.join(unknown)}")
        if "host" not in data:
            raise ValueError("Missing required field: host")

        values = dict(data)
        if "waveform_sentinels" in values:
            sentinels = values["waveform_sentinels"]
            if isinstance(sentinels, str) or not isinstance(sentinels, (list, tuple)):
                raise ValueError("waveform_sentinels must be a list of strings")
            values["waveform_sentinels"] = tuple(str(s) for s in sentinels)
        return cls(**values)

    def replace(self, **changes: Any) -> RciConfig:
        """Return a copy with the given fields changed (``None`` values ignored)."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in changes.items() if v is not None})
        return type(self)(**values)


def load_config(path: str | Path) -> RciConfig:
    """Load an RCI configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed configuration.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the config is invalid or missing required fields.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError("Config must be a YAML mapping")

    section = data.get("digilock", data)
    if not isinstance(section, dict):
        raise ValueError("digilock must be a mapping")

    return RciConfig.from_dict(section)
