"""RCI number parsing utilities.

Scalar replies are plain decimal or scientific-notation numbers, optionally
followed by a single SI magnitude letter (``"5m"`` is 0.005, ``"2.5k"`` is
2500). Unit-bearing settings such as the scope timescale or the spectrum
span additionally carry a physical unit (``"100ms"``, ``"10kHz"``).
"""

from __future__ import annotations

import math
import re

from digilock_rci.errors import InvalidResponseError

MAGNITUDE_SUFFIXES: dict[str, float] = {
    "n": 1e-9,
    "u": 1e-6,
    "m": 1e-3,
    "k": 1e3,
    "M": 1e6,
    "G": 1e9,
}

# Units a magnitude letter may prefix in unit-bearing settings.
KNOWN_UNITS: frozenset[str] = frozenset({"Hz", "s", "V", "A", "W", "rad", "deg", "Ohm"})

# Number followed by an optional alphabetic unit word.
_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"\s*(?P<unit>[A-Za-z]*)$"
)


def _to_float(token: str) -> float | None:
    try:
        return float(token)
    except ValueError:
        return None


def _finite(value: float, text: str) -> float:
    if not math.isfinite(value):
        raise InvalidResponseError(f"Non-finite numeric response: {text!r}", text)
    return value


def parse_number(text: str) -> float:
    """Parse a scalar RCI reply into a float.

    The text is first parsed as-is, so negative numbers and exponent forms
    (``"-1.5e-3"``) never reach the suffix logic. Only if that fails is the
    last character treated as a magnitude suffix and the remaining prefix
    parsed and scaled.

    Args:
        text: The reply text (surrounding whitespace is stripped).

    Returns:
        The parsed, finite value.

    Raises:
        InvalidResponseError: If *text* is empty, not a number, or not finite.
    """
    token = text.strip()
    if not token:
        raise InvalidResponseError("Empty numeric response", text)

    value = _to_float(token)
    if value is not None:
        return _finite(value, text)

    multiplier = MAGNITUDE_SUFFIXES.get(token[-1])
    if multiplier is not None:
        prefix = _to_float(token[:-1])
        if prefix is not None:
            return _finite(prefix * multiplier, text)

    raise InvalidResponseError(f"Non-numeric response: {text!r}", text)


def parse_magnitude(text: str) -> float:
    """Parse a quantity that may carry a magnitude letter and a unit.

    ``"10kHz"`` gives 10000.0, ``"100ms"`` gives 0.1 and ``"2.5 V"`` gives
    2.5. Text without a unit is handled exactly like :func:`parse_number`.

    A leading magnitude letter is only honoured in front of one of
    :data:`KNOWN_UNITS`; any other unit word is ignored and the number is
    returned unscaled, so ``"5 min"`` gives 5.0, not 0.005.

    Args:
        text: The reply text.

    Returns:
        The value scaled to base units.

    Raises:
        InvalidResponseError: If *text* does not start with a number.
    """
    token = text.strip()
    try:
        return parse_number(token)
    except InvalidResponseError:
        pass

    match = _QUANTITY_RE.match(token)
    if match is None:
        raise InvalidResponseError(f"Invalid quantity: {text!r}", text)

    value = float(match.group("number"))
    unit = match.group("unit")
    if unit not in KNOWN_UNITS and unit[:1] in MAGNITUDE_SUFFIXES and unit[1:] in KNOWN_UNITS:
        value *= MAGNITUDE_SUFFIXES[unit[0]]
    return _finite(value, text)


def parse_bool(text: str) -> bool:
    """Parse an RCI boolean reply.

    Accepts ``true``/``false``, ``1``/``0`` and ``on``/``off``
    (case-insensitive).

    Args:
        text: The reply text.

    Returns:
        The parsed boolean.

    Raises:
        InvalidResponseError: If *text* is not a recognized boolean token.
    """
    token = text.strip().lower()
    if token in ("true", "1", "on"):
        return True
    if token in ("false", "0", "off"):
        return False
    raise InvalidResponseError(f"Invalid boolean response: {text!r}", text)


def format_bool(value: bool) -> str:
    """Format a boolean the way the instrument spells it (``true``/``false``)."""
    return "true" if value else "false"
