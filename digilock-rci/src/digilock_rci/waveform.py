"""Decoding of bulk waveform replies.

The scope and spectrum graph queries answer with one flat, tab-separated
list of scientific-notation numbers in which the acquisition channels are
interleaved round-robin::

    ch1[0]  ch2[0]  ch1[1]  ch2[1]  ch1[2]  ch2[2] ...

Decoding never fails on bad data: unparseable tokens are dropped and an
empty acquisition yields an all-zero buffer, which callers treat as a soft
signal that the acquisition failed.
"""

from __future__ import annotations

import logging
import math

logger = logging.getLogger(__name__)

FIELD_DELIMITER = "\t"
DEFAULT_NUM_CHANNELS = 2


def parse_samples(text: str) -> list[float]:
    """Parse the tab-separated tokens of a waveform reply.

    Tokens that are not finite numbers (stray labels, brackets, ``nan``) are
    silently discarded.

    Args:
        text: The raw waveform reply.

    Returns:
        The numeric tokens in reply order.
    """
    values: list[float] = []
    for token in text.split(FIELD_DELIMITER):
        try:
            value = float(token)
        except ValueError:
            continue
        if math.isfinite(value):
            values.append(value)
    return values


def split_channels(text: str, num_channels: int = DEFAULT_NUM_CHANNELS) -> tuple[tuple[float, ...], ...]:
    """De-interleave a waveform reply into one sequence per channel.

    Channels may differ in length by one sample when the reply was cut
    short. No resampling is applied.

    Args:
        text: The raw waveform reply.
        num_channels: Number of interleaved channels.

    Returns:
        One tuple of samples per channel, channel 1 first.

    Raises:
        ValueError: If *num_channels* is less than 1.
    """
    if num_channels < 1:
        raise ValueError("num_channels must be >= 1")
    values = parse_samples(text)
    return tuple(tuple(values[offset::num_channels]) for offset in range(num_channels))


def resample(samples: tuple[float, ...] | list[float], length: int) -> tuple[float, ...]:
    """Fit *samples* into a buffer of exactly *length* values.

    Shorter inputs are right-padded with zeros, longer inputs are truncated.
    No interpolation is performed.
    """
    if length < 0:
        raise ValueError("length must be >= 0")
    head = tuple(samples[:length])
    return head + (0.0,) * (length - len(head))


def check_request(channel: int, length: int, num_channels: int = DEFAULT_NUM_CHANNELS) -> None:
    """Validate a waveform request before any I/O is done.

    Raises:
        ValueError: If *channel* is outside ``1..num_channels``, *length* is
            negative or *num_channels* is less than 1.
    """
    if num_channels < 1:
        raise ValueError("num_channels must be >= 1")
    if not 1 <= channel <= num_channels:
        raise ValueError(f"channel must be in 1..{num_channels}, got {channel}")
    if length < 0:
        raise ValueError("length must be >= 0")


def decode_waveform(
    text: str,
    channel: int,
    length: int,
    num_channels: int = DEFAULT_NUM_CHANNELS,
) -> tuple[float, ...]:
    """Extract one channel of an interleaved waveform reply.

    Args:
        text: The raw waveform reply.
        channel: 1-based channel number.
        length: Number of samples to return.
        num_channels: Number of interleaved channels in the reply.

    Returns:
        Exactly *length* samples for *channel*, zero-padded or truncated.
        An all-zero buffer when the reply holds no numeric data.

    Raises:
        ValueError: If *channel* is outside ``1..num_channels``, *length* is
            negative or *num_channels* is less than 1.
    """
    check_request(channel, length, num_channels)

    values = parse_samples(text)
    if not values:
        logger.debug("Waveform reply held no numeric data; returning %d zeros", length)
        return (0.0,) * length

    return resample(values[channel - 1 :: num_channels], length)
