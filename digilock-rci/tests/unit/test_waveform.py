"""Tests for waveform reply decoding."""

from __future__ import annotations

import pytest

from digilock_rci.waveform import (
    check_request,
    decode_waveform,
    parse_samples,
    resample,
    split_channels,
)

INTERLEAVED = "1\t10\t2\t20\t3\t30"


class TestParseSamples:
    """Tests for parse_samples."""

    def test_scientific_notation(self) -> None:
        assert parse_samples("1.000000e-01\t-2.500000e+00") == [0.1, -2.5]

    def test_discards_non_numeric_tokens(self) -> None:
        assert parse_samples("main in\t1\t[\t2\t]") == [1.0, 2.0]

    def test_discards_nan(self) -> None:
        assert parse_samples("1\tnan\t2") == [1.0, 2.0]

    def test_tolerates_trailing_line_break(self) -> None:
        assert parse_samples("1\t2\r\n") == [1.0, 2.0]

    def test_empty(self) -> None:
        assert parse_samples("") == []


class TestDecodeWaveform:
    """Tests for decode_waveform."""

    def test_channel_one(self) -> None:
        assert decode_waveform(INTERLEAVED, channel=1, length=3) == (1.0, 2.0, 3.0)

    def test_channel_two(self) -> None:
        assert decode_waveform(INTERLEAVED, channel=2, length=3) == (10.0, 20.0, 30.0)

    def test_pads_with_zeros(self) -> None:
        assert decode_waveform("1\t10", channel=1, length=4) == (1.0, 0.0, 0.0, 0.0)

    def test_truncates(self) -> None:
        assert decode_waveform(INTERLEAVED, channel=1, length=1) == (1.0,)

    def test_zero_length(self) -> None:
        assert decode_waveform(INTERLEAVED, channel=1, length=0) == ()

    def test_empty_input_returns_zeros(self) -> None:
        assert decode_waveform("", channel=1, length=5) == (0.0,) * 5

    def test_non_numeric_input_returns_zeros(self) -> None:
        assert decode_waveform("main in", channel=2, length=3) == (0.0, 0.0, 0.0)

    def test_stray_tokens_do_not_shift_channels(self) -> None:
        assert decode_waveform("1\tfoo\t10\t2\t20", channel=2, length=2) == (10.0, 20.0)

    def test_three_channels(self) -> None:
        text = "1\t10\t100\t2\t20\t200"
        assert decode_waveform(text, channel=3, length=2, num_channels=3) == (100.0, 200.0)

    def test_channel_zero_raises(self) -> None:
        with pytest.raises(ValueError, match="channel"):
            decode_waveform(INTERLEAVED, channel=0, length=3)

    def test_channel_above_count_raises(self) -> None:
        with pytest.raises(ValueError, match="channel"):
            decode_waveform(INTERLEAVED, channel=3, length=3)

    def test_negative_length_raises(self) -> None:
        with pytest.raises(ValueError, match="length"):
            decode_waveform(INTERLEAVED, channel=1, length=-1)

    def test_result_is_fixed_length(self) -> None:
        for length in (0, 1, 2, 3, 10):
            assert len(decode_waveform(INTERLEAVED, channel=2, length=length)) == length


class TestSplitChannels:
    """Tests for split_channels."""

    def test_two_channels(self) -> None:
        assert split_channels(INTERLEAVED) == ((1.0, 2.0, 3.0), (10.0, 20.0, 30.0))

    def test_uneven_reply(self) -> None:
        assert split_channels("1\t10\t2") == ((1.0, 2.0), (10.0,))

    def test_empty(self) -> None:
        assert split_channels("") == ((), ())

    def test_invalid_channel_count(self) -> None:
        with pytest.raises(ValueError):
            split_channels(INTERLEAVED, num_channels=0)


class TestResample:
    def test_pad(self) -> None:
        assert resample([1.0], 3) == (1.0, 0.0, 0.0)

    def test_truncate(self) -> None:
        assert resample((1.0, 2.0, 3.0), 2) == (1.0, 2.0)

    def test_exact(self) -> None:
        assert resample([1.0, 2.0], 2) == (1.0, 2.0)


class TestCheckRequest:
    def test_valid(self) -> None:
        check_request(channel=2, length=100)

    def test_invalid_num_channels(self) -> None:
        with pytest.raises(ValueError, match="num_channels"):
            check_request(channel=1, length=1, num_channels=0)
