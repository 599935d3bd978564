"""Tests for RCI number parsing."""

from __future__ import annotations

import pytest

from digilock_rci.errors import InvalidResponseError
from digilock_rci.number import format_bool, parse_bool, parse_magnitude, parse_number

# ---------------------------------------------------------------------------
# parse_number
# ---------------------------------------------------------------------------


class TestParseNumber:
    """Tests for parse_number."""

    def test_integer(self) -> None:
        assert parse_number("42") == 42.0

    def test_negative(self) -> None:
        assert parse_number("-7.25") == -7.25

    def test_fixed_point(self) -> None:
        assert parse_number("5.000000") == 5.0

    def test_scientific(self) -> None:
        assert parse_number("1.23E+4") == 12300.0

    def test_negative_exponent(self) -> None:
        assert parse_number("-2.5e-3") == -0.0025

    def test_whitespace_stripped(self) -> None:
        assert parse_number("  3.14 \r\n") == 3.14

    def test_milli_suffix(self) -> None:
        assert parse_number("5m") == pytest.approx(0.005)

    def test_micro_suffix(self) -> None:
        assert parse_number("20u") == pytest.approx(20e-6)

    def test_nano_suffix(self) -> None:
        assert parse_number("3n") == pytest.approx(3e-9)

    def test_kilo_suffix(self) -> None:
        assert parse_number("2.5k") == 2500.0

    def test_mega_suffix(self) -> None:
        assert parse_number("3M") == 3_000_000.0

    def test_giga_suffix(self) -> None:
        assert parse_number("1.5G") == 1.5e9

    def test_negative_with_suffix(self) -> None:
        assert parse_number("-10m") == pytest.approx(-0.01)

    def test_exponent_with_suffix(self) -> None:
        assert parse_number("1e2k") == 100_000.0

    def test_suffix_is_case_sensitive(self) -> None:
        # "m" is milli, "M" is mega
        assert parse_number("1m") != parse_number("1M")

    def test_exponent_marker_is_not_a_suffix(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("1e")

    def test_empty_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("")

    def test_whitespace_only_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("   ")

    def test_text_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("abc")

    def test_suffix_alone_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("k")

    def test_unknown_suffix_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("5x")

    def test_infinity_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("inf")

    def test_nan_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_number("nan")

    def test_error_carries_response(self) -> None:
        with pytest.raises(InvalidResponseError) as exc_info:
            parse_number("main in")
        assert exc_info.value.response == "main in"
        assert "main in" in str(exc_info.value)


# ---------------------------------------------------------------------------
# parse_magnitude
# ---------------------------------------------------------------------------


class TestParseMagnitude:
    """Tests for parse_magnitude."""

    def test_plain_number(self) -> None:
        assert parse_magnitude("12.5") == 12.5

    def test_suffix_only(self) -> None:
        assert parse_magnitude("100k") == 100_000.0

    def test_kilohertz(self) -> None:
        assert parse_magnitude("10kHz") == 10_000.0

    def test_megahertz(self) -> None:
        assert parse_magnitude("12.5MHz") == 12_500_000.0

    def test_milliseconds(self) -> None:
        assert parse_magnitude("100ms") == pytest.approx(0.1)

    def test_unit_without_suffix(self) -> None:
        assert parse_magnitude("50Hz") == 50.0

    def test_space_before_unit(self) -> None:
        assert parse_magnitude("2.5 V") == 2.5

    def test_space_before_prefixed_unit(self) -> None:
        assert parse_magnitude("10 kHz") == 10_000.0

    def test_millivolts(self) -> None:
        assert parse_magnitude("3 mV") == pytest.approx(0.003)

    def test_unit_starting_with_suffix_letter_not_scaled(self) -> None:
        assert parse_magnitude("5 min") == 5.0

    def test_unknown_unit_not_scaled(self) -> None:
        assert parse_magnitude("2 dB") == 2.0

    def test_invalid_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_magnitude("Hz")

    def test_empty_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_magnitude("")


# ---------------------------------------------------------------------------
# Booleans
# ---------------------------------------------------------------------------


class TestParseBool:
    """Tests for parse_bool."""

    @pytest.mark.parametrize("text", ["true", "TRUE", "1", "on", " True "])
    def test_true_tokens(self, text: str) -> None:
        assert parse_bool(text) is True

    @pytest.mark.parametrize("text", ["false", "False", "0", "OFF"])
    def test_false_tokens(self, text: str) -> None:
        assert parse_bool(text) is False

    def test_invalid_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_bool("maybe")

    def test_empty_raises(self) -> None:
        with pytest.raises(InvalidResponseError):
            parse_bool("")


class TestFormatBool:
    def test_true(self) -> None:
        assert format_bool(True) == "true"

    def test_false(self) -> None:
        assert format_bool(False) == "false"
