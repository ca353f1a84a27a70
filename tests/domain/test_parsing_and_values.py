"""
Tests for raw input parsing and Decimal helpers.
"""

from decimal import Decimal

import pytest

from stitch_kernel.domain.parsing import (
    parse_decimal,
    parse_int,
    require_non_negative_int,
    require_positive_decimal,
    require_positive_int,
)
from stitch_kernel.domain.values import (
    ceil_decimal,
    ceil_div,
    clamp_remaining,
    percent,
    round4,
    round_whole,
)
from stitch_kernel.exceptions import InvalidQuantityError


class TestParseDecimal:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("12.5", Decimal("12.5")),
            (" 1,250 ", Decimal("1250")),
            (7, Decimal("7")),
            (0.1, Decimal("0.1")),
            (Decimal("3.30"), Decimal("3.30")),
            ("-4", Decimal("-4")),
        ],
    )
    def test_numbers(self, raw, expected):
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "  ", "abc", "1.2.3", "NaN", "-inf", False])
    def test_not_numbers_are_absent(self, raw):
        assert parse_decimal(raw) is None


class TestParseInt:
    def test_whole(self):
        assert parse_int("5000") == 5000
        assert parse_int("5000.0") == 5000

    def test_fraction_is_not_int(self):
        assert parse_int("12.5") is None

    def test_require_positive(self):
        assert require_positive_int("stitches", "10") == 10
        with pytest.raises(InvalidQuantityError) as exc_info:
            require_positive_int("stitches", "0")
        assert exc_info.value.field == "stitches"

    def test_require_positive_rejects_text(self):
        with pytest.raises(InvalidQuantityError):
            require_positive_int("stitches", "lots")

    def test_require_non_negative(self):
        assert require_non_negative_int("repeats", 0) == 0
        with pytest.raises(InvalidQuantityError):
            require_non_negative_int("repeats", -1)

    def test_require_positive_decimal(self):
        assert require_positive_decimal("quantity", "2.5") == Decimal("2.5")
        with pytest.raises(InvalidQuantityError):
            require_positive_decimal("quantity", "")
        with pytest.raises(InvalidQuantityError):
            require_positive_decimal("quantity", "-1")


class TestValues:
    def test_round4_half_up(self):
        assert round4(Decimal("0.00005")) == Decimal("0.0001")
        assert round4(Decimal("2.00025")) == Decimal("2.0003")

    def test_round_whole_half_up(self):
        assert round_whole(Decimal("2.5")) == Decimal("3")
        assert round_whole(Decimal("3.5")) == Decimal("4")

    def test_ceil_div(self):
        assert ceil_div(30000, 1000) == 30
        assert ceil_div(30001, 1000) == 31

    def test_ceil_div_by_zero(self):
        with pytest.raises(ZeroDivisionError):
            ceil_div(1, 0)

    def test_ceil_decimal(self):
        assert ceil_decimal(Decimal("69.01")) == 70

    def test_clamp_remaining(self):
        assert clamp_remaining(10, 4) == 6
        assert clamp_remaining(10, 14) == 0

    def test_percent(self):
        assert percent(1000, 4000) == Decimal("25.00")
        assert percent(5000, 4000) == Decimal("100.00")
        assert percent(1, 0) == Decimal("0.00")
