"""
Tests for minor-unit money conversion.
"""

from decimal import Decimal

import pytest

from lekka_kernel.domain.money import format_minor, percent_of, round_minor, to_decimal, to_minor_units


class TestToMinorUnits:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1250.50", 125050),
            (99, 9900),
            (12.1, 1210),
            ("1,000", 100000),
            (Decimal("0.005"), 1),
            ("-3.5", -350),
        ],
    )
    def test_conversion(self, value, expected):
        assert to_minor_units(value) == expected

    @pytest.mark.parametrize("value", [None, True, "", "  ", "abc", "NaN", "Infinity", object()])
    def test_rejects_non_amounts(self, value):
        with pytest.raises(ValueError):
            to_minor_units(value)


def test_float_goes_through_str():
    assert to_decimal(0.1) == Decimal("0.1")


def test_round_minor_half_up():
    assert round_minor(Decimal("2.5")) == 3
    assert round_minor(Decimal("2.49")) == 2


def test_percent_of():
    assert percent_of(100000, Decimal("10")) == 10000
    assert percent_of(333, Decimal("1")) == 3


def test_format_minor():
    assert format_minor(150050) == "1500.50"
    assert format_minor(0) == "0.00"
    assert format_minor(-5) == "-0.05"
