"""Tests for input validation helpers."""

from decimal import Decimal

import pytest

from src.utils.validators import (
    collect_errors,
    has_valid_scale,
    quantize_amount,
    to_decimal,
    validate_non_negative_number,
    validate_positive_integer,
    validate_positive_number,
    validate_required_string,
    validate_string_length,
)


class TestToDecimal:
    """Tests for to_decimal()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, Decimal("5")),
            ("2.50", Decimal("2.50")),
            (0.1, Decimal("0.1")),
            (Decimal("3.3"), Decimal("3.3")),
            (" 7 ", Decimal("7")),
        ],
    )
    def test_converts_numbers(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", "", "nan", "inf", object()])
    def test_rejects_non_numbers(self, value):
        assert to_decimal(value) is None


class TestNumberValidators:
    """Tests for numeric validators."""

    def test_positive_number(self):
        assert validate_positive_number(1, "Qty") == (True, "")
        is_valid, message = validate_positive_number(0, "Qty")
        assert not is_valid
        assert message.startswith("Qty:")
        assert not validate_positive_number("x", "Qty")[0]

    def test_non_negative_number(self):
        assert validate_non_negative_number(0)[0]
        assert not validate_non_negative_number(-0.01)[0]

    def test_positive_integer_accepts_integral_values(self):
        assert validate_positive_integer(3)[0]
        assert validate_positive_integer(Decimal("4.0"))[0]
        assert validate_positive_integer(5.0)[0]

    def test_positive_integer_rejects_fractions_and_zero(self):
        assert not validate_positive_integer(Decimal("1.5"))[0]
        assert not validate_positive_integer(0)[0]
        assert not validate_positive_integer(-2)[0]

    @pytest.mark.parametrize("value", ["0.00004", "1.23456", Decimal("0.00001")])
    def test_more_than_four_places_rejected(self, value):
        is_valid, message = validate_positive_number(value, "Qty")
        assert not is_valid
        assert message == "Qty: Value must have at most 4 decimal places"
        assert not validate_non_negative_number(value)[0]

    def test_scale_ignores_trailing_zeros(self):
        assert has_valid_scale(Decimal("1.50000"))
        assert has_valid_scale(Decimal("100"))
        assert has_valid_scale(Decimal("0.3333"))
        assert not has_valid_scale(Decimal("0.33333"))

    def test_quantize_amount(self):
        assert quantize_amount(Decimal("0.7")) == Decimal("0.70000000")
        assert quantize_amount(Decimal("1") / 3) == Decimal("0.33333333")
        assert quantize_amount(Decimal("2") / 3) == Decimal("0.66666667")


class TestStringValidators:
    """Tests for string validators."""

    def test_required_string(self):
        assert validate_required_string("Bottle")[0]
        assert not validate_required_string("   ")[0]
        assert not validate_required_string(None)[0]

    def test_string_length(self):
        assert validate_string_length("abc", 3)[0]
        assert not validate_string_length("abcd", 3)[0]
        assert validate_string_length(None, 3)[0]

    def test_collect_errors_keeps_only_failures(self):
        errors = collect_errors(
            validate_required_string("ok", "Name"),
            validate_positive_number(-1, "Quantity"),
            validate_required_string("", "Unit"),
        )
        assert len(errors) == 2
        assert errors[0].startswith("Quantity:")
        assert errors[1].startswith("Unit:")
