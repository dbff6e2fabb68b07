"""Tests for amount parsing and formatting."""

from decimal import Decimal

import pytest

from bankconv.utils.amount_parser import format_amount, format_swift_amount, parse_amount


class TestParseAmount:
    """Tests for parse_amount()."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1000,50", Decimal("1000.50")),
            ("+1000,50", Decimal("1000.50")),
            ("-12,00", Decimal("-12.00")),
            ("1.234,56", Decimal("1234.56")),
            ("1234.56", Decimal("1234.56")),
            ("1.234", Decimal("1234")),
            ("1000,", Decimal("1000")),
            ("€ 5,00", Decimal("5.00")),
        ],
    )
    def test_notations(self, value, expected):
        """Test German, SWIFT and plain notations."""
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["", "  ", "abc", "1,2,3"])
    def test_invalid_raises(self, value):
        """Test that unparsable amounts raise ValueError."""
        with pytest.raises(ValueError):
            parse_amount(value)


class TestFormatAmount:
    """Tests for format_amount() and format_swift_amount()."""

    def test_signed_positive(self):
        """Test the DATEV amount field with explicit plus sign."""
        assert format_amount(Decimal("1000.5"), signed=True) == "+1000,50"

    def test_negative(self):
        """Test that negative amounts always carry a minus sign."""
        assert format_amount(Decimal("-12")) == "-12,00"
        assert format_amount(Decimal("-12"), signed=True) == "-12,00"

    def test_unsigned_zero(self):
        """Test zero without sign."""
        assert format_amount(Decimal("0")) == "0,00"

    def test_swift_amount_is_unsigned_and_rounded(self):
        """Test SWIFT amounts drop the sign and round half up."""
        assert format_swift_amount(Decimal("-5.555")) == "5,56"
        assert format_swift_amount(Decimal("1234.5")) == "1234,50"
