"""Tests for IBAN, BIC and bank code helpers."""

import pytest

from bankconv.utils.bank_helper import (
    bank_code_from_iban,
    generate_german_iban,
    is_bic,
    is_blz,
    is_iban,
    split_account_id,
)


class TestIban:
    """Tests for IBAN checks and generation."""

    @pytest.mark.parametrize(
        "value",
        ["DE89370400440532013000", "DE02120300000000202051", "de89 3704 0044 0532 0130 00"],
    )
    def test_valid_iban(self, value):
        """Test IBANs with correct check digits."""
        assert is_iban(value)

    @pytest.mark.parametrize("value", ["DE00370400440532013000", "0532013000", "", None])
    def test_invalid_iban(self, value):
        """Test wrong check digits and non-IBAN values."""
        assert not is_iban(value)

    def test_generate_german_iban(self):
        """Test building an IBAN from BLZ and account number."""
        assert generate_german_iban("37040044", "532013000") == "DE89370400440532013000"

    @pytest.mark.parametrize("bank_code, account", [("3704004", "1"), ("37040044", "ABC"), ("37040044", "12345678901")])
    def test_generate_rejects_bad_input(self, bank_code, account):
        """Test that malformed bank codes and accounts raise ValueError."""
        with pytest.raises(ValueError):
            generate_german_iban(bank_code, account)

    def test_bank_code_from_iban(self):
        """Test extracting the BLZ of a German IBAN."""
        assert bank_code_from_iban("DE89370400440532013000") == "37040044"
        assert bank_code_from_iban("GB82WEST12345698765432") is None


class TestBicAndBlz:
    """Tests for is_bic() and is_blz()."""

    def test_bic(self):
        """Test 8 and 11 character BICs."""
        assert is_bic("COBADEFFXXX")
        assert is_bic("COBADEFF")
        assert not is_bic("37040044")
        assert not is_bic(None)

    def test_blz(self):
        """Test 8-digit bank codes."""
        assert is_blz("37040044")
        assert not is_blz("3704004")
        assert not is_blz("COBADEFF")


class TestSplitAccountId:
    """Tests for split_account_id()."""

    def test_bank_code_and_account(self):
        """Test the BLZ/ACCOUNT form."""
        assert split_account_id("37040044/0532013000") == ("37040044", "0532013000")

    def test_iban(self):
        """Test that a German IBAN yields its BLZ."""
        assert split_account_id("DE89370400440532013000") == ("37040044", "DE89370400440532013000")

    def test_plain_account(self):
        """Test an account without bank code."""
        assert split_account_id("12345") == ("", "12345")
