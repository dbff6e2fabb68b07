"""IBAN, BIC and German bank code helpers."""

import re
from typing import Optional

IBAN_PATTERN = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$")
BIC_PATTERN = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")
BLZ_PATTERN = re.compile(r"^\d{8}$")


def _compact(value: Optional[str]) -> str:
    return re.sub(r"\s+", "", value or "").upper()


def _mod97(text: str) -> int:
    digits = "".join(str(int(char, 36)) for char in text)
    return int(digits) % 97


def is_iban(value: Optional[str]) -> bool:
    """Check an IBAN's shape and its ISO 7064 mod-97 check digits."""
    iban = _compact(value)
    if not IBAN_PATTERN.match(iban):
        return False
    return _mod97(iban[4:] + iban[:4]) == 1


def is_bic(value: Optional[str]) -> bool:
    """Check whether a value is an 8 or 11 character BIC."""
    return bool(BIC_PATTERN.match((value or "").strip().upper()))


def is_blz(value: Optional[str]) -> bool:
    """Check whether a value is an 8-digit German bank code."""
    return bool(BLZ_PATTERN.match((value or "").strip()))


def generate_german_iban(bank_code: str, account_number: str) -> str:
    """Build a German IBAN from bank code and account number.

    Args:
        bank_code: 8-digit Bankleitzahl
        account_number: Account number with up to 10 digits

    Returns:
        IBAN such as "DE89370400440532013000"

    Raises:
        ValueError: If bank code or account number is not numeric or too long
    """
    bank_code = (bank_code or "").strip()
    account_number = (account_number or "").strip()
    if not is_blz(bank_code):
        raise ValueError(f"Invalid bank code '{bank_code}'")
    if not re.fullmatch(r"\d{1,10}", account_number):
        raise ValueError(f"Invalid account number '{account_number}'")

    bban = bank_code + account_number.zfill(10)
    check = 98 - _mod97(bban + "DE00")
    return f"DE{check:02d}{bban}"


def bank_code_from_iban(iban: Optional[str]) -> Optional[str]:
    """Return the Bankleitzahl embedded in a German IBAN."""
    iban = _compact(iban)
    if iban.startswith("DE") and len(iban) == 22:
        return iban[4:12]
    return None


def split_account_id(account_id: str) -> tuple[str, str]:
    """Split an MT940 account id ("BLZ/ACCOUNT" or an IBAN).

    Returns:
        Tuple of (bank_code, account); bank_code is empty when unknown
    """
    account_id = (account_id or "").strip()
    if "/" in account_id:
        bank_code, account = account_id.split("/", 1)
        return bank_code.strip(), account.strip()
    return bank_code_from_iban(account_id) or "", account_id
