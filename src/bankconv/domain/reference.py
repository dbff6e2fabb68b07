"""Transaction reference of the MT940 :61: line."""

import re
from dataclasses import dataclass
from typing import Optional

from bankconv.domain.enums import BookingKey
from bankconv.domain.errors import (
    InvalidReferenceLength,
    InvalidTransactionCode,
    invalid_transaction_code,
    reference_too_long,
)

MAX_REFERENCE_LENGTH = 16
DEFAULT_TRANSACTION_CODE = "TRF"
NO_REFERENCE = "NONREF"

_CODE_PATTERN = re.compile(r"^[A-Z0-9]{3}$")
_KEYED_PATTERN = re.compile(r"^([A-Z])([A-Z0-9]{3})(.*)$")
_BARE_PATTERN = re.compile(r"^([A-Z0-9]{3})(.*)$")


@dataclass(frozen=True)
class Reference:
    """Booking key, transaction type code and references of a booking.

    Serialised as ``<booking key><code><reference>[//<bank reference>]``,
    e.g. ``NTRFREF123`` or ``NCHKREF456//BANK789``. An empty reference is
    written as NONREF.
    """

    transaction_code: str
    reference: str = NO_REFERENCE
    bank_reference: Optional[str] = None
    booking_key: BookingKey = BookingKey.OTHER

    def __post_init__(self):
        code = (self.transaction_code or "").strip().upper()[:3]
        if not _CODE_PATTERN.match(code):
            raise InvalidTransactionCode(invalid_transaction_code(self.transaction_code))
        object.__setattr__(self, "transaction_code", code)

        reference = (self.reference or "").strip() or NO_REFERENCE
        if len(reference) > MAX_REFERENCE_LENGTH:
            raise InvalidReferenceLength(
                reference_too_long("Reference", reference, MAX_REFERENCE_LENGTH)
            )
        object.__setattr__(self, "reference", reference)

        if self.bank_reference is not None:
            bank_reference = self.bank_reference.strip()
            if len(bank_reference) > MAX_REFERENCE_LENGTH:
                raise InvalidReferenceLength(
                    reference_too_long("Bank reference", bank_reference, MAX_REFERENCE_LENGTH)
                )
            object.__setattr__(self, "bank_reference", bank_reference or None)

    @property
    def booking_key_with_code(self) -> str:
        return self.booking_key.code + self.transaction_code

    def __str__(self) -> str:
        text = self.booking_key_with_code + self.reference
        if self.bank_reference:
            text += "//" + self.bank_reference
        return text

    @classmethod
    def from_swift_field(cls, value: str) -> "Reference":
        """Parse the reference part of a :61: line.

        Tries booking key plus code first, then a bare three-character code.
        Anything else becomes the reference of a TRF booking.
        """
        value = (value or "").strip()
        bank_reference = None
        if "//" in value:
            value, bank_reference = value.split("//", 1)

        match = _KEYED_PATTERN.match(value)
        if match and BookingKey.from_code(match.group(1)) is not None:
            return cls(
                transaction_code=match.group(2),
                reference=match.group(3),
                bank_reference=bank_reference,
                booking_key=BookingKey.from_code(match.group(1)),
            )

        match = _BARE_PATTERN.match(value)
        if match:
            return cls(
                transaction_code=match.group(1),
                reference=match.group(2),
                bank_reference=bank_reference,
            )

        return cls(
            transaction_code=DEFAULT_TRANSACTION_CODE,
            reference=value,
            bank_reference=bank_reference,
        )
