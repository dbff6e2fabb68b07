"""Domain model entities for bankconv.

These are pure, immutable data classes. Field-level records carry their
original quoting so a DATEV line can be written back byte for byte; the
transaction entities are format-neutral and shared by the CAMT and DATEV
sides of the converters.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Iterator, Optional

from bankconv.domain.enums import CreditDebit, CurrencyCode
from bankconv.domain.errors import InvalidGuid, invalid_guid

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


@dataclass(frozen=True)
class FieldDefinition:
    """Descriptor of one position in a fixed-position record layout."""

    position: int
    name: str
    label: str
    max_length: Optional[int] = None
    quoted: bool = False
    pattern: Optional[str] = None
    required: bool = False

    def check(self, value: str) -> Optional[str]:
        """Return a violation message for ``value``, or None if it conforms."""
        if not value:
            return f"{self.label}: required field is empty" if self.required else None
        if self.max_length is not None and len(value) > self.max_length:
            return f"{self.label}: '{value}' exceeds {self.max_length} characters"
        if self.pattern is not None and not re.match(self.pattern, value):
            return f"{self.label}: '{value}' does not match {self.pattern}"
        return None


@dataclass(frozen=True)
class FieldValue:
    """A single field as read from or written to a DATEV line."""

    value: str = ""
    was_quoted: bool = False


@dataclass(frozen=True)
class Record:
    """Position-indexed fields of one line, positions starting at 1.

    ``width`` is the number of tokens the source line had; the codec writes
    exactly that many back even when ``fields`` was padded to the registry
    length.
    """

    fields: tuple[FieldValue, ...] = ()
    width: Optional[int] = None

    def __post_init__(self):
        if self.width is None:
            object.__setattr__(self, "width", len(self.fields))

    @classmethod
    def blank(cls, size: int) -> "Record":
        """Create a record of ``size`` empty, unquoted fields."""
        return cls(fields=(FieldValue(),) * size, width=size)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[tuple[int, FieldValue]]:
        return iter(enumerate(self.fields, start=1))

    def field(self, position: int) -> FieldValue:
        if position < 1:
            raise IndexError(f"Field positions start at 1, got {position}")
        if position > len(self.fields):
            return FieldValue()
        return self.fields[position - 1]

    def value(self, position: int) -> str:
        """Return the raw value at ``position`` ("" if absent)."""
        return self.field(position).value

    def text(self, position: int) -> str:
        """Return the value at ``position`` with surrounding blanks removed."""
        return self.value(position).strip()

    def with_value(self, position: int, value: str, was_quoted: Optional[bool] = None) -> "Record":
        """Return a copy with ``position`` set to ``value``.

        The quoting flag is kept unless ``was_quoted`` is given.
        """
        fields = list(self.fields)
        if position > len(fields):
            fields.extend([FieldValue()] * (position - len(fields)))
        current = fields[position - 1]
        quoted = current.was_quoted if was_quoted is None else was_quoted
        fields[position - 1] = FieldValue(value=value, was_quoted=quoted)
        return Record(fields=tuple(fields), width=max(self.width, position))

    def as_dict(self) -> dict[int, tuple[str, bool]]:
        return {position: (fv.value, fv.was_quoted) for position, fv in self}


@dataclass(frozen=True)
class Counterparty:
    """Other party of a booking."""

    name: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.name or self.iban or self.bic)


@dataclass(frozen=True)
class PaymentReferences:
    """SEPA references attached to a booking."""

    end_to_end_id: Optional[str] = None
    mandate_id: Optional[str] = None
    creditor_id: Optional[str] = None
    entry_reference: Optional[str] = None
    account_servicer_reference: Optional[str] = None
    payment_information_id: Optional[str] = None
    instruction_id: Optional[str] = None
    uetr: Optional[str] = None
    additional: Optional[str] = None

    def __post_init__(self):
        if self.uetr is not None:
            normalized = self.uetr.strip().lower()
            if not UUID_V4_PATTERN.match(normalized):
                raise InvalidGuid(invalid_guid(self.uetr))
            object.__setattr__(self, "uetr", normalized)

    def has_any(self) -> bool:
        return any(value is not None for value in vars(self).values())

    @property
    def primary(self) -> Optional[str]:
        """First identifier found, end-to-end id first."""
        return (
            self.end_to_end_id
            or self.account_servicer_reference
            or self.entry_reference
            or self.mandate_id
            or self.instruction_id
            or self.additional
        )

    def __str__(self) -> str:
        parts = [
            f"EREF+{self.end_to_end_id}" if self.end_to_end_id else None,
            f"MREF+{self.mandate_id}" if self.mandate_id else None,
            f"CRED+{self.creditor_id}" if self.creditor_id else None,
            f"KREF+{self.instruction_id}" if self.instruction_id else None,
            self.additional,
        ]
        return " ".join(part for part in parts if part)


@dataclass(frozen=True)
class Transaction:
    """Format-neutral booking.

    ``amount`` is stored as an absolute value; the direction lives in
    ``credit_debit``.
    """

    booking_date: date
    amount: Decimal
    credit_debit: CreditDebit
    currency: CurrencyCode = CurrencyCode.EUR
    valuta_date: Optional[date] = None
    references: PaymentReferences = field(default_factory=PaymentReferences)
    purpose: Optional[str] = None
    counterparty: Counterparty = field(default_factory=Counterparty)
    entry_reference: Optional[str] = None
    account_servicer_reference: Optional[str] = None
    transaction_code: Optional[str] = None
    additional_info: Optional[str] = None
    status: str = "BOOK"
    is_reversal: bool = False

    def __post_init__(self):
        object.__setattr__(self, "amount", abs(Decimal(str(self.amount))))
        object.__setattr__(self, "currency", CurrencyCode.resolve(self.currency))

    @property
    def signed_amount(self) -> Decimal:
        return self.credit_debit.apply_sign(self.amount)

    @property
    def is_credit(self) -> bool:
        return self.credit_debit.is_credit

    def with_purpose(self, purpose: Optional[str]) -> "Transaction":
        return replace(self, purpose=purpose)
