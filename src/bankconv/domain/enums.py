"""Closed value enumerations shared by the DATEV, CAMT and MT940 codecs."""

from decimal import Decimal
from enum import Enum
from typing import Optional

from bankconv.domain.errors import InvalidCurrency, unknown_currency


class CreditDebit(str, Enum):
    """Booking direction, valued with the ISO 20022 indicator."""

    CREDIT = "CRDT"
    DEBIT = "DBIT"

    @property
    def is_credit(self) -> bool:
        return self is CreditDebit.CREDIT

    @property
    def mt940_code(self) -> str:
        return "C" if self is CreditDebit.CREDIT else "D"

    def direction_code(self, is_reversal: bool = False) -> str:
        """Return the MT940 direction mark (C, D, RC or RD)."""
        return ("R" if is_reversal else "") + self.mt940_code

    def apply_sign(self, amount: Decimal) -> Decimal:
        """Return ``amount`` signed according to this direction."""
        amount = abs(amount)
        return amount if self is CreditDebit.CREDIT else -amount

    @classmethod
    def from_amount(cls, amount: Decimal) -> "CreditDebit":
        return cls.DEBIT if amount < 0 else cls.CREDIT

    @classmethod
    def from_direction_code(cls, code: str) -> tuple["CreditDebit", bool]:
        """Parse a direction mark into (direction, is_reversal).

        Raises:
            ValueError: If the mark is not one of C, D, RC, RD
        """
        is_reversal = code.startswith("R")
        mark = code[1:] if is_reversal else code
        if mark == "C":
            return cls.CREDIT, is_reversal
        if mark == "D":
            return cls.DEBIT, is_reversal
        raise ValueError(f"Unknown direction code '{code}'")


class CurrencyCode(str, Enum):
    """ISO 4217 currencies seen in German bank statements."""

    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CHF = "CHF"
    JPY = "JPY"
    SEK = "SEK"
    NOK = "NOK"
    DKK = "DKK"
    PLN = "PLN"
    CZK = "CZK"
    HUF = "HUF"
    RON = "RON"
    BGN = "BGN"
    ISK = "ISK"
    TRY = "TRY"
    CAD = "CAD"
    AUD = "AUD"
    NZD = "NZD"
    CNY = "CNY"
    HKD = "HKD"
    SGD = "SGD"
    INR = "INR"
    ZAR = "ZAR"
    BRL = "BRL"
    MXN = "MXN"
    AED = "AED"
    ILS = "ILS"
    KRW = "KRW"
    THB = "THB"

    @classmethod
    def resolve(cls, value: "str | CurrencyCode") -> "CurrencyCode":
        """Resolve a currency code, ignoring case and surrounding blanks.

        Raises:
            InvalidCurrency: If the code is not known
        """
        if isinstance(value, cls):
            return value
        code = (value or "").strip().upper()
        try:
            return cls(code)
        except ValueError:
            raise InvalidCurrency(unknown_currency(str(value))) from None

    @classmethod
    def resolve_or_default(cls, value: Optional[str]) -> "CurrencyCode":
        """Resolve a currency code, falling back to EUR for blank or unknown codes."""
        try:
            return cls.resolve(value or "")
        except InvalidCurrency:
            return cls.EUR


class BookingKey(Enum):
    """SWIFT booking key prefixing the :61: transaction type."""

    SWIFT = "S"
    FIRST_ADVICE = "F"
    OTHER = "N"

    @property
    def code(self) -> str:
        return self.value

    @classmethod
    def from_code(cls, code: str) -> Optional["BookingKey"]:
        for key in cls:
            if key.value == code:
                return key
        return None


class BalanceType(str, Enum):
    """Balance type tags of CAMT (four letters) and MT9xx (one letter)."""

    OPENING_BOOKED = "OPBD"
    CLOSING_BOOKED = "CLBD"
    PREVIOUSLY_CLOSED_BOOKED = "PRCD"
    CLOSING_AVAILABLE = "CLAV"
    FORWARD_AVAILABLE = "FWAV"
    INTERIM_BOOKED = "ITBD"
    FINAL = "F"
    INTERIM = "M"
    AVAILABLE = "A"

    @property
    def is_swift(self) -> bool:
        return len(self.value) == 1


class BalanceRole(Enum):
    """Position of an MT9xx balance within the statement."""

    OPENING = "opening"
    CLOSING = "closing"
    CLOSING_AVAILABLE = "closing_available"
    FORWARD_AVAILABLE = "forward_available"


class CamtVersion(str, Enum):
    """Supported camt.053 message versions."""

    V02 = "02"
    V04 = "04"
    V08 = "08"

    @property
    def namespace(self) -> str:
        return f"urn:iso:std:iso:20022:tech:xsd:camt.053.001.{self.value}"

    @property
    def uses_bicfi(self) -> bool:
        return self is not CamtVersion.V02

    @property
    def supports_uetr(self) -> bool:
        return self is CamtVersion.V08
