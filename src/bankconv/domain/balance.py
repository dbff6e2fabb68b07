"""Statement balance shared by CAMT and MT9xx documents."""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from bankconv.domain.enums import BalanceRole, BalanceType, CreditDebit, CurrencyCode
from bankconv.domain.errors import MessageParseError
from bankconv.utils.amount_parser import format_swift_amount, parse_amount

_SWIFT_BALANCE = re.compile(r"^([CD])(\d{6})([A-Z]{3})(\d+,?\d*)$")


@dataclass(frozen=True)
class Balance:
    """Balance of an account at a given date.

    The amount is always stored unsigned; ``signed_amount`` applies the
    credit/debit indicator.
    """

    credit_debit: CreditDebit
    date: date
    currency: CurrencyCode
    amount: Decimal
    type: BalanceType = BalanceType.CLOSING_BOOKED
    role: Optional[BalanceRole] = None

    def __post_init__(self):
        object.__setattr__(self, "amount", abs(Decimal(str(self.amount))))
        object.__setattr__(self, "currency", CurrencyCode.resolve(self.currency))

    @classmethod
    def from_signed(
        cls,
        amount: Decimal,
        date: date,
        currency: "CurrencyCode | str" = CurrencyCode.EUR,
        type: BalanceType = BalanceType.CLOSING_BOOKED,
        role: Optional[BalanceRole] = None,
    ) -> "Balance":
        """Create a balance whose direction follows the sign of ``amount``."""
        return cls(
            credit_debit=CreditDebit.from_amount(amount),
            date=date,
            currency=currency,
            amount=amount,
            type=type,
            role=role,
        )

    @property
    def signed_amount(self) -> Decimal:
        return self.credit_debit.apply_sign(self.amount)

    @property
    def is_credit(self) -> bool:
        return self.credit_debit.is_credit

    @property
    def is_debit(self) -> bool:
        return not self.credit_debit.is_credit

    @property
    def is_opening(self) -> bool:
        if self.type.is_swift:
            return self.type is BalanceType.FINAL and self.role is BalanceRole.OPENING
        return self.type in (BalanceType.OPENING_BOOKED, BalanceType.PREVIOUSLY_CLOSED_BOOKED)

    @property
    def is_closing(self) -> bool:
        if self.type.is_swift:
            return self.type is BalanceType.FINAL and self.role is BalanceRole.CLOSING
        return self.type is BalanceType.CLOSING_BOOKED

    def to_swift(self) -> str:
        """Render as an MT9xx balance value, e.g. ``C250115EUR1000,50``."""
        return (
            self.credit_debit.mt940_code
            + self.date.strftime("%y%m%d")
            + self.currency.value
            + format_swift_amount(self.amount)
        )

    @classmethod
    def from_swift(
        cls,
        value: str,
        type: BalanceType = BalanceType.FINAL,
        role: Optional[BalanceRole] = None,
    ) -> "Balance":
        """Parse an MT9xx balance value.

        Raises:
            MessageParseError: If the value is not a SWIFT balance
        """
        match = _SWIFT_BALANCE.match(value.strip())
        if not match:
            raise MessageParseError(f"Malformed balance '{value}'")
        direction, date_str, currency, amount = match.groups()
        return cls(
            credit_debit=CreditDebit.from_direction_code(direction)[0],
            date=datetime.strptime(date_str, "%y%m%d").date(),
            currency=currency,
            amount=parse_amount(amount),
            type=type,
            role=role,
        )
