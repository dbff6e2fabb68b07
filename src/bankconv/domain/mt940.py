"""SWIFT MT940 statements and MT941 balance reports.

A statement transaction consists of the :61: statement line, an optional
supplementary details line and the :86: multi-purpose field:

    :61:2501150115C1000,50NTRFREF123//BANK789
    DETAILS
    :86:166?00GUTSCHRIFT?20EREF+ORDER12345
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from bankconv.domain.balance import Balance
from bankconv.domain.enums import BalanceRole, BalanceType, CreditDebit, CurrencyCode
from bankconv.domain.errors import MessageParseError, ValidationError
from bankconv.domain.purpose import FIELD_TAG, Purpose, PurposeDialect, swift_field_lines
from bankconv.domain.reference import NO_REFERENCE, Reference
from bankconv.utils.amount_parser import format_swift_amount, parse_amount

logger = logging.getLogger(__name__)

MAX_SUPPLEMENTARY_LENGTH = 34
MAX_STATEMENT_REFERENCE_LENGTH = 16
LINE_SEPARATOR = "\r\n"
STATEMENT_END = "-"

_STATEMENT_LINE = re.compile(
    r"^:61:(\d{6})(\d{4})?(R?[CD])([A-Z])?(\d+,?\d*)([SNF][A-Z0-9]{3}.*)$"
)
_TAG_LINE = re.compile(r"^:(\d{2}[A-Z]?):(.*)$")


def _booking_date(valuta: date, month_day: str) -> date:
    month, day = int(month_day[:2]), int(month_day[2:])
    year = valuta.year
    if month - valuta.month > 6:
        year -= 1
    elif valuta.month - month > 6:
        year += 1
    try:
        return date(year, month, day)
    except ValueError:
        raise MessageParseError(f"Invalid booking date {month_day} for value date {valuta}") from None


@dataclass(frozen=True)
class Mt940Transaction:
    """One booking of an MT940 statement.

    A missing value date defaults to the booking date, which is how the
    :61: line represents it.
    """

    booking_date: date
    amount: Decimal
    credit_debit: CreditDebit
    reference: Reference
    currency: CurrencyCode = CurrencyCode.EUR
    valuta_date: Optional[date] = None
    purpose: Optional[Purpose] = None
    supplementary_details: Optional[str] = None
    is_reversal: bool = False

    def __post_init__(self):
        object.__setattr__(self, "amount", abs(Decimal(str(self.amount))))
        object.__setattr__(self, "currency", CurrencyCode.resolve(self.currency))
        if self.valuta_date is None:
            object.__setattr__(self, "valuta_date", self.booking_date)
        if self.supplementary_details is not None:
            if len(self.supplementary_details) > MAX_SUPPLEMENTARY_LENGTH:
                raise ValidationError(
                    f"Supplementary details exceed {MAX_SUPPLEMENTARY_LENGTH} characters"
                )
            object.__setattr__(self, "supplementary_details", self.supplementary_details or None)
        if self.purpose is not None and not self.purpose.to_lines():
            object.__setattr__(self, "purpose", None)

    @property
    def signed_amount(self) -> Decimal:
        return self.credit_debit.apply_sign(self.amount)

    @property
    def is_credit(self) -> bool:
        return self.credit_debit.is_credit

    def statement_line(self) -> str:
        """Render the :61: line."""
        line = ":61:" + self.valuta_date.strftime("%y%m%d")
        if self.booking_date != self.valuta_date:
            line += self.booking_date.strftime("%m%d")
        line += self.credit_debit.direction_code(self.is_reversal)
        if self.currency is not CurrencyCode.EUR:
            line += self.currency.value[-1]
        return line + format_swift_amount(self.amount) + str(self.reference)

    def to_lines(self, dialect: PurposeDialect = PurposeDialect.DATEV) -> list[str]:
        lines = [self.statement_line()]
        if self.supplementary_details:
            lines.append(self.supplementary_details)
        if self.purpose is not None:
            purpose_lines = self.purpose.to_lines(dialect)
            lines.append(FIELD_TAG + purpose_lines[0])
            lines.extend(purpose_lines[1:])
        return lines

    @classmethod
    def from_lines(
        cls, lines: Iterable[str], currency: "CurrencyCode | str" = CurrencyCode.EUR
    ) -> "Mt940Transaction":
        """Parse a :61: line with its supplementary and :86: lines.

        The :61: line only carries the last letter of a foreign currency, so
        the statement currency is passed in.

        Raises:
            MessageParseError: If the :61: line is malformed
        """
        lines = [line.rstrip("\r\n") for line in lines]
        if not lines:
            raise MessageParseError("Empty transaction block")
        match = _STATEMENT_LINE.match(lines[0].strip())
        if not match:
            raise MessageParseError(f"Malformed statement line '{lines[0]}'")
        valuta_str, month_day, direction, _currency_char, amount_str, reference_str = match.groups()

        try:
            valuta = datetime.strptime(valuta_str, "%y%m%d").date()
        except ValueError:
            raise MessageParseError(f"Invalid value date '{valuta_str}'") from None
        credit_debit, is_reversal = CreditDebit.from_direction_code(direction)

        rest = lines[1:]
        supplementary = None
        if rest and not rest[0].startswith(":"):
            supplementary = rest[0][:MAX_SUPPLEMENTARY_LENGTH]
            rest = rest[1:]

        purpose = None
        if rest and rest[0].startswith(FIELD_TAG):
            purpose = Purpose.from_text("\n".join([rest[0][len(FIELD_TAG):]] + rest[1:]))

        return cls(
            booking_date=_booking_date(valuta, month_day) if month_day else valuta,
            valuta_date=valuta,
            amount=parse_amount(amount_str),
            credit_debit=credit_debit,
            currency=currency,
            reference=Reference.from_swift_field(reference_str),
            purpose=purpose,
            supplementary_details=supplementary,
            is_reversal=is_reversal,
        )


def _balance_line(tag: str, balance: Balance) -> str:
    letter = balance.type.value if balance.type.is_swift else BalanceType.FINAL.value
    return f":{tag}{letter}:{balance.to_swift()}"


@dataclass(frozen=True)
class Mt940Statement:
    """End-of-day statement of one account."""

    account_id: str
    statement_number: str
    opening_balance: Balance
    closing_balance: Balance
    transactions: tuple[Mt940Transaction, ...] = ()
    reference_id: str = NO_REFERENCE
    related_reference: Optional[str] = None
    closing_available_balance: Optional[Balance] = None
    forward_available_balance: Optional[Balance] = None
    information: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "transactions", tuple(self.transactions))
        if len(self.reference_id) > MAX_STATEMENT_REFERENCE_LENGTH:
            raise ValidationError(
                f"Statement reference '{self.reference_id}' exceeds "
                f"{MAX_STATEMENT_REFERENCE_LENGTH} characters"
            )

    @property
    def currency(self) -> CurrencyCode:
        return self.opening_balance.currency

    def with_transaction(self, transaction: Mt940Transaction) -> "Mt940Statement":
        return replace(self, transactions=self.transactions + (transaction,))

    def to_lines(self, dialect: PurposeDialect = PurposeDialect.DATEV) -> list[str]:
        lines = [f":20:{self.reference_id}"]
        if self.related_reference:
            lines.append(f":21:{self.related_reference}")
        lines.append(f":25:{self.account_id}")
        lines.append(f":28C:{self.statement_number}")
        lines.append(_balance_line("60", self.opening_balance))
        for transaction in self.transactions:
            lines.extend(transaction.to_lines(dialect))
        lines.append(_balance_line("62", self.closing_balance))
        if self.closing_available_balance is not None:
            lines.append(f":64:{self.closing_available_balance.to_swift()}")
        if self.forward_available_balance is not None:
            lines.append(f":65:{self.forward_available_balance.to_swift()}")
        if self.information:
            info = swift_field_lines(self.information)
            lines.append(FIELD_TAG + info[0])
            lines.extend(info[1:])
        lines.append(STATEMENT_END)
        return lines

    def to_text(self, dialect: PurposeDialect = PurposeDialect.DATEV) -> str:
        return LINE_SEPARATOR.join(self.to_lines(dialect)) + LINE_SEPARATOR

    @classmethod
    def parse(cls, text: str) -> list["Mt940Statement"]:
        """Read all statements of an MT940 file.

        SWIFT block envelopes (``{1:...}``) are ignored; a statement ends at a
        lone ``-`` or ``-}`` line or at the next :20: tag.

        Raises:
            MessageParseError: If a statement lacks a mandatory field
        """
        parser = _StatementParser()
        for line in text.splitlines():
            parser.feed(line)
        parser.finish_statement()
        return parser.statements


class _StatementParser:
    """Line-driven reader collecting statement fields and transaction blocks."""

    def __init__(self):
        self.statements: list[Mt940Statement] = []
        self._reset()

    def _reset(self):
        self.fields: dict[str, str] = {}
        self.blocks: list[list[str]] = []
        self.block: Optional[list[str]] = None
        self.info: Optional[list[str]] = None
        self.last_tag: Optional[str] = None

    def feed(self, line: str):
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith("{"):
            return
        if line.strip() in ("-", "-}"):
            self.finish_statement()
            return

        match = _TAG_LINE.match(line)
        if not match:
            self._continue(line)
            return

        tag, value = match.groups()
        if tag == "20" and self.fields:
            self.finish_statement()
        if tag == "61":
            self._finish_block()
            self.block = [line]
        elif tag == "86" and self.block is not None:
            self.block.append(line)
        elif tag == "86":
            self.info = [value]
        else:
            self._finish_block()
            self.fields[tag] = value
        self.last_tag = tag

    def _continue(self, line: str):
        if self.block is not None:
            self.block.append(line)
        elif self.info is not None and self.last_tag == "86":
            self.info.append(line)
        else:
            logger.debug("Ignoring stray MT940 line '%s'", line)

    def _finish_block(self):
        if self.block is not None:
            self.blocks.append(self.block)
            self.block = None

    def _field(self, *tags: str) -> Optional[tuple[str, str]]:
        for tag in tags:
            if tag in self.fields:
                return tag, self.fields[tag]
        return None

    def _required(self, *tags: str) -> tuple[str, str]:
        found = self._field(*tags)
        if found is None:
            raise MessageParseError(f"MT940 statement without :{tags[0]}: field")
        return found

    def finish_statement(self):
        self._finish_block()
        if not self.fields and not self.blocks:
            self._reset()
            return

        _, account_id = self._required("25", "25P")
        _, statement_number = self._required("28C", "28")
        opening_tag, opening_value = self._required("60F", "60M")
        closing_tag, closing_value = self._required("62F", "62M")
        opening = Balance.from_swift(opening_value, BalanceType(opening_tag[-1]), BalanceRole.OPENING)
        closing = Balance.from_swift(closing_value, BalanceType(closing_tag[-1]), BalanceRole.CLOSING)
        available = self.fields.get("64")
        forward = self.fields.get("65")

        self.statements.append(
            Mt940Statement(
                reference_id=self.fields.get("20", NO_REFERENCE),
                related_reference=self.fields.get("21"),
                account_id=account_id,
                statement_number=statement_number,
                opening_balance=opening,
                closing_balance=closing,
                transactions=tuple(
                    Mt940Transaction.from_lines(block, opening.currency) for block in self.blocks
                ),
                closing_available_balance=(
                    Balance.from_swift(available, BalanceType.AVAILABLE, BalanceRole.CLOSING_AVAILABLE)
                    if available
                    else None
                ),
                forward_available_balance=(
                    Balance.from_swift(forward, BalanceType.AVAILABLE, BalanceRole.FORWARD_AVAILABLE)
                    if forward
                    else None
                ),
                information="".join(self.info) if self.info else None,
            )
        )
        self._reset()


@dataclass(frozen=True)
class Mt941Report:
    """Balance report summarising a statement's bookings."""

    reference_id: str
    account_id: str
    statement_number: str
    booked_balance: Balance
    debit_count: int
    debit_total: Decimal
    credit_count: int
    credit_total: Decimal
    opening_balance: Optional[Balance] = None
    closing_available_balance: Optional[Balance] = None
    forward_available_balance: Optional[Balance] = None

    @classmethod
    def from_statement(cls, statement: Mt940Statement) -> "Mt941Report":
        debits = [t.amount for t in statement.transactions if not t.is_credit]
        credits = [t.amount for t in statement.transactions if t.is_credit]
        return cls(
            reference_id=statement.reference_id,
            account_id=statement.account_id,
            statement_number=statement.statement_number,
            booked_balance=statement.closing_balance,
            debit_count=len(debits),
            debit_total=sum(debits, Decimal("0")),
            credit_count=len(credits),
            credit_total=sum(credits, Decimal("0")),
            opening_balance=statement.opening_balance,
            closing_available_balance=statement.closing_available_balance,
            forward_available_balance=statement.forward_available_balance,
        )

    def to_lines(self) -> list[str]:
        currency = self.booked_balance.currency.value
        lines = [
            f":20:{self.reference_id}",
            f":25:{self.account_id}",
            f":28:{self.statement_number}",
        ]
        if self.opening_balance is not None:
            lines.append(_balance_line("60", self.opening_balance))
        lines.append(f":90D:{self.debit_count}{currency}{format_swift_amount(self.debit_total)}")
        lines.append(f":90C:{self.credit_count}{currency}{format_swift_amount(self.credit_total)}")
        lines.append(_balance_line("62", self.booked_balance))
        if self.closing_available_balance is not None:
            lines.append(f":64:{self.closing_available_balance.to_swift()}")
        if self.forward_available_balance is not None:
            lines.append(f":65:{self.forward_available_balance.to_swift()}")
        lines.append(STATEMENT_END)
        return lines

    def to_text(self) -> str:
        return LINE_SEPARATOR.join(self.to_lines()) + LINE_SEPARATOR

