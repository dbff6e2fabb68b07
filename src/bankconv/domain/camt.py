"""CAMT.053 bank-to-customer statement document."""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from bankconv.domain.balance import Balance
from bankconv.domain.entities import Transaction
from bankconv.domain.enums import CamtVersion, CurrencyCode


@dataclass(frozen=True)
class Camt053Document:
    """One camt.053 statement (Stmt) with its group header data."""

    id: str
    creation_date_time: datetime
    account_identifier: str
    currency: CurrencyCode = CurrencyCode.EUR
    message_id: Optional[str] = None
    account_owner: Optional[str] = None
    servicer_bic: Optional[str] = None
    sequence_number: Optional[str] = None
    opening_balance: Optional[Balance] = None
    closing_balance: Optional[Balance] = None
    entries: tuple[Transaction, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "currency", CurrencyCode.resolve(self.currency))
        object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def effective_message_id(self) -> str:
        """Message id, derived from the creation time when none was given."""
        return self.message_id or "CAMT053" + self.creation_date_time.strftime("%Y%m%d%H%M%S")

    def with_entry(self, entry: Transaction) -> "Camt053Document":
        """Return a new document with ``entry`` appended."""
        return replace(self, entries=self.entries + (entry,))

    def with_opening_balance(self, balance: Balance) -> "Camt053Document":
        return replace(self, opening_balance=balance)

    def with_closing_balance(self, balance: Balance) -> "Camt053Document":
        return replace(self, closing_balance=balance)

    def with_balances(self, opening: Balance, closing: Balance) -> "Camt053Document":
        return replace(self, opening_balance=opening, closing_balance=closing)

    @property
    def total_credits(self) -> Decimal:
        return sum((e.amount for e in self.entries if e.is_credit), Decimal("0"))

    @property
    def total_debits(self) -> Decimal:
        return sum((e.amount for e in self.entries if not e.is_credit), Decimal("0"))

    @property
    def net_amount(self) -> Decimal:
        return self.total_credits - self.total_debits

    def to_xml(self, version: CamtVersion = CamtVersion.V02, generator=None) -> str:
        """Render the document as camt.053 XML.

        Args:
            version: Message version, selects namespace and element variants
            generator: Object with ``generate(document, version)``; defaults to
                the ElementTree based generator
        """
        if generator is None:
            from bankconv.iso20022.generator import Camt053XmlGenerator

            generator = Camt053XmlGenerator()
        return generator.generate(self, version)
