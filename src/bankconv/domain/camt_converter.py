"""Conversion between DATEV bank transaction documents and camt.053 statements."""

import logging
import random
import re
import zlib
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from bankconv.domain.balance import Balance
from bankconv.domain.batch import SkipHandler, convert_chained, convert_each
from bankconv.domain.camt import Camt053Document
from bankconv.domain.datev import (
    BankTransactionField as F,
    DatevDocument,
    build_record,
    purpose_values,
)
from bankconv.domain.entities import Counterparty, PaymentReferences, Record, Transaction
from bankconv.domain.enums import BalanceType, CreditDebit, CurrencyCode
from bankconv.domain.errors import (
    DocumentEmpty,
    NoValidTransactions,
    document_empty,
    no_valid_transactions,
)
from bankconv.domain.reference import DEFAULT_TRANSACTION_CODE
from bankconv.domain.registry import MIN_TRANSACTION_FIELDS
from bankconv.utils.amount_parser import format_amount, parse_amount
from bankconv.utils.bank_helper import bank_code_from_iban, generate_german_iban, is_bic, is_iban
from bankconv.utils.date_parser import format_datev_date, parse_datev_date
from bankconv.utils.text import SEGMENT_WIDTH, split_text

logger = logging.getLogger(__name__)

DEFAULT_STATEMENT_NUMBER = "00001"
DEFAULT_SEQUENCE_NUMBER = "000"
MAX_IDENTIFIER_LENGTH = 35
MAX_ENTRY_REFERENCE_LENGTH = 25
NOT_PROVIDED = "NOTPROVIDED"

_END_TO_END = re.compile(r"EREF\+([^\s+]+)")


def derive_iban(bank_code: str, account: str) -> Optional[str]:
    """Return ``account`` if it is an IBAN, else a German IBAN built from it.

    Returns None when neither works.
    """
    account = account.strip()
    if not account:
        return None
    if is_iban(account):
        return account.replace(" ", "").upper()
    try:
        return generate_german_iban(bank_code, account)
    except ValueError as e:
        logger.debug("No IBAN for %s/%s: %s", bank_code, account, e)
        return None


def entry_reference(booking_date: date, booking_date_str: str, amount_str: str) -> str:
    """Deterministic entry reference from booking date and amount text."""
    checksum = zlib.crc32((booking_date_str + amount_str).encode("utf-8"))
    return (booking_date.strftime("%d%m%y") + f"{checksum:010d}")[:MAX_ENTRY_REFERENCE_LENGTH]


def _alphanumeric(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", text)


class DatevToCamtConverter:
    """Builds camt.053 statements from DATEV bank transaction documents."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """Initialize the converter.

        Args:
            clock: Source of the creation timestamp
        """
        self.clock = clock

    def convert(
        self,
        document: DatevDocument,
        opening_amount: Decimal = Decimal("0"),
        opening_credit_debit: Optional[CreditDebit] = None,
        account_owner: Optional[str] = None,
    ) -> Camt053Document:
        """Convert one DATEV document into a statement.

        Rows with fewer than 7 fields, an unparsable booking date or an empty
        amount are skipped.

        Args:
            document: DATEV document
            opening_amount: Opening balance; its sign gives the direction
                unless ``opening_credit_debit`` is set
            opening_credit_debit: Direction of the opening balance
            account_owner: Optional owner name for the account element

        Returns:
            camt.053 document with opening and closing balance

        Raises:
            DocumentEmpty: If the document has no rows
            NoValidTransactions: If every row was skipped
        """
        if document.is_empty():
            raise DocumentEmpty(document_empty())

        first = document.records[0]
        bank_code = first.text(F.ACCOUNT_BANK_CODE)
        account = first.text(F.ACCOUNT_NUMBER)
        account_identifier = derive_iban(bank_code, account) or account
        statement_number = first.text(F.STATEMENT_NUMBER) or DEFAULT_STATEMENT_NUMBER

        entries = []
        total = Decimal("0")
        for index, record in enumerate(document.records, start=1):
            transaction = self.convert_row(record, index)
            if transaction is None:
                continue
            entries.append(transaction)
            total += transaction.signed_amount

        if not entries:
            raise NoValidTransactions(no_valid_transactions(len(document)))

        currency = entries[0].currency
        opening_amount = Decimal(str(opening_amount))
        opening = Balance(
            credit_debit=opening_credit_debit or CreditDebit.from_amount(opening_amount),
            date=entries[0].booking_date,
            currency=currency,
            amount=opening_amount,
            type=BalanceType.PREVIOUSLY_CLOSED_BOOKED,
        )
        closing = Balance.from_signed(
            opening.signed_amount + total,
            date=entries[-1].booking_date,
            currency=currency,
            type=BalanceType.CLOSING_BOOKED,
        )

        now = self.clock()
        statement_id = ("CAMT053" + _alphanumeric(account + statement_number))[:MAX_IDENTIFIER_LENGTH]
        message_id = (
            "CAMT053" + now.strftime("%Y%m%d%H%M%S") + f"{random.randint(0, 999999):06d}"
        )[:MAX_IDENTIFIER_LENGTH]

        logger.info(
            "Converted %d of %d DATEV rows for account %s", len(entries), len(document), account_identifier
        )
        return Camt053Document(
            id=statement_id,
            creation_date_time=now,
            account_identifier=account_identifier,
            currency=currency,
            message_id=message_id,
            account_owner=account_owner,
            servicer_bic=bank_code if is_bic(bank_code) else None,
            sequence_number=statement_number,
            opening_balance=opening,
            closing_balance=closing,
            entries=tuple(entries),
        )

    def convert_row(self, record: Record, index: int = 0) -> Optional[Transaction]:
        """Convert one DATEV row, or return None if the row is skipped."""
        if record.width < MIN_TRANSACTION_FIELDS:
            logger.debug("Row %d skipped: only %d fields", index, record.width)
            return None

        booking_date_str = record.text(F.BOOKING_DATE)
        booking_date = parse_datev_date(booking_date_str)
        if booking_date is None:
            logger.debug("Row %d skipped: unparsable booking date '%s'", index, booking_date_str)
            return None

        amount_str = record.text(F.AMOUNT)
        if not amount_str:
            logger.debug("Row %d skipped: empty amount", index)
            return None
        try:
            amount = parse_amount(amount_str)
        except ValueError as e:
            logger.debug("Row %d skipped: %s", index, e)
            return None

        code = record.text(F.TRANSACTION_CODE)
        if len(code) < 3:
            code = DEFAULT_TRANSACTION_CODE

        end_to_end_id = None
        for value in purpose_values(record, count=3):
            match = _END_TO_END.search(value)
            if match:
                end_to_end_id = match.group(1)
                break

        payer_bank_code = record.text(F.PAYER_BANK_CODE)
        names = [record.text(F.PAYER_NAME_1), record.text(F.PAYER_NAME_2)]
        counterparty = Counterparty(
            name=" ".join(n for n in names if n) or None,
            iban=derive_iban(payer_bank_code, record.text(F.PAYER_ACCOUNT)),
            bic=payer_bank_code if is_bic(payer_bank_code) else None,
        )

        return Transaction(
            booking_date=booking_date,
            valuta_date=parse_datev_date(record.text(F.VALUTA_DATE)),
            amount=amount,
            credit_debit=CreditDebit.from_amount(amount),
            currency=CurrencyCode.resolve_or_default(record.text(F.CURRENCY)),
            references=PaymentReferences(end_to_end_id=end_to_end_id),
            purpose=" ".join(purpose_values(record)) or None,
            counterparty=counterparty,
            entry_reference=entry_reference(booking_date, booking_date_str, amount_str),
            transaction_code=code,
            additional_info=record.text(F.BOOKING_TEXT) or None,
        )

    def convert_multiple(
        self,
        documents: Iterable[DatevDocument],
        starting_balance: Decimal = Decimal("0"),
        account_owner: Optional[str] = None,
        on_skip: Optional[SkipHandler] = None,
    ) -> list[Camt053Document]:
        """Convert documents in order, chaining balances.

        The closing balance of each statement is the opening balance of the
        next one. A document that fails to convert is left out, reported to
        ``on_skip`` and the balance carries over unchanged.
        """
        return convert_chained(
            lambda document, amount, cd: self.convert(document, amount, cd, account_owner=account_owner),
            documents,
            starting_balance,
            "DATEV document",
            on_skip,
        )


def build_purpose_text(entry: Transaction) -> str:
    """Rebuild the SEPA purpose text of a booking.

    Keyword parts come first; the free text gets the SVWZ+ keyword only when
    at least one keyword part was written.
    """
    references = entry.references
    parts = []
    for keyword, value in (
        ("EREF+", references.end_to_end_id),
        ("MREF+", references.mandate_id),
        ("CRED+", references.creditor_id),
    ):
        if value and value != NOT_PROVIDED:
            parts.append(keyword + value)
    if entry.purpose:
        parts.append(("SVWZ+" if parts else "") + entry.purpose)
    return " ".join(" ".join(parts).split())


class CamtToDatevConverter:
    """Builds DATEV bank transaction documents from camt.053 statements."""

    def convert(self, document: Camt053Document) -> DatevDocument:
        """Convert a statement into one DATEV row per entry.

        Account, statement number and statement date are repeated on every row.
        """
        iban = document.account_identifier
        bank_code = document.servicer_bic or bank_code_from_iban(iban) or ""
        shared = {
            F.ACCOUNT_BANK_CODE: bank_code,
            F.ACCOUNT_NUMBER: iban,
            F.STATEMENT_NUMBER: document.sequence_number or DEFAULT_SEQUENCE_NUMBER,
            F.STATEMENT_DATE: format_datev_date(document.creation_date_time.date()),
        }
        records = tuple(self.convert_entry(entry, shared) for entry in document.entries)
        return DatevDocument(records=records)

    def convert_entry(self, entry: Transaction, shared: dict) -> Record:
        names = split_text(entry.counterparty.name or "")
        values = dict(shared)
        values.update(
            {
                F.VALUTA_DATE: format_datev_date(entry.valuta_date or entry.booking_date),
                F.BOOKING_DATE: format_datev_date(entry.booking_date),
                F.AMOUNT: format_amount(entry.signed_amount, signed=True),
                F.PAYER_NAME_1: names[0] if names else "",
                F.PAYER_NAME_2: names[1] if len(names) > 1 else "",
                F.PAYER_BANK_CODE: entry.counterparty.bic or "",
                F.PAYER_ACCOUNT: entry.counterparty.iban or "",
                F.TRANSACTION_CODE: (entry.transaction_code or "")[:3],
                F.CURRENCY: entry.currency.value,
                F.BOOKING_TEXT: (entry.additional_info or "")[:SEGMENT_WIDTH],
            }
        )
        return build_record(values, split_text(build_purpose_text(entry)))

    def convert_multiple(
        self, documents: Iterable[Camt053Document], on_skip: Optional[SkipHandler] = None
    ) -> list[DatevDocument]:
        """Convert statements, leaving out any that fail."""
        return convert_each(self.convert, documents, "camt.053 document", on_skip)
