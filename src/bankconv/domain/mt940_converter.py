"""Conversion between DATEV bank transaction documents and MT940 statements."""

import logging
import re
from decimal import Decimal
from typing import Iterable, Optional

from bankconv.domain.balance import Balance
from bankconv.domain.batch import SkipHandler, convert_chained, convert_each
from bankconv.domain.datev import (
    BankTransactionField as F,
    DatevDocument,
    build_record,
    purpose_values,
)
from bankconv.domain.entities import Record
from bankconv.domain.enums import BalanceRole, BalanceType, CreditDebit, CurrencyCode
from bankconv.domain.errors import (
    DocumentEmpty,
    NoValidTransactions,
    document_empty,
    no_valid_transactions,
)
from bankconv.domain.mt940 import MAX_STATEMENT_REFERENCE_LENGTH, Mt940Statement, Mt940Transaction
from bankconv.domain.purpose import Purpose
from bankconv.domain.reference import (
    DEFAULT_TRANSACTION_CODE,
    MAX_REFERENCE_LENGTH,
    NO_REFERENCE,
    Reference,
)
from bankconv.domain.registry import MIN_TRANSACTION_FIELDS
from bankconv.utils.amount_parser import format_amount, parse_amount
from bankconv.utils.bank_helper import split_account_id
from bankconv.utils.date_parser import format_datev_date, parse_datev_date
from bankconv.utils.text import SEGMENT_WIDTH, chunk_text, split_text

logger = logging.getLogger(__name__)

DEFAULT_STATEMENT_NUMBER = "00001"

_END_TO_END = re.compile(r"EREF\+([^\s+]+)")
_GVC = re.compile(r"^\d{3}$")


def _reference_for(record: Record, code: str) -> Reference:
    reference = NO_REFERENCE
    for value in purpose_values(record):
        match = _END_TO_END.search(value)
        if match:
            reference = match.group(1)[:MAX_REFERENCE_LENGTH]
            break
    try:
        return Reference(transaction_code=code, reference=reference)
    except ValueError as e:
        logger.debug("Falling back to %s/%s: %s", DEFAULT_TRANSACTION_CODE, NO_REFERENCE, e)
        return Reference(transaction_code=DEFAULT_TRANSACTION_CODE, reference=NO_REFERENCE)


class DatevToMt940Converter:
    """Builds MT940 statements from DATEV bank transaction documents."""

    def convert(
        self,
        document: DatevDocument,
        opening_amount: Decimal = Decimal("0"),
        opening_credit_debit: Optional[CreditDebit] = None,
    ) -> Mt940Statement:
        """Convert one DATEV document into a statement.

        Rows are skipped under the same rules as the camt.053 conversion.

        Raises:
            DocumentEmpty: If the document has no rows
            NoValidTransactions: If every row was skipped
        """
        if document.is_empty():
            raise DocumentEmpty(document_empty())

        first = document.records[0]
        bank_code = first.text(F.ACCOUNT_BANK_CODE)
        account = first.text(F.ACCOUNT_NUMBER)
        if bank_code and account:
            account_id = f"{bank_code}/{account}"
        else:
            account_id = account or bank_code
        statement_number = first.text(F.STATEMENT_NUMBER) or DEFAULT_STATEMENT_NUMBER
        reference_id = (
            "DATEV" + re.sub(r"[^A-Za-z0-9]", "", statement_number + first.text(F.STATEMENT_DATE))
        )[:MAX_STATEMENT_REFERENCE_LENGTH]

        transactions = []
        for index, record in enumerate(document.records, start=1):
            transaction = self.convert_row(record, index)
            if transaction is not None:
                transactions.append(transaction)

        if not transactions:
            raise NoValidTransactions(no_valid_transactions(len(document)))

        currency = transactions[0].currency
        opening_amount = Decimal(str(opening_amount))
        opening = Balance(
            credit_debit=opening_credit_debit or CreditDebit.from_amount(opening_amount),
            date=transactions[0].booking_date,
            currency=currency,
            amount=opening_amount,
            type=BalanceType.FINAL,
            role=BalanceRole.OPENING,
        )
        total = sum((t.signed_amount for t in transactions), Decimal("0"))
        closing = Balance.from_signed(
            opening.signed_amount + total,
            date=transactions[-1].booking_date,
            currency=currency,
            type=BalanceType.FINAL,
            role=BalanceRole.CLOSING,
        )

        return Mt940Statement(
            reference_id=reference_id,
            account_id=account_id,
            statement_number=statement_number,
            opening_balance=opening,
            closing_balance=closing,
            transactions=tuple(transactions),
        )

    def convert_row(self, record: Record, index: int = 0) -> Optional[Mt940Transaction]:
        """Convert one DATEV row, or return None if the row is skipped."""
        if record.width < MIN_TRANSACTION_FIELDS:
            logger.debug("Row %d skipped: only %d fields", index, record.width)
            return None
        booking_date = parse_datev_date(record.text(F.BOOKING_DATE))
        if booking_date is None:
            logger.debug("Row %d skipped: unparsable booking date", index)
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

        purpose_lines = []
        for value in purpose_values(record):
            purpose_lines.extend(chunk_text(value))
        purpose = Purpose(
            gvc_code=code if _GVC.match(code) else None,
            booking_text=record.text(F.BOOKING_TEXT) or None,
            purpose_lines=tuple(purpose_lines),
            payer_bank_code=record.text(F.PAYER_BANK_CODE) or None,
            payer_account=record.text(F.PAYER_ACCOUNT) or None,
            payer_name_1=record.text(F.PAYER_NAME_1) or None,
            payer_name_2=record.text(F.PAYER_NAME_2) or None,
        )

        return Mt940Transaction(
            booking_date=booking_date,
            valuta_date=parse_datev_date(record.text(F.VALUTA_DATE)),
            amount=amount,
            credit_debit=CreditDebit.from_amount(amount),
            currency=CurrencyCode.resolve_or_default(record.text(F.CURRENCY)),
            reference=_reference_for(record, code[:3]),
            purpose=purpose,
        )

    def convert_multiple(
        self,
        documents: Iterable[DatevDocument],
        starting_balance: Decimal = Decimal("0"),
        on_skip: Optional[SkipHandler] = None,
    ) -> list[Mt940Statement]:
        """Convert documents in order, chaining closing into opening balances."""
        return convert_chained(self.convert, documents, starting_balance, "DATEV document", on_skip)


class Mt940ToDatevConverter:
    """Builds DATEV bank transaction documents from MT940 statements."""

    def convert(self, statement: Mt940Statement) -> DatevDocument:
        bank_code, account = split_account_id(statement.account_id)
        shared = {
            F.ACCOUNT_BANK_CODE: bank_code,
            F.ACCOUNT_NUMBER: account,
            F.STATEMENT_NUMBER: statement.statement_number.split("/")[0],
            F.STATEMENT_DATE: format_datev_date(statement.opening_balance.date),
        }
        records = tuple(self.convert_transaction(t, shared) for t in statement.transactions)
        return DatevDocument(records=records)

    def convert_transaction(self, transaction: Mt940Transaction, shared: dict) -> Record:
        purpose = transaction.purpose or Purpose()
        lines = [line for line in purpose.purpose_lines if line]
        if purpose.raw_text:
            lines.extend(split_text(purpose.raw_text))

        values = dict(shared)
        values.update(
            {
                F.VALUTA_DATE: format_datev_date(transaction.valuta_date),
                F.BOOKING_DATE: format_datev_date(transaction.booking_date),
                F.AMOUNT: format_amount(transaction.signed_amount, signed=True),
                F.PAYER_NAME_1: (purpose.payer_name_1 or "")[:SEGMENT_WIDTH],
                F.PAYER_NAME_2: (purpose.payer_name_2 or "")[:SEGMENT_WIDTH],
                F.PAYER_BANK_CODE: purpose.payer_bank_code or "",
                F.PAYER_ACCOUNT: purpose.payer_account or "",
                F.TRANSACTION_CODE: purpose.gvc_code or transaction.reference.transaction_code,
                F.CURRENCY: transaction.currency.value,
                F.BOOKING_TEXT: (purpose.booking_text or "")[:SEGMENT_WIDTH],
            }
        )
        return build_record(values, lines)

    def convert_multiple(
        self, statements: Iterable[Mt940Statement], on_skip: Optional[SkipHandler] = None
    ) -> list[DatevDocument]:
        """Convert statements, leaving out any that fail."""
        return convert_each(self.convert, statements, "MT940 statement", on_skip)
