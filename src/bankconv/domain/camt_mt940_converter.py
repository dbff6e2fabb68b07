"""Conversion between camt.053 statements and MT940 statements.

MT940 has fewer structured fields than camt.053. SEPA references travel in
the purpose lines as keyword text (EREF+, MREF+, CRED+, KREF+, SVWZ+) and the
counterparty goes into the payer subfields ?30-?33. Only the opening and
closing booked balances are carried over.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Iterable, Optional

from bankconv.domain.balance import Balance
from bankconv.domain.batch import SkipHandler, convert_each
from bankconv.domain.camt import Camt053Document
from bankconv.domain.camt_converter import NOT_PROVIDED, build_purpose_text
from bankconv.domain.entities import Counterparty, PaymentReferences, Transaction
from bankconv.domain.enums import BalanceRole, BalanceType, CreditDebit
from bankconv.domain.mt940 import MAX_STATEMENT_REFERENCE_LENGTH, Mt940Statement, Mt940Transaction
from bankconv.domain.purpose import Purpose
from bankconv.domain.reference import (
    DEFAULT_TRANSACTION_CODE,
    MAX_REFERENCE_LENGTH,
    NO_REFERENCE,
    Reference,
)
from bankconv.utils.bank_helper import is_bic, is_iban
from bankconv.utils.text import split_text

logger = logging.getLogger(__name__)

DEFAULT_STATEMENT_NUMBER = "00001"
DEFAULT_STATEMENT_REFERENCE = "CAMT-REF"
MAX_MESSAGE_ID_LENGTH = 35

# ISO 20022 domain codes and their SWIFT transaction type codes
ISO_TO_SWIFT_CODES = {
    "NTRF": "TRF",
    "NCHK": "CHK",
    "NBOE": "BOE",
    "NDCR": "DCR",
    "NLCR": "LCR",
    "NMSC": "MSC",
    "NCHG": "CHG",
    "NINT": "INT",
    "NDIV": "DIV",
    "NRTI": "RTI",
}
SWIFT_TO_ISO_CODES = {swift: iso for iso, swift in ISO_TO_SWIFT_CODES.items()}
SWIFT_TO_ISO_CODES["TRA"] = "NTRF"
DEFAULT_ISO_CODE = "NTRF"

_GVC = re.compile(r"^\d{3}$")
_NOT_IDENTIFIER = re.compile(r"[^A-Za-z0-9\-]")
_SEPA_TAGS = {
    "end_to_end_id": re.compile(r"EREF\+([^\s+]+)"),
    "mandate_id": re.compile(r"MREF\+([^\s+]+)"),
    "creditor_id": re.compile(r"CRED\+([^\s+]+)"),
    "instruction_id": re.compile(r"KREF\+([^\s+]+)"),
}
_IBAN_TAG = re.compile(r"IBAN\+([A-Z]{2}\d{2}[A-Z0-9]+)")
_BIC_TAG = re.compile(r"BIC\+([A-Z0-9]{8,11})\b")
_FREE_TEXT = re.compile(r"SVWZ\+(.+?)(?=\s+[A-Z]{3,4}\+|$)", re.DOTALL)
_ANY_TAG = re.compile(r"\b[A-Z]{3,4}\+\S*")


def swift_transaction_code(iso_code: Optional[str]) -> str:
    """Map an ISO 20022 domain code such as NTRF to its SWIFT code."""
    return ISO_TO_SWIFT_CODES.get((iso_code or "").upper(), DEFAULT_TRANSACTION_CODE)


def iso_transaction_code(swift_code: str) -> str:
    """Map a SWIFT transaction type code such as TRF to its ISO 20022 code."""
    return SWIFT_TO_ISO_CODES.get(swift_code.upper(), DEFAULT_ISO_CODE)


def statement_reference(document_id: str) -> str:
    """Derive a :20: reference (at most 16 characters) from a statement id."""
    clean = _NOT_IDENTIFIER.sub("", document_id or "")
    return clean[:MAX_STATEMENT_REFERENCE_LENGTH] or DEFAULT_STATEMENT_REFERENCE


def references_from_text(text: str) -> PaymentReferences:
    """Read SEPA keyword references from purpose text."""
    values = {}
    for name, pattern in _SEPA_TAGS.items():
        match = pattern.search(text)
        if match:
            values[name] = match.group(1)
    return PaymentReferences(**values)


def clean_purpose(text: str) -> Optional[str]:
    """Return the free text of a purpose, without SEPA keyword parts.

    The SVWZ+ part is taken when present; otherwise every keyword part is
    removed.
    """
    match = _FREE_TEXT.search(text)
    if match:
        return " ".join(match.group(1).split()) or None
    return " ".join(_ANY_TAG.sub("", text).split()) or None


def _swift_balance(balance: Optional[Balance], role: BalanceRole, document: Camt053Document) -> Balance:
    if balance is None:
        logger.debug("No %s balance in %s, using zero", role.value, document.id)
        return Balance(
            credit_debit=CreditDebit.CREDIT,
            date=document.creation_date_time.date(),
            currency=document.currency,
            amount=0,
            type=BalanceType.FINAL,
            role=role,
        )
    return Balance(
        credit_debit=balance.credit_debit,
        date=balance.date,
        currency=balance.currency,
        amount=balance.amount,
        type=BalanceType.FINAL,
        role=role,
    )


class CamtToMt940Converter:
    """Builds MT940 statements from camt.053 statements."""

    def convert(self, document: Camt053Document, reference_id: Optional[str] = None) -> Mt940Statement:
        """Convert one camt.053 statement.

        A missing opening or closing balance becomes a zero credit balance
        dated on the creation date.

        Args:
            document: camt.053 statement
            reference_id: :20: reference; derived from the statement id if None

        Returns:
            MT940 statement with one transaction per entry
        """
        statement = Mt940Statement(
            reference_id=reference_id or statement_reference(document.id),
            account_id=document.account_identifier,
            statement_number=document.sequence_number or DEFAULT_STATEMENT_NUMBER,
            opening_balance=_swift_balance(document.opening_balance, BalanceRole.OPENING, document),
            closing_balance=_swift_balance(document.closing_balance, BalanceRole.CLOSING, document),
            transactions=tuple(self.convert_entry(entry) for entry in document.entries),
        )
        logger.info(
            "Converted camt.053 statement %s with %d entries", document.id, len(statement.transactions)
        )
        return statement

    def convert_entry(self, entry: Transaction) -> Mt940Transaction:
        code = entry.transaction_code or ""
        reference = (
            entry.entry_reference
            or entry.references.end_to_end_id
            or NO_REFERENCE
        )
        if reference == NOT_PROVIDED:
            reference = NO_REFERENCE
        names = split_text(entry.counterparty.name or "")
        purpose = Purpose(
            gvc_code=code if _GVC.match(code) else None,
            booking_text=entry.additional_info,
            purpose_lines=tuple(split_text(build_purpose_text(entry))),
            payer_bank_code=entry.counterparty.bic,
            payer_account=entry.counterparty.iban,
            payer_name_1=names[0] if names else None,
            payer_name_2=names[1] if len(names) > 1 else None,
        )
        return Mt940Transaction(
            booking_date=entry.booking_date,
            valuta_date=entry.valuta_date,
            amount=entry.amount,
            credit_debit=entry.credit_debit,
            currency=entry.currency,
            reference=Reference(
                transaction_code=swift_transaction_code(code),
                reference=reference[:MAX_REFERENCE_LENGTH],
                bank_reference=(entry.account_servicer_reference or "")[:MAX_REFERENCE_LENGTH] or None,
            ),
            purpose=purpose,
            is_reversal=entry.is_reversal,
        )

    def convert_multiple(
        self, documents: Iterable[Camt053Document], on_skip: Optional[SkipHandler] = None
    ) -> list[Mt940Statement]:
        """Convert statements, leaving out any that fail."""
        return convert_each(self.convert, documents, "camt.053 document", on_skip)


class Mt940ToCamtConverter:
    """Builds camt.053 statements from MT940 statements."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def convert(self, statement: Mt940Statement, message_id: Optional[str] = None) -> Camt053Document:
        """Convert one MT940 statement.

        The servicer BIC is taken from the account id when it starts with
        one, e.g. ``COBADEFFXXX/0532013000``.
        """
        now = self.clock()
        if message_id is None:
            message_id = _NOT_IDENTIFIER.sub(
                "", f"MT940-{statement.reference_id}-{now.strftime('%Y%m%d%H%M%S')}"
            )[:MAX_MESSAGE_ID_LENGTH]
        prefix = re.split(r"[/\s]", statement.account_id, maxsplit=1)[0]

        opening, closing = statement.opening_balance, statement.closing_balance
        return Camt053Document(
            id=statement.reference_id,
            creation_date_time=now,
            account_identifier=statement.account_id,
            currency=statement.currency,
            message_id=message_id,
            servicer_bic=prefix if is_bic(prefix) else None,
            sequence_number=statement.statement_number,
            opening_balance=Balance(
                credit_debit=opening.credit_debit,
                date=opening.date,
                currency=opening.currency,
                amount=opening.amount,
                type=BalanceType.PREVIOUSLY_CLOSED_BOOKED,
            ),
            closing_balance=Balance(
                credit_debit=closing.credit_debit,
                date=closing.date,
                currency=closing.currency,
                amount=closing.amount,
                type=BalanceType.CLOSING_BOOKED,
            ),
            entries=tuple(self.convert_transaction(t) for t in statement.transactions),
        )

    def convert_transaction(self, transaction: Mt940Transaction) -> Transaction:
        purpose = transaction.purpose or Purpose()
        text = purpose.purpose_text
        reference = transaction.reference

        iban = purpose.payer_account if is_iban(purpose.payer_account) else None
        if iban is None:
            match = _IBAN_TAG.search(text)
            iban = match.group(1) if match and is_iban(match.group(1)) else None
        bic = purpose.payer_bank_code if is_bic(purpose.payer_bank_code) else None
        if bic is None:
            match = _BIC_TAG.search(text)
            bic = match.group(1) if match and is_bic(match.group(1)) else None

        return Transaction(
            booking_date=transaction.booking_date,
            valuta_date=transaction.valuta_date,
            amount=transaction.amount,
            credit_debit=transaction.credit_debit,
            currency=transaction.currency,
            references=references_from_text(text),
            purpose=clean_purpose(text),
            counterparty=Counterparty(name=purpose.payer_name, iban=iban, bic=bic),
            entry_reference=None if reference.reference == NO_REFERENCE else reference.reference,
            account_servicer_reference=reference.bank_reference,
            transaction_code=purpose.gvc_code or iso_transaction_code(reference.transaction_code),
            additional_info=purpose.booking_text,
            is_reversal=transaction.is_reversal,
        )

    def convert_multiple(
        self, statements: Iterable[Mt940Statement], on_skip: Optional[SkipHandler] = None
    ) -> list[Camt053Document]:
        """Convert statements, leaving out any that fail."""
        return convert_each(self.convert, statements, "MT940 statement", on_skip)
