"""camt.053 XML reader.

Element lookups ignore namespaces so every camt.053 version can be read
with the same code.
"""

import logging
import re
import xml.etree.ElementTree as ET
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from bankconv.domain.balance import Balance
from bankconv.domain.camt import Camt053Document
from bankconv.domain.entities import Counterparty, PaymentReferences, Transaction
from bankconv.domain.enums import BalanceType, CreditDebit, CurrencyCode
from bankconv.domain.errors import MessageParseError

logger = logging.getLogger(__name__)

_NAMESPACE = re.compile(r"^\{([^}]*)\}")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: Optional[ET.Element], *path: str) -> Optional[ET.Element]:
    """Follow a path of local element names."""
    for name in path:
        if element is None:
            return None
        element = next((c for c in element if _local(c.tag) == name), None)
    return element


def _children(element: Optional[ET.Element], name: str) -> list[ET.Element]:
    if element is None:
        return []
    return [c for c in element if _local(c.tag) == name]


def _text(element: Optional[ET.Element], *path: str) -> Optional[str]:
    found = _child(element, *path)
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


def _date(element: Optional[ET.Element], *path: str) -> Optional[date]:
    """Read a Dt or DtTm child of the element at ``path``."""
    container = _child(element, *path)
    value = _text(container, "Dt") or _text(container, "DtTm")
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value[:10]).date()
    except ValueError:
        raise MessageParseError(f"Invalid date '{value}'") from None


def _amount(element: Optional[ET.Element]) -> tuple[Decimal, Optional[str]]:
    if element is None or element.text is None:
        raise MessageParseError("Missing amount")
    try:
        return Decimal(element.text.strip()), element.get("Ccy")
    except InvalidOperation:
        raise MessageParseError(f"Invalid amount '{element.text}'") from None


def namespace_of(xml_content: str) -> Optional[str]:
    """Default namespace of the document element, if the XML is well formed."""
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError:
        return None
    match = _NAMESPACE.match(root.tag)
    return match.group(1) if match else None


def parse_camt053(xml_content: str) -> list[Camt053Document]:
    """Read every statement of a camt.053 message.

    Raises:
        MessageParseError: If the XML is malformed or holds no statement
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise MessageParseError(f"Malformed XML: {e}") from None

    message = _child(root, "BkToCstmrStmt")
    statements = _children(message, "Stmt")
    if not statements:
        raise MessageParseError("No camt.053 statement found")

    message_id = _text(message, "GrpHdr", "MsgId")
    return [_statement(stmt, message_id) for stmt in statements]


def _statement(stmt: ET.Element, message_id: Optional[str]) -> Camt053Document:
    account = _child(stmt, "Acct")
    identifier = _text(account, "Id", "IBAN") or _text(account, "Id", "Othr", "Id")
    if identifier is None:
        raise MessageParseError("Statement without account identifier")
    created = _text(stmt, "CreDtTm")
    try:
        creation = datetime.fromisoformat(created.replace("Z", "+00:00")) if created else datetime.now()
    except ValueError:
        raise MessageParseError(f"Invalid creation time '{created}'") from None

    opening = closing = None
    for element in _children(stmt, "Bal"):
        balance = _balance(element)
        if balance is None:
            continue
        if balance.is_opening and opening is None:
            opening = balance
        elif balance.is_closing and closing is None:
            closing = balance

    servicer = _child(account, "Svcr", "FinInstnId")
    return Camt053Document(
        id=_text(stmt, "Id") or "",
        creation_date_time=creation,
        account_identifier=identifier,
        currency=CurrencyCode.resolve_or_default(_text(account, "Ccy")),
        message_id=message_id,
        account_owner=_text(account, "Ownr", "Nm"),
        servicer_bic=_text(servicer, "BICFI") or _text(servicer, "BIC"),
        sequence_number=_text(stmt, "ElctrncSeqNb") or _text(stmt, "LglSeqNb"),
        opening_balance=opening,
        closing_balance=closing,
        entries=tuple(_entry(ntry) for ntry in _children(stmt, "Ntry")),
    )


def _balance(element: ET.Element) -> Optional[Balance]:
    code = _text(element, "Tp", "CdOrPrtry", "Cd")
    try:
        balance_type = BalanceType(code)
    except ValueError:
        logger.debug("Ignoring balance of type %s", code)
        return None
    amount, currency = _amount(_child(element, "Amt"))
    return Balance(
        credit_debit=CreditDebit(_text(element, "CdtDbtInd")),
        date=_date(element, "Dt"),
        currency=currency or CurrencyCode.EUR,
        amount=amount,
        type=balance_type,
    )


def _entry(ntry: ET.Element) -> Transaction:
    amount, currency = _amount(_child(ntry, "Amt"))
    credit_debit = CreditDebit(_text(ntry, "CdtDbtInd"))
    booking_date = _date(ntry, "BookgDt")
    if booking_date is None:
        raise MessageParseError("Entry without booking date")

    details = _child(ntry, "NtryDtls", "TxDtls")
    refs = _child(details, "Refs")
    role = "Dbtr" if credit_debit is CreditDebit.CREDIT else "Cdtr"
    parties = _child(details, "RltdPties")
    party = _child(parties, role)
    if _child(party, "Pty") is not None:
        party = _child(party, "Pty")
    creditor = _child(parties, "Cdtr")
    if _child(creditor, "Pty") is not None:
        creditor = _child(creditor, "Pty")
    agent = _child(details, "RltdAgts", role + "Agt", "FinInstnId")

    remittance = [
        element.text for element in _children(_child(details, "RmtInf"), "Ustrd") if element.text
    ]
    status = _text(ntry, "Sts", "Cd") or _text(ntry, "Sts") or "BOOK"

    return Transaction(
        booking_date=booking_date,
        valuta_date=_date(ntry, "ValDt"),
        amount=amount,
        credit_debit=credit_debit,
        currency=currency or CurrencyCode.EUR,
        references=PaymentReferences(
            end_to_end_id=_text(refs, "EndToEndId"),
            mandate_id=_text(refs, "MndtId"),
            creditor_id=_text(creditor, "Id", "PrvtId", "Othr", "Id"),
            payment_information_id=_text(refs, "PmtInfId"),
            instruction_id=_text(refs, "InstrId"),
            uetr=_text(refs, "UETR"),
        ),
        purpose="".join(remittance) or None,
        counterparty=Counterparty(
            name=_text(party, "Nm"),
            iban=_text(parties, role + "Acct", "Id", "IBAN"),
            bic=_text(agent, "BICFI") or _text(agent, "BIC"),
        ),
        entry_reference=_text(ntry, "NtryRef"),
        account_servicer_reference=_text(ntry, "AcctSvcrRef"),
        transaction_code=_text(ntry, "BkTxCd", "Prtry", "Cd"),
        additional_info=_text(ntry, "AddtlNtryInf"),
        status=status,
        is_reversal=_text(ntry, "RvslInd") == "true",
    )
