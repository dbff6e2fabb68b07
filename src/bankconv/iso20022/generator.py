"""camt.053 XML generation with ElementTree."""

import xml.etree.ElementTree as ET
from datetime import datetime
from decimal import Decimal
from typing import Optional

from bankconv.domain.balance import Balance
from bankconv.domain.camt import Camt053Document
from bankconv.domain.entities import Transaction
from bankconv.domain.enums import CamtVersion
from bankconv.utils.bank_helper import is_iban
from bankconv.utils.text import chunk_text

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
MAX_UNSTRUCTURED_LENGTH = 140


def _sub(parent: ET.Element, tag: str, text: Optional[str] = None, **attrib) -> ET.Element:
    element = ET.SubElement(parent, tag, attrib)
    if text is not None:
        element.text = text
    return element


def _amount(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):f}"


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


class Camt053XmlGenerator:
    """Renders a Camt053Document as a namespaced camt.053 message."""

    def generate(self, document: Camt053Document, version: CamtVersion = CamtVersion.V02) -> str:
        root = ET.Element("Document", {"xmlns": version.namespace})
        statement_root = _sub(root, "BkToCstmrStmt")

        header = _sub(statement_root, "GrpHdr")
        _sub(header, "MsgId", document.effective_message_id)
        _sub(header, "CreDtTm", _timestamp(document.creation_date_time))

        stmt = _sub(statement_root, "Stmt")
        _sub(stmt, "Id", document.id)
        if document.sequence_number and document.sequence_number.isdigit():
            _sub(stmt, "ElctrncSeqNb", str(int(document.sequence_number)))
        _sub(stmt, "CreDtTm", _timestamp(document.creation_date_time))
        self._account(stmt, document, version)

        for balance in (document.opening_balance, document.closing_balance):
            if balance is not None:
                self._balance(stmt, balance)
        for entry in document.entries:
            self._entry(stmt, entry, version)

        ET.indent(root)
        return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"

    def _bic(self, parent: ET.Element, bic: str, version: CamtVersion):
        institution = _sub(parent, "FinInstnId")
        _sub(institution, "BICFI" if version.uses_bicfi else "BIC", bic)

    def _account(self, stmt: ET.Element, document: Camt053Document, version: CamtVersion):
        account = _sub(stmt, "Acct")
        account_id = _sub(account, "Id")
        if is_iban(document.account_identifier):
            _sub(account_id, "IBAN", document.account_identifier)
        else:
            other = _sub(account_id, "Othr")
            _sub(other, "Id", document.account_identifier)
        _sub(account, "Ccy", document.currency.value)
        if document.account_owner:
            owner = _sub(account, "Ownr")
            _sub(owner, "Nm", document.account_owner)
        if document.servicer_bic:
            self._bic(_sub(account, "Svcr"), document.servicer_bic, version)

    def _balance(self, stmt: ET.Element, balance: Balance):
        element = _sub(stmt, "Bal")
        code = _sub(_sub(element, "Tp"), "CdOrPrtry")
        _sub(code, "Cd", balance.type.value)
        _sub(element, "Amt", _amount(balance.amount), Ccy=balance.currency.value)
        _sub(element, "CdtDbtInd", balance.credit_debit.value)
        _sub(_sub(element, "Dt"), "Dt", balance.date.isoformat())

    def _entry(self, stmt: ET.Element, entry: Transaction, version: CamtVersion):
        ntry = _sub(stmt, "Ntry")
        if entry.entry_reference:
            _sub(ntry, "NtryRef", entry.entry_reference)
        _sub(ntry, "Amt", _amount(entry.amount), Ccy=entry.currency.value)
        _sub(ntry, "CdtDbtInd", entry.credit_debit.value)
        if entry.is_reversal:
            _sub(ntry, "RvslInd", "true")
        if version is CamtVersion.V08:
            _sub(_sub(ntry, "Sts"), "Cd", entry.status)
        else:
            _sub(ntry, "Sts", entry.status)
        _sub(_sub(ntry, "BookgDt"), "Dt", entry.booking_date.isoformat())
        if entry.valuta_date:
            _sub(_sub(ntry, "ValDt"), "Dt", entry.valuta_date.isoformat())
        if entry.account_servicer_reference:
            _sub(ntry, "AcctSvcrRef", entry.account_servicer_reference)
        if entry.transaction_code:
            _sub(_sub(_sub(ntry, "BkTxCd"), "Prtry"), "Cd", entry.transaction_code)

        details = _sub(_sub(ntry, "NtryDtls"), "TxDtls")
        self._references(details, entry, version)
        self._parties(details, entry, version)
        if entry.purpose:
            remittance = _sub(details, "RmtInf")
            for chunk in chunk_text(entry.purpose, MAX_UNSTRUCTURED_LENGTH):
                _sub(remittance, "Ustrd", chunk)

        if entry.additional_info:
            _sub(ntry, "AddtlNtryInf", entry.additional_info)

    def _references(self, details: ET.Element, entry: Transaction, version: CamtVersion):
        references = entry.references
        values = [
            ("PmtInfId", references.payment_information_id),
            ("InstrId", references.instruction_id),
            ("EndToEndId", references.end_to_end_id),
            ("UETR", references.uetr if version.supports_uetr else None),
            ("MndtId", references.mandate_id),
        ]
        if not any(value for _, value in values):
            return
        refs = _sub(details, "Refs")
        for tag, value in values:
            if value:
                _sub(refs, tag, value)

    def _parties(self, details: ET.Element, entry: Transaction, version: CamtVersion):
        """Counterparty as debtor of a credit entry or creditor of a debit entry.

        A creditor identifier always describes the creditor side.
        """
        counterparty = entry.counterparty
        creditor_id = entry.references.creditor_id
        if counterparty.is_empty() and not creditor_id:
            return

        role = "Dbtr" if entry.is_credit else "Cdtr"
        parties = _sub(details, "RltdPties")
        if counterparty.name or (creditor_id and role == "Cdtr"):
            party = self._party(parties, role, version)
            if counterparty.name:
                _sub(party, "Nm", counterparty.name)
            if creditor_id and role == "Cdtr":
                self._creditor_id(party, creditor_id)
        if counterparty.iban:
            _sub(_sub(_sub(parties, role + "Acct"), "Id"), "IBAN", counterparty.iban)
        if creditor_id and role == "Dbtr":
            self._creditor_id(self._party(parties, "Cdtr", version), creditor_id)
        if counterparty.bic:
            agents = _sub(details, "RltdAgts")
            self._bic(_sub(agents, role + "Agt"), counterparty.bic, version)

    def _creditor_id(self, party: ET.Element, creditor_id: str):
        other = _sub(_sub(_sub(party, "Id"), "PrvtId"), "Othr")
        _sub(other, "Id", creditor_id)
        _sub(_sub(other, "SchmeNm"), "Prtry", "SEPA")

    def _party(self, parties: ET.Element, role: str, version: CamtVersion) -> ET.Element:
        party = _sub(parties, role)
        if version is CamtVersion.V08:
            return _sub(party, "Pty")
        return party
