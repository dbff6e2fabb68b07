"""Shared pytest fixtures for bankconv tests."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from bankconv.domain.balance import Balance
from bankconv.domain.camt import Camt053Document
from bankconv.domain.datev import BANK_TRANSACTION_LAYOUT, DatevDocument
from bankconv.domain.entities import Counterparty, PaymentReferences, Transaction
from bankconv.domain.enums import BalanceType, CreditDebit
from bankconv.utils.tokenizer import render

ACCOUNT_IBAN = "DE89370400440532013000"
PAYER_IBAN = "DE02120300000000202051"

CREDIT_ROW = {
    "account_bank_code": "37040044",
    "account_number": ACCOUNT_IBAN,
    "statement_number": "0001",
    "statement_date": "15.01.2025",
    "valuta_date": "15.01.2025",
    "booking_date": "15012025",
    "amount": "1000,50",
    "payer_name_1": "Max Mustermann",
    "payer_bank_code": "COBADEFFXXX",
    "payer_account": PAYER_IBAN,
    "purpose_1": "EREF+ORDER12345",
    "purpose_2": "Rechnung 4711",
    "transaction_code": "166",
    "currency": "EUR",
    "booking_text": "GUTSCHRIFT",
}

DEBIT_ROW = {
    "account_bank_code": "37040044",
    "account_number": ACCOUNT_IBAN,
    "statement_number": "0001",
    "statement_date": "15.01.2025",
    "valuta_date": "16.01.2025",
    "booking_date": "16.01.2025",
    "amount": "-250,00",
    "payer_name_1": "Stadtwerke Muster",
    "payer_name_2": "GmbH",
    "payer_bank_code": "37040044",
    "payer_account": "532013000",
    "purpose_1": "SVWZ+Abschlag Januar",
    "transaction_code": "105",
    "currency": "EUR",
    "booking_text": "LASTSCHRIFT",
}


def _line(values: dict) -> str:
    """Render a bank transaction line the way a conformant writer quotes it."""
    tokens = [(values.get(d.name, ""), d.quoted) for d in BANK_TRANSACTION_LAYOUT.fields]
    return render(tokens)


@pytest.fixture
def datev_line():
    """Return a factory building DATEV lines from field-name overrides."""

    def make(base: dict = CREDIT_ROW, **overrides) -> str:
        values = dict(base)
        values.update(overrides)
        return _line(values)

    return make


@pytest.fixture
def credit_line():
    return _line(CREDIT_ROW)


@pytest.fixture
def debit_line():
    return _line(DEBIT_ROW)


@pytest.fixture
def datev_text(credit_line, debit_line):
    """Two-row DATEV file content with CRLF line ends."""
    return credit_line + "\r\n" + debit_line + "\r\n"


@pytest.fixture
def datev_document(datev_text):
    """DATEV document with one credit and one debit row."""
    return DatevDocument.from_text(datev_text)


@pytest.fixture
def datev_file(tmp_path, datev_text):
    """DATEV file on disk."""
    path = tmp_path / "statement.csv"
    path.write_text(datev_text, encoding="utf-8", newline="")
    return path


@pytest.fixture
def camt_entry():
    """Credit entry carrying references, counterparty and purpose."""
    return Transaction(
        booking_date=date(2025, 1, 15),
        valuta_date=date(2025, 1, 15),
        amount=Decimal("1000.50"),
        credit_debit=CreditDebit.CREDIT,
        references=PaymentReferences(
            end_to_end_id="ORDER12345",
            mandate_id="MANDATE1",
            creditor_id="DE98ZZZ09999999999",
        ),
        purpose="Rechnung 4711",
        counterparty=Counterparty(name="Max Mustermann", iban=PAYER_IBAN, bic="COBADEFFXXX"),
        entry_reference="1501250000000001",
        transaction_code="166",
        additional_info="GUTSCHRIFT",
    )


@pytest.fixture
def camt_document(camt_entry):
    """camt.053 statement with balances and one entry."""
    return Camt053Document(
        id="CAMT053DE893704004405320130000001",
        creation_date_time=datetime(2025, 1, 31, 12, 0, 0),
        account_identifier=ACCOUNT_IBAN,
        message_id="MSG0001",
        account_owner="Muster AG",
        servicer_bic="COBADEFFXXX",
        sequence_number="0001",
        opening_balance=Balance(
            credit_debit=CreditDebit.CREDIT,
            date=date(2025, 1, 15),
            currency="EUR",
            amount=Decimal("100.00"),
            type=BalanceType.PREVIOUSLY_CLOSED_BOOKED,
        ),
        closing_balance=Balance(
            credit_debit=CreditDebit.CREDIT,
            date=date(2025, 1, 15),
            currency="EUR",
            amount=Decimal("1100.50"),
            type=BalanceType.CLOSING_BOOKED,
        ),
        entries=(camt_entry,),
    )


@pytest.fixture
def fixed_clock():
    """Clock returning a constant timestamp."""
    return lambda: datetime(2025, 1, 31, 12, 0, 0)


MINIMAL_CAMT053_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.{version}"
           targetNamespace="urn:iso:std:iso:20022:tech:xsd:camt.053.001.{version}"
           elementFormDefault="qualified">
  <xs:element name="Document">
    <xs:complexType>
      <xs:sequence>
        <xs:element name="BkToCstmrStmt">
          <xs:complexType>
            <xs:sequence>
              <xs:any processContents="skip" minOccurs="0" maxOccurs="unbounded"/>
            </xs:sequence>
          </xs:complexType>
        </xs:element>
      </xs:sequence>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""


@pytest.fixture
def write_schema():
    """Return a function writing a minimal camt.053 schema file into a directory."""

    def write(directory, version: str = "02"):
        path = directory / f"camt.053.001.{version}.xsd"
        path.write_text(MINIMAL_CAMT053_XSD.format(version=version), encoding="utf-8")
        return path

    return write


@pytest.fixture
def schema_dir(tmp_path, write_schema):
    """Directory holding a minimal camt.053.001.02 schema."""
    directory = tmp_path / "schemas"
    directory.mkdir()
    write_schema(directory)
    return directory


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
