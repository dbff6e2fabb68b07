"""Tests for the DATEV <-> camt.053 statement converters."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from bankconv.domain.camt import Camt053Document
from bankconv.domain.camt_converter import (
    CamtToDatevConverter,
    DatevToCamtConverter,
    build_purpose_text,
    derive_iban,
    entry_reference,
)
from bankconv.domain.datev import BankTransactionField as F, DatevDocument, purpose_values
from bankconv.domain.entities import PaymentReferences, Transaction
from bankconv.domain.enums import BalanceType, CreditDebit
from bankconv.domain.errors import DocumentEmpty, NoValidTransactions


@pytest.fixture
def converter(fixed_clock):
    return DatevToCamtConverter(clock=fixed_clock)


class TestDatevToCamt:
    """Tests for DatevToCamtConverter.convert()."""

    def test_credit_row(self, converter, credit_line):
        """Test the booking of a single credit row."""
        statement = converter.convert(DatevDocument.from_lines([credit_line]))
        entry = statement.entries[0]
        assert entry.amount == Decimal("1000.50")
        assert entry.credit_debit is CreditDebit.CREDIT
        assert entry.booking_date == date(2025, 1, 15)
        assert entry.valuta_date == date(2025, 1, 15)
        assert entry.transaction_code == "166"
        assert entry.additional_info == "GUTSCHRIFT"
        assert entry.purpose == "EREF+ORDER12345 Rechnung 4711"
        assert entry.references.end_to_end_id == "ORDER12345"

    def test_account_identity(self, converter, datev_document):
        """Test account identifier, statement id and sequence number."""
        statement = converter.convert(datev_document)
        assert statement.account_identifier == "DE89370400440532013000"
        assert statement.servicer_bic is None
        assert statement.sequence_number == "0001"
        assert statement.id == "CAMT053DE893704004405320130000001"
        assert statement.message_id.startswith("CAMT05320250131120000")
        assert statement.creation_date_time == datetime(2025, 1, 31, 12, 0, 0)

    def test_iban_derived_from_account_number(self, converter, datev_line):
        """Test that a plain account number is turned into an IBAN."""
        document = DatevDocument.from_lines([datev_line(account_number="532013000")])
        assert converter.convert(document).account_identifier == "DE89370400440532013000"

    def test_bic_as_bank_code(self, converter, datev_line):
        """Test that a BIC in the bank code field becomes the servicer BIC."""
        document = DatevDocument.from_lines([datev_line(account_bank_code="COBADEFFXXX")])
        assert converter.convert(document).servicer_bic == "COBADEFFXXX"

    def test_counterparties(self, converter, datev_document):
        """Test names, IBANs and BICs of both rows."""
        credit, debit = converter.convert(datev_document).entries
        assert credit.counterparty.name == "Max Mustermann"
        assert credit.counterparty.iban == "DE02120300000000202051"
        assert credit.counterparty.bic == "COBADEFFXXX"
        assert debit.counterparty.name == "Stadtwerke Muster GmbH"
        assert debit.counterparty.iban == "DE89370400440532013000"
        assert debit.counterparty.bic is None

    def test_balances(self, converter, datev_document):
        """Test opening and closing balance from the running total."""
        statement = converter.convert(datev_document)
        assert statement.opening_balance.amount == Decimal("0")
        assert statement.opening_balance.type is BalanceType.PREVIOUSLY_CLOSED_BOOKED
        assert statement.opening_balance.date == date(2025, 1, 15)
        assert statement.closing_balance.signed_amount == Decimal("750.50")
        assert statement.closing_balance.type is BalanceType.CLOSING_BOOKED
        assert statement.closing_balance.date == date(2025, 1, 16)

    def test_negative_opening_balance(self, converter, datev_document):
        """Test that the closing sign follows the total."""
        statement = converter.convert(datev_document, Decimal("-1000"))
        assert statement.opening_balance.credit_debit is CreditDebit.DEBIT
        assert statement.closing_balance.credit_debit is CreditDebit.DEBIT
        assert statement.closing_balance.amount == Decimal("249.50")

    def test_entry_reference_is_deterministic(self, converter, datev_document):
        """Test that the entry reference depends only on date and amount."""
        first = converter.convert(datev_document).entries[0].entry_reference
        second = DatevToCamtConverter().convert(datev_document).entries[0].entry_reference
        assert first == second
        assert first.startswith("150125")
        assert len(first) <= 25
        assert first == entry_reference(date(2025, 1, 15), "15012025", "1000,50")

    def test_foreign_currency(self, converter, datev_line):
        """Test that the row currency is used."""
        statement = converter.convert(DatevDocument.from_lines([datev_line(currency="USD")]))
        assert statement.currency.value == "USD"
        assert statement.closing_balance.currency.value == "USD"


class TestRowSkipping:
    """Tests for rows that are skipped instead of failing."""

    def test_bad_rows_are_skipped(self, converter, credit_line, datev_line):
        """Test that defective rows do not abort the statement."""
        document = DatevDocument.from_lines(
            [
                credit_line,
                datev_line(booking_date=""),
                datev_line(amount=""),
                datev_line(amount="viel"),
                '"37040044";"DE89370400440532013000";1',
            ]
        )
        statement = converter.convert(document)
        assert len(statement.entries) == 1
        assert statement.closing_balance.amount == Decimal("1000.50")

    def test_short_code_defaults_to_trf(self, converter, datev_line):
        """Test the default transaction code."""
        statement = converter.convert(DatevDocument.from_lines([datev_line(transaction_code="")]))
        assert statement.entries[0].transaction_code == "TRF"

    def test_empty_document(self, converter):
        """Test that a document without rows raises DocumentEmpty."""
        with pytest.raises(DocumentEmpty):
            converter.convert(DatevDocument())

    def test_no_valid_rows(self, converter, datev_line):
        """Test that a document of unusable rows raises NoValidTransactions."""
        document = DatevDocument.from_lines([datev_line(booking_date=""), datev_line(booking_date="")])
        with pytest.raises(NoValidTransactions) as exc_info:
            converter.convert(document)
        assert "2 rows skipped" in str(exc_info.value)


class TestConvertMultiple:
    """Tests for balance chaining across documents."""

    def test_closing_balance_opens_next_statement(self, converter, datev_line):
        """Test the left-to-right balance fold."""
        documents = [
            DatevDocument.from_lines([datev_line(amount="100,00")]),
            DatevDocument.from_lines([datev_line(amount="-300,00")]),
            DatevDocument.from_lines([datev_line(amount="50,00")]),
        ]
        statements = converter.convert_multiple(documents, Decimal("10"))
        assert len(statements) == 3
        for previous, following in zip(statements, statements[1:]):
            assert following.opening_balance.amount == previous.closing_balance.amount
            assert following.opening_balance.credit_debit is previous.closing_balance.credit_debit
        assert statements[1].closing_balance.signed_amount == Decimal("-190.00")
        assert statements[2].closing_balance.signed_amount == Decimal("-140.00")

    def test_failed_document_is_skipped(self, converter, datev_line):
        """Test that an empty document is dropped and the balance carries over."""
        documents = [
            DatevDocument.from_lines([datev_line(amount="100,00")]),
            DatevDocument(),
            DatevDocument.from_lines([datev_line(amount="5,00")]),
        ]
        statements = converter.convert_multiple(documents)
        assert len(statements) == 2
        assert statements[1].opening_balance.amount == Decimal("100.00")
        assert statements[1].closing_balance.amount == Decimal("105.00")

    def test_unusable_items_are_skipped(self, converter, datev_line):
        """Test that None, a wrong type and an empty document do not stop the batch."""
        documents = [
            DatevDocument.from_lines([datev_line(amount="100,00")]),
            None,
            "garbage",
            DatevDocument(),
            DatevDocument.from_lines([datev_line(amount="5,00")]),
        ]
        skipped = []
        statements = converter.convert_multiple(
            documents, on_skip=lambda index, error: skipped.append((index, type(error)))
        )
        assert len(statements) == 2
        assert statements[1].opening_balance.amount == Decimal("100.00")
        assert statements[1].closing_balance.amount == Decimal("105.00")
        assert skipped == [(1, AttributeError), (2, AttributeError), (3, DocumentEmpty)]

    def test_account_owner_on_every_statement(self, converter, datev_document):
        """Test that the owner is passed to each converted document."""
        statements = converter.convert_multiple([datev_document, datev_document], account_owner="Muster AG")
        assert [s.account_owner for s in statements] == ["Muster AG", "Muster AG"]


class TestDeriveIban:
    """Tests for derive_iban()."""

    def test_iban_passes_through(self):
        """Test that an IBAN is returned compacted."""
        assert derive_iban("", "DE89 3704 0044 0532 0130 00") == "DE89370400440532013000"

    def test_generated(self):
        """Test building an IBAN from BLZ and account."""
        assert derive_iban("37040044", "532013000") == "DE89370400440532013000"

    def test_not_derivable(self):
        """Test that unusable input gives None."""
        assert derive_iban("COBADEFFXXX", "532013000") is None
        assert derive_iban("37040044", "") is None


class TestBuildPurposeText:
    """Tests for build_purpose_text()."""

    def _entry(self, purpose="Rechnung 4711", **references):
        return Transaction(
            booking_date=date(2025, 1, 15),
            amount=Decimal("1"),
            credit_debit=CreditDebit.CREDIT,
            references=PaymentReferences(**references),
            purpose=purpose,
        )

    def test_bare_purpose_without_keywords(self):
        """Test that free text stays bare when no keyword part is written."""
        assert build_purpose_text(self._entry()) == "Rechnung 4711"

    def test_svwz_after_keywords(self):
        """Test that free text gets SVWZ+ after keyword parts."""
        entry = self._entry(end_to_end_id="E1", mandate_id="M1", creditor_id="C1")
        assert build_purpose_text(entry) == "EREF+E1 MREF+M1 CRED+C1 SVWZ+Rechnung 4711"

    def test_not_provided_is_ignored(self):
        """Test that the NOTPROVIDED placeholder is not a keyword part."""
        entry = self._entry(end_to_end_id="NOTPROVIDED")
        assert build_purpose_text(entry) == "Rechnung 4711"

    def test_keywords_only(self):
        """Test an entry without free text."""
        assert build_purpose_text(self._entry(purpose=None, end_to_end_id="E1")) == "EREF+E1"


class TestCamtToDatev:
    """Tests for CamtToDatevConverter."""

    def test_shared_statement_fields(self, camt_document):
        """Test the account fields repeated on every row."""
        record = CamtToDatevConverter().convert(camt_document).records[0]
        assert record.text(F.ACCOUNT_BANK_CODE) == "COBADEFFXXX"
        assert record.text(F.ACCOUNT_NUMBER) == "DE89370400440532013000"
        assert record.text(F.STATEMENT_NUMBER) == "0001"
        assert record.text(F.STATEMENT_DATE) == "31.01.2025"

    def test_bank_code_from_iban(self, camt_document):
        """Test the BLZ taken from the IBAN when no servicer BIC is known."""
        document = Camt053Document(
            id="S1",
            creation_date_time=camt_document.creation_date_time,
            account_identifier="DE89370400440532013000",
            entries=camt_document.entries,
        )
        record = CamtToDatevConverter().convert(document).records[0]
        assert record.text(F.ACCOUNT_BANK_CODE) == "37040044"
        assert record.text(F.STATEMENT_NUMBER) == "000"

    def test_entry_fields(self, camt_document):
        """Test amount, dates, payer and purpose of a row."""
        record = CamtToDatevConverter().convert(camt_document).records[0]
        assert record.width == 34
        assert record.text(F.AMOUNT) == "+1000,50"
        assert record.text(F.BOOKING_DATE) == "15.01.2025"
        assert record.text(F.VALUTA_DATE) == "15.01.2025"
        assert record.text(F.PAYER_NAME_1) == "Max Mustermann"
        assert record.text(F.PAYER_BANK_CODE) == "COBADEFFXXX"
        assert record.text(F.PAYER_ACCOUNT) == "DE02120300000000202051"
        assert record.text(F.TRANSACTION_CODE) == "166"
        assert record.text(F.CURRENCY) == "EUR"
        assert record.text(F.BOOKING_TEXT) == "GUTSCHRIFT"
        assert " ".join(purpose_values(record)) == (
            "EREF+ORDER12345 MREF+MANDATE1 CRED+DE98ZZZ09999999999 SVWZ+Rechnung 4711"
        )

    def test_forward_then_reverse(self, converter, datev_document):
        """Test that amounts, dates and payers survive DATEV -> camt.053 -> DATEV."""
        result = CamtToDatevConverter().convert(converter.convert(datev_document))
        assert [r.text(F.AMOUNT) for r in result.records] == ["+1000,50", "-250,00"]
        assert [r.text(F.BOOKING_DATE) for r in result.records] == ["15.01.2025", "16.01.2025"]
        assert result.records[1].text(F.PAYER_NAME_1) == "Stadtwerke Muster GmbH"
        assert result.records[1].text(F.BOOKING_TEXT) == "LASTSCHRIFT"

    def test_convert_multiple_skips_unusable_items(self, camt_document):
        """Test that None, a wrong type and a broken statement are left out."""
        broken = Camt053Document(id="BROKEN", creation_date_time=None, account_identifier="X")
        skipped = []
        results = CamtToDatevConverter().convert_multiple(
            [camt_document, None, "garbage", broken, camt_document],
            on_skip=lambda index, error: skipped.append((index, type(error))),
        )
        assert len(results) == 2
        assert all(len(document) == 1 for document in results)
        assert skipped == [(1, AttributeError), (2, AttributeError), (3, AttributeError)]
