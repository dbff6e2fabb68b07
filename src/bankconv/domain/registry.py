"""Field layouts of the supported DATEV record formats.

Each layout is one descriptor table; the codec in ``field_codec`` is driven
by these tables and holds no per-format logic.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from bankconv.domain.entities import FieldDefinition, Record
from bankconv.utils.tokenizer import Token

logger = logging.getLogger(__name__)

BANK_TRANSACTION = "bank-transaction"
HEADER_V700 = "header-700"

HEADER_TAGS = ("EXTF", "DTVF")

MIN_TRANSACTION_FIELDS = 7

_PURPOSE = r"^.{0,27}$"
_AMOUNT = r"^[+-]?\d{1,13}([.,]\d{2})?$"
_CURRENCY = r"^[A-Z]{3}$"
_DATE = r"^.{6,10}$"

# (name, label, max_length, quoted, pattern, required)
_BANK_TRANSACTION_FIELDS = [
    ("account_bank_code", "BLZ/BIC Kontoinhaber", 11, True, r"^(\d{5}|\d{8}|[A-Z0-9]{8}|[A-Z0-9]{11})$", True),
    ("account_number", "Kontonummer/IBAN Kontoinhaber", 34, True, r"^[A-Za-z0-9 ]{1,34}$", True),
    ("statement_number", "Auszugsnummer", 4, False, r"^\d{0,4}$", False),
    ("statement_date", "Auszugsdatum", 10, False, _DATE, False),
    ("valuta_date", "Valuta", 10, False, _DATE, False),
    ("booking_date", "Buchungsdatum", 10, False, _DATE, True),
    ("amount", "Umsatz", 15, False, _AMOUNT, True),
    ("payer_name_1", "Auftraggebername 1", 27, True, None, False),
    ("payer_name_2", "Auftraggebername 2", 27, True, None, False),
    ("payer_bank_code", "BLZ/BIC Auftraggeber", 11, True, None, False),
    ("payer_account", "Kontonummer/IBAN Auftraggeber", 34, True, None, False),
    ("purpose_1", "Verwendungszweck 1", 27, True, _PURPOSE, False),
    ("purpose_2", "Verwendungszweck 2", 27, True, _PURPOSE, False),
    ("purpose_3", "Verwendungszweck 3", 27, True, _PURPOSE, False),
    ("purpose_4", "Verwendungszweck 4", 27, True, _PURPOSE, False),
    ("transaction_code", "Geschäftsvorgangscode", 3, True, r"^[A-Z0-9]{0,3}$", False),
    ("currency", "Währung", 3, True, _CURRENCY, False),
    ("booking_text", "Buchungstext", 27, True, _PURPOSE, False),
    ("purpose_5", "Verwendungszweck 5", 27, True, _PURPOSE, False),
    ("purpose_6", "Verwendungszweck 6", 27, True, _PURPOSE, False),
    ("purpose_7", "Verwendungszweck 7", 27, True, _PURPOSE, False),
    ("purpose_8", "Verwendungszweck 8", 27, True, _PURPOSE, False),
    ("purpose_9", "Verwendungszweck 9", 27, True, _PURPOSE, False),
    ("purpose_10", "Verwendungszweck 10", 27, True, _PURPOSE, False),
    ("original_amount", "Ursprungsbetrag", 15, False, _AMOUNT, False),
    ("original_currency", "Währung Ursprungsbetrag", 3, True, _CURRENCY, False),
    ("equivalent_amount", "Äquivalenzbetrag", 15, False, _AMOUNT, False),
    ("equivalent_currency", "Währung Äquivalenzbetrag", 3, True, _CURRENCY, False),
    ("fee", "Gebühr", 15, False, _AMOUNT, False),
    ("fee_currency", "Währung Gebühr", 3, True, _CURRENCY, False),
    ("purpose_11", "Verwendungszweck 11", 27, True, _PURPOSE, False),
    ("purpose_12", "Verwendungszweck 12", 27, True, _PURPOSE, False),
    ("purpose_13", "Verwendungszweck 13", 27, True, _PURPOSE, False),
    ("purpose_14", "Verwendungszweck 14", 27, True, _PURPOSE, False),
]

_HEADER_V700_FIELDS = [
    ("tag", "Kennzeichen", 4, True, r"^(EXTF|DTVF)$", True),
    ("version", "Versionsnummer", 3, False, r"^(700)$", True),
    ("format_category", "Formatkategorie", 2, False, r"^(16|20|21|46|48|65|66)$", True),
    ("format_name", "Formatname", 40, True, None, True),
    ("format_version", "Formatversion", 3, False, r"^\d{1,3}$", True),
    ("created_at", "Erzeugt am", 17, False, r"^\d{17}$", False),
    ("imported", "Importiert", 17, False, None, False),
    ("origin", "Herkunft", 2, True, r"^[A-Za-z0-9]{0,2}$", False),
    ("exported_by", "Exportiert von", 25, True, None, False),
    ("imported_by", "Importiert von", 25, True, None, False),
    ("advisor_number", "Beraternummer", 7, False, r"^\d{4,7}$", False),
    ("client_number", "Mandantennummer", 5, False, r"^\d{1,5}$", False),
    ("fiscal_year_start", "WJ-Beginn", 8, False, r"^\d{8}$", False),
    ("account_length", "Sachkontenlänge", 1, False, r"^[4-8]$", False),
    ("date_from", "Datum vom", 8, False, r"^\d{8}$", False),
    ("date_to", "Datum bis", 8, False, r"^\d{8}$", False),
    ("description", "Bezeichnung", 30, True, None, False),
    ("dictation_code", "Diktatkürzel", 2, True, None, False),
    ("booking_type", "Buchungstyp", 1, False, r"^[12]$", False),
    ("accounting_purpose", "Rechnungslegungszweck", 2, False, r"^\d{1,2}$", False),
    ("locked", "Festschreibung", 1, False, r"^[01]$", False),
    ("currency", "WKZ", 3, True, _CURRENCY, False),
    ("reserved_23", "Reserviert", None, False, None, False),
    ("derivative_code", "Derivatskennzeichen", None, True, None, False),
    ("reserved_25", "Reserviert", None, False, None, False),
    ("reserved_26", "Reserviert", None, False, None, False),
    ("chart_of_accounts", "Sachkontenrahmen", 2, True, r"^\d{2}$", False),
    ("industry_solution_id", "ID der Branchenlösung", 4, False, r"^\d{0,4}$", False),
    ("reserved_29", "Reserviert", None, False, None, False),
    ("reserved_30", "Reserviert", None, True, None, False),
    ("application_info", "Anwendungsinformation", 16, True, None, False),
]


@dataclass(frozen=True)
class FieldRegistry:
    """Ordered field descriptors of one record format version."""

    key: str
    description: str
    fields: tuple[FieldDefinition, ...]

    def __len__(self) -> int:
        return len(self.fields)

    def definition(self, position: int) -> Optional[FieldDefinition]:
        if 1 <= position <= len(self.fields):
            return self.fields[position - 1]
        return None

    def position_of(self, name: str) -> int:
        """Return the 1-based position of the field called ``name``.

        Raises:
            KeyError: If the layout has no such field
        """
        for definition in self.fields:
            if definition.name == name:
                return definition.position
        raise KeyError(f"Layout '{self.key}' has no field '{name}'")

    def positions(self, prefix: str) -> list[int]:
        """Positions of all fields whose name starts with ``prefix``, in name order."""
        matches = [d for d in self.fields if d.name.startswith(prefix)]
        return [d.position for d in sorted(matches, key=lambda d: _name_order(d.name))]

    def validate(self, record: Record) -> list[str]:
        """Check a record against the layout.

        Returns:
            List of violation messages, empty when the record conforms
        """
        errors = []
        for definition in self.fields:
            message = definition.check(record.text(definition.position))
            if message:
                errors.append(f"Field {definition.position} ({message})")
        return errors


def _name_order(name: str) -> tuple[str, int]:
    stem, _, number = name.rpartition("_")
    return (stem, int(number)) if number.isdigit() else (name, 0)


def _build(key: str, description: str, rows: list) -> FieldRegistry:
    fields = tuple(
        FieldDefinition(
            position=position,
            name=name,
            label=label,
            max_length=max_length,
            quoted=quoted,
            pattern=pattern,
            required=required,
        )
        for position, (name, label, max_length, quoted, pattern, required) in enumerate(rows, start=1)
    )
    return FieldRegistry(key=key, description=description, fields=fields)


REGISTRIES = {
    BANK_TRANSACTION: _build(BANK_TRANSACTION, "DATEV ASCII Bankumsätze", _BANK_TRANSACTION_FIELDS),
    HEADER_V700: _build(HEADER_V700, "DATEV Formatheader Version 700", _HEADER_V700_FIELDS),
}


def get_registry(key: str) -> FieldRegistry:
    """Look up a layout by key.

    Raises:
        KeyError: If no layout is registered under ``key``
    """
    try:
        return REGISTRIES[key]
    except KeyError:
        raise KeyError(f"Unknown DATEV layout '{key}'") from None


def detect_registry(tokens: Sequence[Token]) -> Optional[FieldRegistry]:
    """Pick the layout of a tokenised line.

    A format header starts with EXTF or DTVF followed by a numeric version;
    any other line with 7 to 34 fields is read as a bank transaction row.
    """
    if len(tokens) >= 2 and tokens[0][0] in HEADER_TAGS:
        version = tokens[1][0].strip()
        if version.isdigit():
            registry = REGISTRIES.get(f"header-{version}")
            if registry is None:
                logger.debug("No layout for DATEV header version %s", version)
            return registry
        return None
    if MIN_TRANSACTION_FIELDS <= len(tokens) <= len(REGISTRIES[BANK_TRANSACTION]):
        return REGISTRIES[BANK_TRANSACTION]
    return None
