"""DATEV bank transaction document."""

import logging
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Iterable, Optional, Sequence

from bankconv.domain.entities import FieldValue, Record
from bankconv.domain.field_codec import decode, encode_line
from bankconv.domain.registry import (
    BANK_TRANSACTION,
    HEADER_TAGS,
    FieldRegistry,
    detect_registry,
    get_registry,
)
from bankconv.utils.tokenizer import tokenize

logger = logging.getLogger(__name__)

BANK_TRANSACTION_LAYOUT = get_registry(BANK_TRANSACTION)

BankTransactionField = IntEnum(
    "BankTransactionField",
    {d.name.upper(): d.position for d in BANK_TRANSACTION_LAYOUT.fields},
)

# Purpose fields 1-14 in reading order (positions 12-15, 19-24, 31-34)
PURPOSE_POSITIONS = tuple(BANK_TRANSACTION_LAYOUT.positions("purpose_"))


def purpose_values(record: Record, count: int = len(PURPOSE_POSITIONS)) -> list[str]:
    """Non-empty purpose fields of a row, in reading order."""
    values = (record.text(p) for p in PURPOSE_POSITIONS[:count])
    return [value for value in values if value]


def build_record(values: dict[int, str], purpose_lines: Sequence[str] = ()) -> Record:
    """Create a full-width bank transaction row.

    Purpose lines beyond the 14 purpose fields are dropped.
    """
    fields = [FieldValue()] * len(BANK_TRANSACTION_LAYOUT)
    for pos, value in values.items():
        fields[pos - 1] = FieldValue(value=value)
    for pos, line in zip(PURPOSE_POSITIONS, purpose_lines):
        fields[pos - 1] = FieldValue(value=line)
    return Record(fields=tuple(fields))


@dataclass(frozen=True)
class DatevDocument:
    """Ordered bank transaction rows, optionally preceded by a format header."""

    records: tuple[Record, ...] = ()
    registry: FieldRegistry = BANK_TRANSACTION_LAYOUT
    header: Optional[Record] = None
    header_registry: Optional[FieldRegistry] = None
    source_name: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        delimiter: str = ";",
        quote: str = '"',
        source_name: Optional[str] = None,
    ) -> "DatevDocument":
        """Read a document from text lines.

        Blank lines and a column-caption line are ignored. A leading EXTF/DTVF
        line is kept as the format header.
        """
        records = []
        header = None
        header_registry = None
        caption = BANK_TRANSACTION_LAYOUT.fields[0].label

        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            tokens = tokenize(line, delimiter=delimiter, quote=quote)
            if tokens[0][0] in HEADER_TAGS:
                detected = detect_registry(tokens)
                if detected is None:
                    logger.warning("Line %d: unsupported DATEV header ignored", line_number)
                elif header is None and not records:
                    header, header_registry = decode(tokens, detected), detected
                continue
            if tokens[0][0].strip() == caption:
                continue
            records.append(decode(tokens, BANK_TRANSACTION_LAYOUT))

        return cls(
            records=tuple(records),
            header=header,
            header_registry=header_registry,
            source_name=source_name,
        )

    @classmethod
    def from_text(cls, text: str, **kwargs) -> "DatevDocument":
        return cls.from_lines(text.splitlines(), **kwargs)

    def to_lines(self, delimiter: str = ";", quote: str = '"') -> list[str]:
        lines = []
        if self.header is not None and self.header_registry is not None:
            lines.append(encode_line(self.header, self.header_registry, delimiter, quote))
        lines.extend(encode_line(record, self.registry, delimiter, quote) for record in self.records)
        return lines

    def to_text(self, newline: str = "\r\n") -> str:
        lines = self.to_lines()
        return newline.join(lines) + newline if lines else ""

    def with_record(self, record: Record) -> "DatevDocument":
        """Return a new document with ``record`` appended."""
        return replace(self, records=self.records + (record,))

    def __len__(self) -> int:
        return len(self.records)

    def is_empty(self) -> bool:
        return not self.records

    def get(self, row: int, name: str) -> str:
        """Stripped value of field ``name`` in row ``row`` (0-based)."""
        return self.records[row].text(self.registry.position_of(name))

    def _first(self, name: str) -> Optional[str]:
        if not self.records:
            return None
        return self.get(0, name) or None

    @property
    def bank_code(self) -> Optional[str]:
        """BLZ or BIC of the account holder."""
        return self._first("account_bank_code")

    @property
    def account_number(self) -> Optional[str]:
        """Account number or IBAN of the account holder."""
        return self._first("account_number")

    @property
    def statement_number(self) -> Optional[str]:
        return self._first("statement_number")

    @property
    def statement_date(self) -> Optional[str]:
        return self._first("statement_date")

    def validate(self) -> list[str]:
        """Layout violations of every row, prefixed with the row number."""
        errors = []
        if self.header is not None and self.header_registry is not None:
            errors.extend(f"Header: {e}" for e in self.header_registry.validate(self.header))
        for index, record in enumerate(self.records, start=1):
            errors.extend(f"Row {index}: {e}" for e in self.registry.validate(record))
        return errors
