"""Structured multi-purpose field (MT940 :86:, DATEV continuation keys).

The field is a sequence of ``?NN`` subfields preceded by a header holding the
3-digit GVC code:

    166?00SEPA-LASTSCHRIFT?10931?20EREF+ORDER12345?21SVWZ+Rechnung 4711
    ?30DEUTDEFFXXX?31DE02120300000000202051?32Muster GmbH

Purpose lines occupy keys 20-29 and continue at 60-63; keys 30-34 carry the
payer and the text key extension, so purpose lines never use 30-59.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from bankconv.domain.errors import ValidationError
from bankconv.utils.text import SEGMENT_WIDTH, chunk_text

logger = logging.getLogger(__name__)

PURPOSE_KEYS = tuple(range(20, 30)) + tuple(range(60, 64))
MAX_PURPOSE_LINES = len(PURPOSE_KEYS)
SWIFT_LINE_LENGTH = 65
FIELD_TAG = ":86:"

BOOKING_TEXT_KEY = 0
DOCUMENT_NUMBER_KEY = 10
PAYER_BANK_CODE_KEY = 30
PAYER_ACCOUNT_KEY = 31
PAYER_NAME_1_KEY = 32
PAYER_NAME_2_KEY = 33
TEXT_KEY_EXTENSION_KEY = 34

_KEY_LINE = re.compile(r"^\?(\d{2})(.*)$", re.DOTALL)
_GVC_LINE = re.compile(r"^(\d{3})(.*)$", re.DOTALL)
_SUBFIELD_START = re.compile(r"(?=\?\d{2})")
_SUBFIELD_MARKER = re.compile(r"\?\d{2}")
_GVC_CODE = re.compile(r"^\d{3}$")


class PurposeDialect(Enum):
    """Line layout of an encoded purpose field.

    DATEV writes every subfield on its own line; SWIFT packs the subfields
    into 65-character lines.
    """

    DATEV = "datev"
    SWIFT = "swift"


def swift_field_lines(text: str) -> list[str]:
    """Wrap :86: field content into SWIFT lines of at most 65 characters.

    The first line leaves room for the ``:86:`` tag in front of it.
    """
    if not text:
        return []
    first_width = SWIFT_LINE_LENGTH - len(FIELD_TAG)
    return [text[:first_width]] + chunk_text(text[first_width:], SWIFT_LINE_LENGTH)


def _keyed_lines(values: Iterable[str]) -> list[str]:
    values = list(values)
    if len(values) > MAX_PURPOSE_LINES:
        logger.debug(
            "Purpose continuation keys exhausted, %d segment(s) dropped",
            len(values) - MAX_PURPOSE_LINES,
        )
    return [f"?{key:02d}{value}" for key, value in zip(PURPOSE_KEYS, values)]


@dataclass(frozen=True)
class Purpose:
    """Decoded content of a multi-purpose field."""

    gvc_code: Optional[str] = None
    booking_text: Optional[str] = None
    document_number: Optional[str] = None
    purpose_lines: tuple[str, ...] = ()
    payer_bank_code: Optional[str] = None
    payer_account: Optional[str] = None
    payer_name_1: Optional[str] = None
    payer_name_2: Optional[str] = None
    text_key_extension: Optional[str] = None
    raw_text: Optional[str] = None

    def __post_init__(self):
        if self.gvc_code is not None and not _GVC_CODE.match(self.gvc_code):
            raise ValidationError(f"GVC code must be 3 digits, got '{self.gvc_code}'")
        lines = tuple(self.purpose_lines)
        for line in lines:
            if len(line) > SEGMENT_WIDTH:
                raise ValidationError(
                    f"Purpose line '{line}' exceeds {SEGMENT_WIDTH} characters"
                )
        object.__setattr__(self, "purpose_lines", lines)

    @classmethod
    def from_raw_lines(cls, lines: Iterable[str]) -> "Purpose":
        """Decode subfield lines.

        The first line may start with the GVC code; text following it and
        any line without a known key is collected as raw text.
        """
        values: dict[str, Optional[str]] = {}
        purpose_lines: list[str] = []
        raw_parts: list[str] = []
        gvc_code = None
        first = True

        for line in lines:
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            match = _KEY_LINE.match(line)
            if match:
                key, value = int(match.group(1)), match.group(2)
                if key == BOOKING_TEXT_KEY:
                    values["booking_text"] = value
                elif key == DOCUMENT_NUMBER_KEY:
                    values["document_number"] = value
                elif key in PURPOSE_KEYS:
                    purpose_lines.extend(chunk_text(value) or [""])
                elif key == PAYER_BANK_CODE_KEY:
                    values["payer_bank_code"] = value
                elif key == PAYER_ACCOUNT_KEY:
                    values["payer_account"] = value
                elif key == PAYER_NAME_1_KEY:
                    values["payer_name_1"] = value
                elif key == PAYER_NAME_2_KEY:
                    values["payer_name_2"] = value
                elif key == TEXT_KEY_EXTENSION_KEY:
                    values["text_key_extension"] = value
                else:
                    raw_parts.append(line)
            elif first and _GVC_LINE.match(line):
                gvc = _GVC_LINE.match(line)
                gvc_code = gvc.group(1)
                if gvc.group(2):
                    raw_parts.append(gvc.group(2))
            else:
                raw_parts.append(line)
            first = False

        return cls(
            gvc_code=gvc_code,
            purpose_lines=tuple(purpose_lines),
            raw_text=" ".join(raw_parts) or None,
            **values,
        )

    @classmethod
    def from_text(cls, text: str) -> "Purpose":
        """Decode a purpose field given as one string or wrapped SWIFT lines.

        Text without any ``?NN`` marker is read line by line.
        """
        lines = text.splitlines()
        if not _SUBFIELD_MARKER.search(text):
            return cls.from_raw_lines(lines)
        joined = "".join(lines)
        return cls.from_raw_lines(part for part in _SUBFIELD_START.split(joined) if part)

    @property
    def is_structured(self) -> bool:
        return any(
            value is not None
            for value in (
                self.booking_text,
                self.document_number,
                self.payer_bank_code,
                self.payer_account,
                self.payer_name_1,
                self.payer_name_2,
                self.text_key_extension,
            )
        ) or bool(self.purpose_lines)

    @property
    def payer_name(self) -> Optional[str]:
        names = [n for n in (self.payer_name_1, self.payer_name_2) if n]
        return " ".join(names) or None

    @property
    def purpose_text(self) -> str:
        """Purpose lines and raw text joined by blanks."""
        parts = [line for line in self.purpose_lines if line]
        if self.raw_text:
            parts.append(self.raw_text)
        return " ".join(parts)

    @property
    def full_text(self) -> str:
        """Booking text, purpose and payer name as one string."""
        parts = [self.booking_text, self.purpose_text, self.payer_name]
        return " ".join(part for part in parts if part)

    def to_lines(self, dialect: PurposeDialect = PurposeDialect.DATEV) -> list[str]:
        """Encode the field into lines, without the :86: tag.

        The header line holds the GVC code followed by any raw text; the
        booking text is not part of the header but its own ``?00`` subfield.
        Purpose lines beyond key 63 are dropped.

        The SWIFT dialect wraps with ``swift_field_lines``.
        """
        subfields = self._subfields()
        if dialect is PurposeDialect.SWIFT:
            return swift_field_lines("".join(subfields))
        return subfields

    def _subfields(self) -> list[str]:
        if self.is_structured:
            lines = []
            header = (self.gvc_code or "") + (self.raw_text or "")
            if header:
                lines.append(header)
            if self.booking_text is not None:
                lines.append(f"?{BOOKING_TEXT_KEY:02d}{self.booking_text}")
            if self.document_number is not None:
                lines.append(f"?{DOCUMENT_NUMBER_KEY}{self.document_number}")
            lines.extend(_keyed_lines(self.purpose_lines))
            for key, value in (
                (PAYER_BANK_CODE_KEY, self.payer_bank_code),
                (PAYER_ACCOUNT_KEY, self.payer_account),
                (PAYER_NAME_1_KEY, self.payer_name_1),
                (PAYER_NAME_2_KEY, self.payer_name_2),
                (TEXT_KEY_EXTENSION_KEY, self.text_key_extension),
            ):
                if value is not None:
                    lines.append(f"?{key}{value}")
            return lines

        if self.raw_text:
            segments = chunk_text(self.raw_text)
            return [(self.gvc_code or "") + segments[0]] + _keyed_lines(segments[1:])

        return [self.gvc_code] if self.gvc_code else []
