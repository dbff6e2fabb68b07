"""Codec between tokenised DATEV lines and position-indexed records."""

from typing import Optional, Sequence

from bankconv.domain.entities import FieldValue, Record
from bankconv.domain.errors import ValidationError
from bankconv.domain.registry import FieldRegistry, detect_registry
from bankconv.utils.tokenizer import Token, render, tokenize


def decode(tokens: Sequence[Token], registry: FieldRegistry) -> Record:
    """Map tokens onto the registry's positions.

    Lines shorter than the layout are padded with empty, unquoted fields.
    Tokens beyond the layout are kept so they survive a round trip.

    Args:
        tokens: (value, was_quoted) pairs in line order
        registry: Layout of the line

    Returns:
        Record holding every position of the layout
    """
    fields = [FieldValue(value=value, was_quoted=quoted) for value, quoted in tokens]
    if len(fields) < len(registry):
        fields.extend([FieldValue()] * (len(registry) - len(fields)))
    return Record(fields=tuple(fields), width=len(tokens))


def encode(record: Record, registry: FieldRegistry) -> list[Token]:
    """Turn a record back into tokens.

    A value is quoted when it was quoted in the source or when the layout
    requires quotes at its position.
    """
    tokens = []
    for position in range(1, record.width + 1):
        field_value = record.field(position)
        definition = registry.definition(position)
        quoted = field_value.was_quoted or (definition is not None and definition.quoted)
        tokens.append((field_value.value, quoted))
    return tokens


def decode_line(
    line: str,
    registry: Optional[FieldRegistry] = None,
    delimiter: str = ";",
    quote: str = '"',
) -> tuple[Record, FieldRegistry]:
    """Tokenise and decode one line, detecting the layout if none is given.

    Raises:
        ValidationError: If no layout matches the line
    """
    tokens = tokenize(line, delimiter=delimiter, quote=quote)
    if registry is None:
        registry = detect_registry(tokens)
        if registry is None:
            raise ValidationError(f"Unrecognised DATEV line with {len(tokens)} fields")
    return decode(tokens, registry), registry


def encode_line(record: Record, registry: FieldRegistry, delimiter: str = ";", quote: str = '"') -> str:
    """Encode a record and render it as one line without terminator."""
    return render(encode(record, registry), delimiter=delimiter, quote=quote)
