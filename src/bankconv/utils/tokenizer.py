"""Quote-aware tokenizer for DATEV lines.

The csv module drops whether a value was quoted, which the field codec needs
to reproduce a line byte for byte, so tokens are read by hand here.
"""

Token = tuple[str, bool]


def tokenize(line: str, delimiter: str = ";", quote: str = '"') -> list[Token]:
    """Split a line into (value, was_quoted) tokens.

    A doubled quote inside a quoted token stands for one literal quote.
    Characters following a closing quote up to the next delimiter are kept.

    Args:
        line: One DATEV line, with or without its line terminator
        delimiter: Field separator
        quote: Quote character

    Returns:
        List of (value, was_quoted) tuples, one per field
    """
    line = line.rstrip("\r\n")
    tokens: list[Token] = []
    value: list[str] = []
    quoted = False
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if in_quotes:
            if char == quote:
                if i + 1 < len(line) and line[i + 1] == quote:
                    value.append(quote)
                    i += 1
                else:
                    in_quotes = False
            else:
                value.append(char)
        elif char == delimiter:
            tokens.append(("".join(value), quoted))
            value = []
            quoted = False
        elif char == quote and not value and not quoted:
            in_quotes = True
            quoted = True
        else:
            value.append(char)
        i += 1

    tokens.append(("".join(value), quoted))
    return tokens


def render(tokens: list[Token], delimiter: str = ";", quote: str = '"') -> str:
    """Join (value, quoted) tokens back into one line without terminator."""
    parts = []
    for value, quoted in tokens:
        if quoted:
            parts.append(quote + value.replace(quote, quote * 2) + quote)
        else:
            parts.append(value)
    return delimiter.join(parts)
