"""Text wrapping helpers for fixed-width purpose fields."""

SEGMENT_WIDTH = 27


def split_text(text: str, width: int = SEGMENT_WIDTH) -> list[str]:
    """Wrap text at word boundaries into chunks of at most ``width`` characters.

    Words longer than ``width`` are cut into ``width``-sized pieces.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        while len(word) > width:
            if current:
                lines.append(current)
                current = ""
            lines.append(word[:width])
            word = word[width:]
        if not word:
            continue
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current += " " + word
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def chunk_text(text: str, width: int = SEGMENT_WIDTH) -> list[str]:
    """Cut text into consecutive ``width``-sized pieces, ignoring word boundaries."""
    return [text[i:i + width] for i in range(0, len(text), width)]
