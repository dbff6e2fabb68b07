"""Amount parsing and formatting utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

CENT = Decimal("0.01")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles German and plain notations:
    - "1000,50"
    - "+1000,50"
    - "-12,00"
    - "1.234,56"
    - "1234.56"
    - "1.234" (thousands separator only)

    Args:
        amount_str: Amount string

    Returns:
        Signed Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    # Remove whitespace and currency symbols
    cleaned = re.sub(r"[\s€$£]", "", amount_str)

    if "," in cleaned:
        # German notation: dots group thousands, comma marks decimals
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif re.fullmatch(r"[+-]?\d{1,3}(\.\d{3})+", cleaned):
        cleaned = cleaned.replace(".", "")

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'") from None


def _german(value: Decimal) -> str:
    quantized = abs(value).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{quantized:f}".replace(".", ",")


def format_amount(value: Decimal, signed: bool = False) -> str:
    """Format an amount in German notation with two decimals.

    Args:
        value: Amount
        signed: Prefix "+" for non-negative amounts as the DATEV amount field does

    Returns:
        Formatted amount, e.g. "+1000,50" or "-12,00"
    """
    text = _german(value)
    if value < 0:
        return "-" + text
    return ("+" + text) if signed else text


def format_swift_amount(value: Decimal) -> str:
    """Format an unsigned SWIFT amount ("1234,56")."""
    return _german(value)
