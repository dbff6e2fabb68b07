"""Date parsing utilities."""

from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser

# Tried in order. Compact forms only apply to strings of exactly that length.
DATEV_DATE_FORMATS = [
    ("%Y-%m-%d", None),
    ("%d.%m.%Y", None),
    ("%d.%m.%y", None),
    ("%Y%m%d", 8),
    ("%y%m%d", 6),
    ("%d%m%Y", 8),
    ("%d%m%y", 6),
    ("%d/%m/%Y", None),
    ("%d-%m-%Y", None),
]

DATEV_DATE_FORMAT = "%d.%m.%Y"

# Two-digit years up to this value belong to the 21st century.
CENTURY_PIVOT = 30


def _apply_century_pivot(parsed: date, fmt: str) -> date:
    if "%y" not in fmt:
        return parsed
    year = parsed.year % 100
    century = 2000 if year <= CENTURY_PIVOT else 1900
    return parsed.replace(year=century + year)


def parse_datev_date(date_str: Optional[str]) -> Optional[date]:
    """Parse a date as written in DATEV, MT940 and CAMT sources.

    Handles:
    - "2025-01-15"
    - "15.01.2025", "15.01.25"
    - "20250115", "250115" (year first)
    - "15012025" (day first; six digits are always read year first)
    - "15/01/2025", "15-01-2025"

    Anything else is handed to dateutil with day-first ordering.

    Args:
        date_str: Date string, may be empty

    Returns:
        Date object, or None if the string cannot be parsed
    """
    if not date_str or not date_str.strip():
        return None
    date_str = date_str.strip()

    for fmt, length in DATEV_DATE_FORMATS:
        if length is not None and (len(date_str) != length or not date_str.isdigit()):
            continue
        try:
            parsed = datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
        return _apply_century_pivot(parsed, fmt)

    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def format_datev_date(value: date) -> str:
    """Format a date the way DATEV expects it (dd.mm.yyyy)."""
    return value.strftime(DATEV_DATE_FORMAT)
