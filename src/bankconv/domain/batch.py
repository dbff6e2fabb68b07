"""Batch conversion helpers shared by the statement converters."""

import logging
from decimal import Decimal
from typing import Callable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

SkipHandler = Callable[[int, Exception], None]


def _skipped(label: str, index: int, error: Exception, on_skip: Optional[SkipHandler]) -> None:
    logger.warning("%s %d skipped: %s", label, index, error)
    if on_skip is not None:
        on_skip(index, error)


def convert_each(
    convert: Callable[[T], R],
    items: Iterable[T],
    label: str,
    on_skip: Optional[SkipHandler] = None,
) -> list[R]:
    """Convert items one by one, leaving out any that fail.

    Args:
        convert: Conversion for a single item
        items: Items to convert
        label: Item name used in the warning log
        on_skip: Called with the item index and the error of each failure

    Returns:
        Converted items in input order
    """
    results = []
    for index, item in enumerate(items):
        try:
            results.append(convert(item))
        except Exception as e:
            _skipped(label, index, e, on_skip)
    return results


def convert_chained(
    convert: Callable,
    documents: Iterable,
    starting_balance: Decimal,
    label: str,
    on_skip: Optional[SkipHandler] = None,
) -> list:
    """Convert documents in order, opening each with the previous closing balance.

    ``convert`` is called as ``convert(document, amount, credit_debit)`` and
    must return a statement with a ``closing_balance``. A document that fails
    is left out and the balance carries over unchanged.
    """
    statements = []
    amount = Decimal(str(starting_balance))
    credit_debit = None
    for index, document in enumerate(documents):
        try:
            statement = convert(document, amount, credit_debit)
        except Exception as e:
            _skipped(label, index, e, on_skip)
            continue
        statements.append(statement)
        amount = statement.closing_balance.amount
        credit_debit = statement.closing_balance.credit_debit
    return statements
