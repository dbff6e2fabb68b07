"""Utility functions for bankconv."""

from bankconv.utils.date_parser import parse_datev_date, format_datev_date
from bankconv.utils.amount_parser import parse_amount, format_amount, format_swift_amount
from bankconv.utils.bank_helper import (
    is_iban,
    is_bic,
    is_blz,
    generate_german_iban,
    bank_code_from_iban,
    split_account_id,
)
from bankconv.utils.text import split_text, chunk_text
from bankconv.utils.tokenizer import tokenize, render

__all__ = [
    "parse_datev_date",
    "format_datev_date",
    "parse_amount",
    "format_amount",
    "format_swift_amount",
    "is_iban",
    "is_bic",
    "is_blz",
    "generate_german_iban",
    "bank_code_from_iban",
    "split_account_id",
    "split_text",
    "chunk_text",
    "tokenize",
    "render",
]
