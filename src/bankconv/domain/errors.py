"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InvalidTransactionCode(ValidationError):
    """Transaction code is not three alphanumeric characters."""


class InvalidReferenceLength(ValidationError):
    """Reference or bank reference exceeds the SWIFT field length."""


class InvalidCurrency(ValidationError):
    """Currency does not resolve to a known ISO 4217 code."""


class InvalidGuid(ValidationError):
    """Identifier is not a well-formed UUID."""


class DocumentEmpty(DomainError):
    """Source document contains no rows at all."""


class NoValidTransactions(DomainError):
    """Every row of a source document was skipped."""


class MessageParseError(DomainError):
    """MT940 text or CAMT XML could not be read."""


def invalid_transaction_code(code: str) -> str:
    """Return message for a malformed transaction code."""
    return f"Invalid transaction code '{code}': expected 3 alphanumeric characters"


def reference_too_long(label: str, value: str, limit: int) -> str:
    """Return message for an over-long reference."""
    return f"{label} '{value}' is {len(value)} characters long (maximum {limit})"


def unknown_currency(code: str) -> str:
    """Return message for an unknown currency code."""
    return f"Unknown currency '{code}'"


def invalid_guid(value: str) -> str:
    """Return message for a malformed UUID."""
    return f"'{value}' is not a valid UUID v4"


def document_empty() -> str:
    """Return message for a DATEV document without rows."""
    return "DATEV document contains no transactions"


def no_valid_transactions(row_count: int) -> str:
    """Return message when every row was skipped."""
    return (
        f"DATEV document contains no valid transactions "
        f"({row_count} row{'s' if row_count != 1 else ''} skipped)"
    )
