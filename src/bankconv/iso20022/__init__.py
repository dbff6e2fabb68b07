"""ISO 20022 XML support for bankconv."""

from bankconv.iso20022.generator import Camt053XmlGenerator
from bankconv.iso20022.parser import parse_camt053
from bankconv.iso20022.validator import SchemaValidator, ValidationResult

__all__ = ["Camt053XmlGenerator", "parse_camt053", "SchemaValidator", "ValidationResult"]
