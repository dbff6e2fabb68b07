"""XSD validation of ISO 20022 messages."""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import xmlschema

from bankconv.iso20022.parser import namespace_of

logger = logging.getLogger(__name__)

_NAMESPACE = re.compile(r"^urn:iso:std:iso:20022:tech:xsd:([a-z]{4}\.\d{3})\.(\d{3}\.\d{2})$")

# (message type, version) -> schema file name
SCHEMA_FILES = {
    (message_type, version): f"{message_type}.{version}.xsd"
    for message_type, versions in {
        "camt.052": ("001.02", "001.04", "001.06", "001.08"),
        "camt.053": ("001.02", "001.04", "001.06", "001.08"),
        "camt.054": ("001.02", "001.04", "001.06", "001.08"),
        "pain.001": ("001.03", "001.09"),
        "pain.008": ("001.02", "001.08"),
    }.items()
    for version in versions
}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a schema validation."""

    valid: bool
    errors: tuple[str, ...] = ()
    type: Optional[str] = None
    version: Optional[str] = None
    schema_file: Optional[Path] = None


def detect_message(xml_content: str) -> tuple[Optional[str], Optional[str]]:
    """Message type and version from the document namespace."""
    namespace = namespace_of(xml_content)
    match = _NAMESPACE.match(namespace or "")
    if not match:
        return None, None
    return match.group(1), match.group(2)


class SchemaValidator:
    """Validates messages against XSD files kept in one directory."""

    def __init__(self, schema_dir: "Path | str"):
        """Initialize the validator.

        Args:
            schema_dir: Directory holding files named like camt.053.001.02.xsd
        """
        self.schema_dir = Path(schema_dir)
        self._schemas: dict[Path, xmlschema.XMLSchema] = {}

    def resolve(self, message_type: str, version: Optional[str] = None) -> Optional[Path]:
        """Find the schema file for a message type and version.

        Falls back to the newest available version of the type when the exact
        schema is missing.
        """
        if version is not None:
            filename = SCHEMA_FILES.get((message_type, version), f"{message_type}.{version}.xsd")
            path = self.schema_dir / filename
            if path.is_file():
                return path

        candidates = sorted(
            (v, name) for (t, v), name in SCHEMA_FILES.items() if t == message_type
        )
        for candidate_version, filename in reversed(candidates):
            path = self.schema_dir / filename
            if path.is_file():
                if version is not None:
                    logger.info(
                        "No schema for %s %s, using %s", message_type, version, candidate_version
                    )
                return path
        return None

    def validate(
        self,
        xml_content: str,
        message_type: Optional[str] = None,
        version: Optional[str] = None,
    ) -> ValidationResult:
        """Validate a message; never raises.

        Type and version are taken from the document namespace when omitted.
        """
        detected_type, detected_version = detect_message(xml_content)
        message_type = message_type or detected_type
        version = version or detected_version

        try:
            ET.fromstring(xml_content)
        except ET.ParseError as e:
            return ValidationResult(False, (f"Malformed XML: {e}",), message_type, version)

        if message_type is None:
            return ValidationResult(False, ("Unknown message namespace",), None, version)

        schema_file = self.resolve(message_type, version)
        if schema_file is None:
            return ValidationResult(
                False,
                (f"No schema for {message_type} in {self.schema_dir}",),
                message_type,
                version,
            )

        try:
            schema = self._load(schema_file)
            errors = tuple(
                f"{error.path}: {error.reason}" if error.path else str(error.reason)
                for error in schema.iter_errors(xml_content)
            )
        except (xmlschema.XMLSchemaException, OSError, ValueError) as e:
            return ValidationResult(False, (f"Schema error: {e}",), message_type, version, schema_file)

        return ValidationResult(not errors, errors, message_type, version, schema_file)

    def _load(self, path: Path) -> xmlschema.XMLSchema:
        if path not in self._schemas:
            self._schemas[path] = xmlschema.XMLSchema(str(path))
        return self._schemas[path]
