"""Tests for camt.053 XML generation, parsing and schema validation."""

import xml.etree.ElementTree as ET
from dataclasses import replace

import pytest

from bankconv.domain.entities import PaymentReferences
from bankconv.domain.enums import CamtVersion
from bankconv.domain.errors import MessageParseError
from bankconv.iso20022 import SchemaValidator, parse_camt053
from bankconv.iso20022.validator import detect_message

UETR = "3f2a8c1e-5b7d-4e9f-a1c2-0d4e6f8a9b1c"


def _ns(version: CamtVersion) -> dict:
    return {"c": version.namespace}


class TestGenerator:
    """Tests for Camt053XmlGenerator."""

    def test_declaration_and_namespace(self, camt_document):
        """Test the XML declaration and default namespace."""
        xml = camt_document.to_xml(CamtVersion.V04)
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        root = ET.fromstring(xml)
        assert root.tag == "{urn:iso:std:iso:20022:tech:xsd:camt.053.001.04}Document"

    def test_bic_element_per_version(self, camt_document):
        """Test BIC in version 02 and BICFI in later versions."""
        v02 = ET.fromstring(camt_document.to_xml(CamtVersion.V02))
        v08 = ET.fromstring(camt_document.to_xml(CamtVersion.V08))
        path = "c:BkToCstmrStmt/c:Stmt/c:Acct/c:Svcr/c:FinInstnId/"
        assert v02.find(path + "c:BIC", _ns(CamtVersion.V02)).text == "COBADEFFXXX"
        assert v08.find(path + "c:BICFI", _ns(CamtVersion.V08)).text == "COBADEFFXXX"
        assert v02.find(path + "c:BICFI", _ns(CamtVersion.V02)) is None

    def test_uetr_only_in_version_08(self, camt_document, camt_entry):
        """Test that the UETR is written by version 08 only."""
        entry = replace(
            camt_entry, references=replace(camt_entry.references, uetr=UETR)
        )
        document = replace(camt_document, entries=(entry,))
        assert UETR not in document.to_xml(CamtVersion.V04)
        assert f"<UETR>{UETR}</UETR>" in document.to_xml(CamtVersion.V08)

    def test_statement_elements(self, camt_document):
        """Test sequence number, balances and entry basics."""
        version = CamtVersion.V02
        root = ET.fromstring(camt_document.to_xml(version))
        stmt = root.find("c:BkToCstmrStmt/c:Stmt", _ns(version))
        assert stmt.find("c:ElctrncSeqNb", _ns(version)).text == "1"
        codes = [e.text for e in stmt.findall("c:Bal/c:Tp/c:CdOrPrtry/c:Cd", _ns(version))]
        assert codes == ["PRCD", "CLBD"]
        amount = stmt.find("c:Ntry/c:Amt", _ns(version))
        assert amount.text == "1000.50"
        assert amount.get("Ccy") == "EUR"

    def test_long_purpose_is_chunked(self, camt_document, camt_entry):
        """Test 140 character Ustrd elements."""
        document = replace(camt_document, entries=(replace(camt_entry, purpose="x" * 300),))
        version = CamtVersion.V02
        root = ET.fromstring(document.to_xml(version))
        chunks = root.findall(".//c:RmtInf/c:Ustrd", _ns(version))
        assert [len(c.text) for c in chunks] == [140, 140, 20]


class TestParser:
    """Tests for parse_camt053()."""

    @pytest.mark.parametrize("version", list(CamtVersion))
    def test_generated_document_reads_back(self, camt_document, version):
        """Test that a generated statement parses to the same document."""
        parsed = parse_camt053(camt_document.to_xml(version))
        assert parsed == [replace(camt_document, sequence_number="1")]

    def test_uetr_reads_back(self, camt_document, camt_entry):
        """Test the UETR of a version 08 message."""
        references = PaymentReferences(end_to_end_id="E2E", uetr=UETR)
        document = replace(camt_document, entries=(replace(camt_entry, references=references),))
        entry = parse_camt053(document.to_xml(CamtVersion.V08))[0].entries[0]
        assert entry.references.uetr == UETR
        assert entry.references.end_to_end_id == "E2E"

    def test_malformed_xml(self):
        """Test that malformed XML raises MessageParseError."""
        with pytest.raises(MessageParseError):
            parse_camt053("<Document><BkToCstmrStmt>")

    def test_no_statement(self):
        """Test that a message without Stmt raises MessageParseError."""
        with pytest.raises(MessageParseError):
            parse_camt053("<Document><BkToCstmrStmt><GrpHdr/></BkToCstmrStmt></Document>")

    def test_several_statements(self, camt_document):
        """Test that every Stmt element becomes a document."""
        xml = camt_document.to_xml()
        root = ET.fromstring(xml)
        message = root[0]
        message.append(message[1])
        assert len(parse_camt053(ET.tostring(root, encoding="unicode"))) == 2


class TestValidator:
    """Tests for SchemaValidator."""

    def test_detect_message(self, camt_document):
        """Test message type and version from the namespace."""
        assert detect_message(camt_document.to_xml(CamtVersion.V08)) == ("camt.053", "001.08")
        assert detect_message("<Document/>") == (None, None)
        assert detect_message("not xml") == (None, None)

    def test_valid_document(self, schema_dir, camt_document):
        """Test a document accepted by the schema."""
        result = SchemaValidator(schema_dir).validate(camt_document.to_xml())
        assert result.valid
        assert result.errors == ()
        assert result.type == "camt.053"
        assert result.version == "001.02"
        assert result.schema_file.name == "camt.053.001.02.xsd"

    def test_invalid_document(self, schema_dir):
        """Test that schema violations are reported."""
        xml = (
            '<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">'
            "<Unexpected/></Document>"
        )
        result = SchemaValidator(schema_dir).validate(xml)
        assert not result.valid
        assert result.errors

    def test_malformed_xml(self, schema_dir):
        """Test that malformed XML is reported, not raised."""
        result = SchemaValidator(schema_dir).validate("<Document>")
        assert not result.valid
        assert result.errors[0].startswith("Malformed XML")

    def test_unknown_namespace(self, schema_dir):
        """Test a document without ISO 20022 namespace."""
        result = SchemaValidator(schema_dir).validate("<Document/>")
        assert not result.valid
        assert result.errors == ("Unknown message namespace",)

    def test_missing_schema(self, tmp_path, camt_document):
        """Test an empty schema directory."""
        result = SchemaValidator(tmp_path).validate(camt_document.to_xml())
        assert not result.valid
        assert result.errors[0].startswith("No schema for camt.053")

    def test_resolve_falls_back_to_newest(self, tmp_path, write_schema):
        """Test that a missing version resolves to the newest schema file."""
        write_schema(tmp_path, "04")
        write_schema(tmp_path, "08")
        validator = SchemaValidator(tmp_path)
        assert validator.resolve("camt.053", "001.04").name == "camt.053.001.04.xsd"
        assert validator.resolve("camt.053", "001.02").name == "camt.053.001.08.xsd"
        assert validator.resolve("camt.053").name == "camt.053.001.08.xsd"
        assert validator.resolve("pain.001") is None

    def test_explicit_type_and_version(self, schema_dir, camt_document):
        """Test that given type and version override detection."""
        result = SchemaValidator(schema_dir).validate(
            camt_document.to_xml(), message_type="camt.053", version="001.02"
        )
        assert result.valid
