"""
Unit tests for the streaming XML validation engine.
"""

import asyncio

import pytest
import pytest_asyncio
from lxml import etree

from app.core.validation.errors import SchemaViolation
from app.core.validation.registry import get_message_type_registry
from app.core.validation.streams import bounded_read
from app.core.validation.validators import (
    XmlErrorCollector,
    XmlValidator,
    violation_from_exception,
)

HEADER = (
    b'<?xml version="1.0" encoding="UTF-8"?>\n'
    b'<ncts:CC015C xmlns:ncts="http://ncts.dgtaxud.ec">\n'
)


class TestXmlValidator:
    """Test suite for XmlValidator."""

    @pytest.fixture
    def validator(self):
        return XmlValidator()

    @pytest_asyncio.fixture
    async def ie015_schema(self, shared_schema_cache):
        return await shared_schema_cache.get(get_message_type_registry().resolve("IE015"))

    async def _validate(self, validator, make_source, schema, payload: bytes, chunk_size: int = 1024):
        stream = bounded_read(make_source(payload, chunk_size=chunk_size), timeout=5.0)
        return await validator.validate(stream, schema)

    @pytest.mark.asyncio
    async def test_valid_document(self, validator, make_source, load_payload, ie015_schema):
        """A well-formed document matching the schema validates."""
        result = await self._validate(validator, make_source, ie015_schema, load_payload("ie015_valid.xml"))

        assert result.is_valid is True

    @pytest.mark.asyncio
    async def test_collects_every_violation(self, validator, make_source, load_payload, ie015_schema):
        """Validation continues past the first error and reports all of them."""
        result = await self._validate(validator, make_source, ie015_schema, load_payload("ie015_invalid.xml"))

        assert result.is_valid is False
        assert len(result.errors) == 2
        assert all(isinstance(error, SchemaViolation) for error in result.errors)

        wrong_order, missing_child = result.errors
        assert "declarationType" in wrong_order.message
        assert "LRN" in wrong_order.message
        assert wrong_order.line == 9
        assert "HolderOfTheTransitProcedure" in missing_child.message
        assert "name" in missing_child.message
        assert missing_child.line > wrong_order.line

    @pytest.mark.asyncio
    async def test_result_independent_of_chunk_boundaries(self, validator, make_source, load_payload, ie015_schema):
        payload = load_payload("ie015_invalid.xml")

        whole = await self._validate(validator, make_source, ie015_schema, payload, chunk_size=len(payload))
        tiny = await self._validate(validator, make_source, ie015_schema, payload, chunk_size=7)

        assert [error.message for error in tiny.errors] == [error.message for error in whole.errors]

    @pytest.mark.asyncio
    async def test_malformed_document(self, validator, make_source, ie015_schema):
        """Well-formedness failures are reported as schema violations."""
        payload = HEADER + b"  <messageSender>token</messageRecipient>\n"

        result = await self._validate(validator, make_source, ie015_schema, payload)

        assert result.is_valid is False
        assert all(isinstance(error, SchemaViolation) for error in result.errors)

    @pytest.mark.asyncio
    async def test_malformed_document_drains_remaining_stream(self, validator, make_source, ie015_schema):
        """The producer is read to the end even after a fatal parse error."""
        payload = b"<<not xml>>" + b" " * 50000
        source = make_source(payload, chunk_size=100)

        result = await validator.validate(bounded_read(source, timeout=5.0), ie015_schema)

        assert result.is_valid is False
        assert len(result.errors) == 1
        assert source.exhausted is True
        assert source.bytes_read == len(payload)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chunk_size", [16, 1024, 65536])
    async def test_truncated_document(self, validator, make_source, load_payload, ie015_schema, chunk_size):
        """A document cut off part way through is never valid."""
        payload = load_payload("ie015_valid.xml")

        result = await self._validate(
            validator, make_source, ie015_schema, payload[:len(payload) // 2], chunk_size=chunk_size
        )

        assert result.is_valid is False
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], SchemaViolation)

    @pytest.mark.asyncio
    async def test_unclosed_root(self, validator, make_source, ie015_schema):
        payload = b"<ncts:CC015C xmlns:ncts='http://ncts.dgtaxud.ec'><messageSender>"

        result = await self._validate(validator, make_source, ie015_schema, payload)

        assert result.is_valid is False
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_concurrent_validations_do_not_mix_errors(self, validator, make_source, load_payload, ie015_schema):
        """Calls sharing one compiled schema each get only their own diagnostics."""
        valid = load_payload("ie015_valid.xml")
        invalid = load_payload("ie015_invalid.xml")

        results = await asyncio.gather(*[
            self._validate(validator, make_source, ie015_schema, payload, chunk_size=64)
            for payload in (valid, invalid) * 5
        ])

        assert [result.is_valid for result in results] == [True, False] * 5
        assert all(len(result.errors) == 2 for result in results[1::2])

    @pytest.mark.asyncio
    async def test_empty_body(self, validator, make_source, ie015_schema):
        result = await self._validate(validator, make_source, ie015_schema, b"")

        assert result.is_valid is False
        assert len(result.errors) >= 1

    @pytest.mark.asyncio
    async def test_undeclared_root(self, validator, make_source, ie015_schema):
        result = await self._validate(validator, make_source, ie015_schema, b"<CC015C/>")

        assert result.is_valid is False
        assert "CC015C" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_large_document(self, validator, make_source, ie015_schema, load_payload):
        """A document with many repeated elements validates chunk by chunk."""
        payload = load_payload("ie015_valid.xml")
        house = (
            b"    <HouseConsignment>\n"
            b"      <sequenceNumber>%d</sequenceNumber>\n"
            b"      <grossMass>1.5</grossMass>\n"
            b"    </HouseConsignment>\n"
        )
        houses = b"".join(house % (i + 1) for i in range(1999))
        head, _, tail = payload.partition(b"    <HouseConsignment>")
        _, _, tail = tail.rpartition(b"</HouseConsignment>\n")
        large = head + houses + tail

        result = await self._validate(validator, make_source, ie015_schema, large, chunk_size=512)

        assert result.is_valid is True

    @pytest.mark.asyncio
    async def test_external_entities_not_resolved(self, validator, make_source, ie015_schema, load_payload, tmp_path):
        """External entity declarations are never expanded."""
        secret = tmp_path / "secret.txt"
        secret.write_text("SECRET-CONTENT-THAT-MUST-NOT-BE-READ-BY-THE-PARSER")
        payload = load_payload("ie015_valid.xml").replace(
            b'<?xml version="1.0" encoding="UTF-8"?>\n',
            b'<?xml version="1.0" encoding="UTF-8"?>\n'
            b'<!DOCTYPE ncts:CC015C [<!ENTITY xxe SYSTEM "' + secret.as_uri().encode() + b'">]>\n',
        ).replace(b"<messageSender>token</messageSender>", b"<messageSender>&xxe;</messageSender>")

        result = await self._validate(validator, make_source, ie015_schema, payload)

        assert all("SECRET" not in getattr(error, "message", "") for error in result.errors)


class TestXmlErrorCollector:
    """Test suite for the XML diagnostic buffer."""

    def test_keeps_errors_in_order(self):
        schema = etree.XMLSchema(etree.fromstring(
            b'<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">'
            b'<xs:element name="root"><xs:complexType><xs:sequence>'
            b'<xs:element name="a" type="xs:integer"/>'
            b'<xs:element name="b" type="xs:integer"/>'
            b'</xs:sequence></xs:complexType></xs:element>'
            b'</xs:schema>'
        ))
        schema.validate(etree.fromstring(b"<root><a>x</a><b>y</b></root>"))

        collector = XmlErrorCollector()
        collector.collect(schema.error_log)

        assert len(collector) == 2
        assert "'a'" in collector.violations[0].message
        assert "'b'" in collector.violations[1].message

    def test_ignores_warnings(self):
        class Entry:
            def __init__(self, level, message):
                self.level = level
                self.message = message
                self.line = 1
                self.column = 0

        collector = XmlErrorCollector()
        collector.collect([
            Entry(etree.ErrorLevels.WARNING, "just a warning"),
            Entry(etree.ErrorLevels.ERROR, "an error"),
            Entry(etree.ErrorLevels.FATAL, "a fatal error"),
        ])

        assert [violation.message for violation in collector.violations] == ["an error", "a fatal error"]
        assert collector.violations[0].column is None


class TestViolationFromException:

    def test_syntax_error_position(self):
        with pytest.raises(etree.XMLSyntaxError) as exc_info:
            etree.fromstring(b"<a>\n<b></a>")

        violation = violation_from_exception(exc_info.value)

        assert violation.line == 2
        assert violation.message

    def test_unknown_position(self):
        """lxml reports unknown positions as 0 or -1; both become None."""
        violation = violation_from_exception(etree.XMLSyntaxError("Document is empty", 4, 0, -1))

        assert violation.message == "Document is empty"
        assert violation.line is None
        assert violation.column is None
