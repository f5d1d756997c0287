"""
Schema validation engines for the transit movements validator.

- ``XmlValidator`` feeds the payload to a non-validating lxml pull parser as
  it arrives, then validates the completed document against the compiled
  XSD and collects every error and fatal diagnostic rather than stopping at
  the first one.
- ``JsonValidator`` decodes the payload as UTF-8, parses it, and evaluates
  it against the compiled JSON Schema, returning every violation.

Both engines present the same result model (``ValidationResult``). Content
violations are returned; infrastructure failures are raised as
``ValidationServiceError`` subclasses for the orchestrator to convert.
"""

import asyncio
import codecs
import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Iterable, List, Optional, Sequence, Tuple

from lxml import etree

from .errors import (
    JsonSchemaViolation,
    MalformedJsonError,
    PayloadDecodeError,
    SchemaViolation,
    ValidationResult,
)
from .schema_cache import CompiledSchema

logger = logging.getLogger(__name__)

_PARSE_ERRORS = (etree.XMLSyntaxError, etree.DocumentInvalid)


def secure_pull_parser(**kwargs) -> etree.XMLPullParser:
    """Create a pull parser that never resolves external entities or fetches network resources."""
    return etree.XMLPullParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=False,
        collect_ids=False,
        **kwargs
    )


def _position(value: Optional[int]) -> Optional[int]:
    # libxml2 reports 0 or -1 when the position is unknown
    if value is None or value <= 0:
        return None
    return value


class XmlErrorCollector:
    """
    Ordered buffer of XML diagnostics for a single parse.

    Error and fatal error entries are kept, warnings are dropped. One
    collector belongs to exactly one parse and is never shared.
    """

    def __init__(self):
        self._violations: List[SchemaViolation] = []

    def collect(self, error_log: Iterable[Any]) -> None:
        for entry in error_log:
            if entry.level < etree.ErrorLevels.ERROR:
                continue
            self._violations.append(
                SchemaViolation(
                    message=entry.message,
                    line=_position(entry.line),
                    column=_position(entry.column),
                )
            )

    @property
    def violations(self) -> Tuple[SchemaViolation, ...]:
        return tuple(self._violations)

    def __len__(self) -> int:
        return len(self._violations)


def violation_from_exception(exc: Exception) -> SchemaViolation:
    """Wrap a terminal parse exception as a single schema violation."""
    message = getattr(exc, "msg", None) or str(exc) or type(exc).__name__
    return SchemaViolation(
        message=message,
        line=_position(getattr(exc, "lineno", None)),
        column=_position(getattr(exc, "offset", None)),
    )


class DocumentTracker:
    """Follows element nesting from pull parser events to tell whether the document root was closed."""

    def __init__(self):
        self.root: Optional[etree._Element] = None
        self.depth = 0
        self.root_closed = False

    def consume(self, events: Iterable[Tuple[str, Any]]) -> None:
        for event, element in events:
            if event == "start":
                if self.root is None:
                    self.root = element
                self.depth += 1
            elif event == "end":
                self.depth -= 1
                if self.depth == 0:
                    self.root_closed = True

    def incomplete_violation(self) -> Optional[SchemaViolation]:
        """A violation describing why the document is unfinished, or None if it is complete."""
        if self.root is None:
            return SchemaViolation(message="Document is empty: no root element found")
        if not self.root_closed:
            return SchemaViolation(
                message=f"Premature end of data: root element '{self.root.tag}' is not closed"
            )
        return None


class XmlValidator:
    """
    Validates XML payloads against a compiled XSD.

    Well-formedness is checked chunk by chunk while the body streams in. The
    finished document is then validated as a whole, since lxml's schema-bound
    parser stops at the first validity error.
    """

    async def validate(self, stream: AsyncIterator[bytes], compiled: CompiledSchema) -> ValidationResult:
        """
        Validate an XML byte stream.

        A document that is not well-formed, or whose root element never
        closes, yields a single violation for that terminal failure. Schema
        diagnostics are only buffered for a complete document, and then
        every one of them is returned in document order.

        Raises:
            StreamTimeoutError: If the upstream producer stalls
        """
        collector = XmlErrorCollector()
        parser = secure_pull_parser(events=("start", "end"))
        tracker = DocumentTracker()
        terminal: Optional[Exception] = None

        async with aclosing(stream) as chunks:
            async for chunk in chunks:
                if terminal is not None:
                    # keep reading so the producer is not left blocked
                    continue
                try:
                    parser.feed(chunk)
                except _PARSE_ERRORS as e:
                    terminal = e
                    continue
                tracker.consume(parser.read_events())

        if terminal is None:
            try:
                parser.close()
            except _PARSE_ERRORS as e:
                terminal = e
            else:
                tracker.consume(parser.read_events())

        if terminal is None:
            incomplete = tracker.incomplete_violation()
            if incomplete is not None:
                logger.debug("XML document is incomplete: %s", incomplete.message)
                return ValidationResult.failure([incomplete])

            loop = asyncio.get_running_loop()
            entries = await loop.run_in_executor(None, self.evaluate, compiled, tracker.root)
            collector.collect(entries)

        if len(collector):
            logger.debug("XML validation found %d violation(s)", len(collector))
            return ValidationResult.failure(collector.violations)
        if terminal is not None:
            logger.debug("XML document is not well-formed: %s", terminal)
            return ValidationResult.failure([violation_from_exception(terminal)])
        return ValidationResult.success()

    @staticmethod
    def evaluate(compiled: CompiledSchema, root: etree._Element) -> List[Any]:
        """Validate a parsed document and return a copy of the schema's error log entries."""
        schema = compiled.validator
        with compiled.lock:
            if schema.validate(root.getroottree()):
                return []
            return list(schema.error_log)


async def read_json_document(stream: AsyncIterator[bytes]) -> Any:
    """
    Decode a byte stream as UTF-8 and parse it as a single JSON value.

    Raises:
        PayloadDecodeError: If the bytes are not valid UTF-8
        MalformedJsonError: If the text is not valid JSON
        StreamTimeoutError: If the upstream producer stalls
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
    parts: List[str] = []
    try:
        async with aclosing(stream) as chunks:
            async for chunk in chunks:
                parts.append(decoder.decode(chunk))
        parts.append(decoder.decode(b"", final=True))
    except UnicodeDecodeError as e:
        raise PayloadDecodeError(str(e)) from e

    try:
        return json.loads("".join(parts))
    except json.JSONDecodeError as e:
        raise MalformedJsonError(e.msg, line=e.lineno, column=e.colno) from e


def json_pointer(path: Sequence[Any]) -> str:
    """Render an instance path as an RFC 6901 JSON pointer."""
    return "".join(
        "/" + str(part).replace("~", "~0").replace("/", "~1")
        for part in path
    )


class JsonValidator:
    """Validates JSON payloads against a compiled JSON Schema."""

    async def validate(self, stream: AsyncIterator[bytes], compiled: CompiledSchema) -> ValidationResult:
        """
        Validate a JSON byte stream.

        Raises:
            PayloadDecodeError, MalformedJsonError, StreamTimeoutError
        """
        document = await read_json_document(stream)

        loop = asyncio.get_running_loop()
        violations = await loop.run_in_executor(
            None, self.evaluate, compiled.validator, document
        )

        if violations:
            logger.debug("JSON validation found %d violation(s)", len(violations))
            return ValidationResult.failure(violations)
        return ValidationResult.success()

    @staticmethod
    def evaluate(validator: Any, document: Any) -> List[JsonSchemaViolation]:
        return [
            JsonSchemaViolation(pointer=json_pointer(error.absolute_path), message=error.message)
            for error in validator.iter_errors(document)
        ]
