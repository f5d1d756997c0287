"""
Business rule checks run after a payload has passed schema validation.

The checks confirm that the document actually is the message it was
submitted as: the XML root element, or the single top-level JSON key, must
match the message type's root node.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

from lxml import etree

from .errors import BusinessValidationError, ValidationResult
from .registry import MessageType, SchemaKind
from .validators import read_json_document, secure_pull_parser

logger = logging.getLogger(__name__)


async def read_root_tag(stream: AsyncIterator[bytes]) -> Optional[str]:
    """
    Return the root element tag (Clark notation) of an XML stream.

    Only the opening of the document is parsed; the stream is closed as soon
    as the root element has been seen.
    """
    parser = secure_pull_parser(events=("start",))
    async with aclosing(stream) as chunks:
        async for chunk in chunks:
            try:
                parser.feed(chunk)
            except etree.XMLSyntaxError:
                return None
            for _, element in parser.read_events():
                return element.tag
    return None


class BusinessRuleValidator:
    """Checks that a schema-valid payload matches its declared message type."""

    async def validate(self, stream: AsyncIterator[bytes], message_type: MessageType) -> ValidationResult:
        if message_type.kind is SchemaKind.XML:
            return await self._validate_xml(stream, message_type)
        return await self._validate_json(stream, message_type)

    async def _validate_xml(self, stream: AsyncIterator[bytes], message_type: MessageType) -> ValidationResult:
        root_tag = await read_root_tag(stream)
        expected = message_type.qualified_root
        if root_tag == expected:
            return ValidationResult.success()

        logger.info("Root node %s does not match message type %s", root_tag, message_type.code)
        return ValidationResult.failure([
            BusinessValidationError(
                message=(
                    f"Root node {etree.QName(root_tag).localname if root_tag else None} "
                    f"does not match message type {message_type.code}, "
                    f"expected {message_type.root_node}"
                )
            )
        ])

    async def _validate_json(self, stream: AsyncIterator[bytes], message_type: MessageType) -> ValidationResult:
        document = await read_json_document(stream)
        expected = message_type.qualified_root
        keys = list(document) if isinstance(document, dict) else []
        if keys == [expected]:
            return ValidationResult.success()

        logger.info("Top-level keys %s do not match message type %s", keys, message_type.code)
        return ValidationResult.failure([
            BusinessValidationError(
                message=(
                    f"Root node {', '.join(keys) or None} does not match message type "
                    f"{message_type.code}, expected {expected}"
                )
            )
        ])
