"""
Schema loading and compilation cache.

Each message type's schema document is read from the packaged resources and
compiled into an engine-ready validator on first use (or eagerly through
``warm_up``). Compiled schemas are immutable and shared by every validation
call for the lifetime of the process; there is no eviction.
"""

import asyncio
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from lxml import etree

from .errors import (
    SchemaCompilationError,
    SchemaLoadError,
    SchemaNotFoundError,
)
from .registry import MessageType, SchemaKind, get_message_type_registry

logger = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent.parent.parent / "resources"


@dataclass(frozen=True)
class CompiledSchema:
    """
    A schema document compiled for one message type.

    ``validator`` is an ``lxml.etree.XMLSchema`` for XML message types and a
    ``jsonschema`` validator instance for JSON message types. An XMLSchema
    keeps the error log of its last run on the instance, so XML validation
    holds ``lock`` from the validate call until the log has been read.
    """

    message_type: MessageType
    validator: Any
    compile_time_ms: float
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


def load_schema_document(schema_path: str, resources_dir: Path = RESOURCES_DIR) -> Tuple[bytes, Path]:
    """
    Read a raw schema document.

    Args:
        schema_path: Path relative to ``resources_dir``
        resources_dir: Root of the packaged schema resources

    Returns:
        Tuple of the raw document bytes and its absolute location

    Raises:
        SchemaNotFoundError: If the document does not exist
        SchemaLoadError: If the document cannot be read
    """
    location = resources_dir / schema_path
    if not location.is_file():
        raise SchemaNotFoundError(schema_path)
    try:
        return location.read_bytes(), location
    except OSError as e:
        raise SchemaLoadError(schema_path, original_error=e) from e


def _compile_xsd(document: bytes, location: Path, schema_path: str) -> etree.XMLSchema:
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        schema_doc = etree.fromstring(document, parser=parser, base_url=location.as_uri())
        return etree.XMLSchema(schema_doc)
    except (etree.XMLSyntaxError, etree.XMLSchemaParseError) as e:
        raise SchemaCompilationError(schema_path, str(e), original_error=e) from e


def _compile_json_schema(document: bytes, schema_path: str):
    try:
        schema = json.loads(document.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise SchemaCompilationError(schema_path, f"invalid JSON document: {e}", original_error=e) from e

    if not isinstance(schema, dict):
        raise SchemaCompilationError(schema_path, "schema root must be a JSON object")

    validator_class = validator_for(schema, default=Draft7Validator)
    try:
        validator_class.check_schema(schema)
    except SchemaError as e:
        raise SchemaCompilationError(schema_path, e.message, original_error=e) from e
    return validator_class(schema)


class SchemaCache:
    """
    Memoizing compiler of schema documents, keyed by message type.

    Concurrent first use of the same message type may compile more than
    once; the first stored result wins and every caller receives it.
    """

    def __init__(self, resources_dir: Optional[Path] = None):
        self.resources_dir = resources_dir or RESOURCES_DIR
        self._schemas: Dict[Tuple[SchemaKind, str], CompiledSchema] = {}
        self._compile_failures = 0

    def compile(self, message_type: MessageType) -> CompiledSchema:
        """
        Load and compile the schema for a message type, bypassing the cache.

        Raises:
            SchemaNotFoundError, SchemaLoadError, SchemaCompilationError
        """
        start = time.perf_counter()
        try:
            document, location = load_schema_document(message_type.schema_path, self.resources_dir)
            if message_type.kind is SchemaKind.XML:
                validator = _compile_xsd(document, location, message_type.schema_path)
            else:
                validator = _compile_json_schema(document, message_type.schema_path)
        except Exception:
            self._compile_failures += 1
            logger.error("Failed to compile schema for %s", message_type, exc_info=True)
            raise

        compile_time_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "Compiled %s schema %s in %.2f ms",
            message_type.kind.value, message_type.schema_path, compile_time_ms
        )
        return CompiledSchema(
            message_type=message_type,
            validator=validator,
            compile_time_ms=compile_time_ms,
        )

    async def get(self, message_type: MessageType) -> CompiledSchema:
        """
        Get the compiled schema for a message type, compiling it on first use.

        Compilation runs in the default executor so the event loop is not
        blocked while a schema is parsed.
        """
        cached = self._schemas.get(message_type.cache_key)
        if cached is not None:
            return cached

        loop = asyncio.get_running_loop()
        compiled = await loop.run_in_executor(None, self.compile, message_type)
        return self._schemas.setdefault(message_type.cache_key, compiled)

    async def warm_up(self, message_types: Optional[Iterable[MessageType]] = None) -> int:
        """
        Eagerly compile schemas.

        Any compilation failure propagates: a malformed packaged schema is a
        startup-time fatal condition.

        Returns:
            Number of schemas held in the cache afterwards
        """
        if message_types is None:
            message_types = list(get_message_type_registry())
        for message_type in message_types:
            await self.get(message_type)
        logger.info("Schema cache warmed up with %d schemas", len(self._schemas))
        return len(self._schemas)

    def is_cached(self, message_type: MessageType) -> bool:
        return message_type.cache_key in self._schemas

    def clear(self) -> None:
        self._schemas.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "compiled_schemas": len(self._schemas),
            "compile_failures": self._compile_failures,
        }
