"""
Validation orchestrator.

Public entry point of the validation core: resolves the message type,
fetches its compiled schema, routes the body to the XML or JSON engine and
normalizes every outcome into a ``ValidationResult``.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from app.config import Settings, get_settings
from app.core.validation.business_rules import BusinessRuleValidator
from app.core.validation.errors import (
    UnrecognisedMessageType,
    ValidationResult,
    ValidationServiceError,
)
from app.core.validation.registry import (
    MessageType,
    MessageTypeRegistry,
    SchemaKind,
    get_message_type_registry,
)
from app.core.validation.schema_cache import SchemaCache
from app.core.validation.streams import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_READ_TIMEOUT,
    ByteSource,
    drain,
    reusable_source,
)
from app.core.validation.validators import JsonValidator, XmlValidator

logger = logging.getLogger(__name__)


class ValidationService:
    """
    Validates message payloads against the schema of their message type.

    The service holds no per-call state; concurrent calls share only the
    read-only registry and the schema cache.
    """

    def __init__(
        self,
        registry: Optional[MessageTypeRegistry] = None,
        schema_cache: Optional[SchemaCache] = None,
        xml_validator: Optional[XmlValidator] = None,
        json_validator: Optional[JsonValidator] = None,
        business_validator: Optional[BusinessRuleValidator] = None,
        business_validation_enabled: bool = True,
        temp_dir: Optional[Union[str, Path]] = None,
        read_timeout: Optional[float] = DEFAULT_READ_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        self.registry = registry or get_message_type_registry()
        self.schema_cache = schema_cache or SchemaCache()
        self.engines: Dict[SchemaKind, Union[XmlValidator, JsonValidator]] = {
            SchemaKind.XML: xml_validator or XmlValidator(),
            SchemaKind.JSON: json_validator or JsonValidator(),
        }
        self.business_validator = business_validator or BusinessRuleValidator()
        self.business_validation_enabled = business_validation_enabled
        self.temp_dir = temp_dir
        self.read_timeout = read_timeout
        self.chunk_size = chunk_size

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "ValidationService":
        options = {
            "business_validation_enabled": settings.business_validation_enabled,
            "temp_dir": settings.get_temp_path(),
            "read_timeout": settings.stream_read_timeout,
            "chunk_size": settings.stream_chunk_size,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def passes(self) -> int:
        """Number of reads each validated body needs."""
        return 2 if self.business_validation_enabled else 1

    async def validate(
        self,
        message_type_code: str,
        body: ByteSource,
        kind: Optional[SchemaKind] = None
    ) -> ValidationResult:
        """
        Validate a message body.

        Args:
            message_type_code: Message-type code, e.g. ``IE015`` or ``IE015-JSON``
            body: Lazily produced byte chunks of the payload
            kind: Namespace to resolve the code in (see ``MessageTypeRegistry.resolve``)

        Returns:
            Success, or a failure holding the errors in discovery order.
            Unknown codes yield ``UnrecognisedMessageType`` after the body has
            been drained; infrastructure failures yield a single
            ``InternalServiceError``.
        """
        message_type = self.registry.resolve(message_type_code, kind)
        if message_type is None:
            logger.warning("Unrecognised message type: %s", message_type_code)
            await self._discard(body, message_type_code)
            return ValidationResult.failure([UnrecognisedMessageType(message_type_code)])

        try:
            compiled = await self.schema_cache.get(message_type)
        except Exception as e:
            logger.error("Schema unavailable for %s: %s", message_type, e)
            await self._discard(body, message_type_code)
            return ValidationResult.internal_error(e)

        try:
            result = await self._run_passes(message_type, compiled, body)
        except ValidationServiceError as e:
            logger.error(
                "Validation of %s could not be completed: %s",
                message_type, e.message, exc_info=True
            )
            return ValidationResult.internal_error(e)
        except Exception as e:
            logger.exception("Unexpected error validating %s: %s", message_type, e)
            return ValidationResult.internal_error(e)

        if result.is_valid:
            logger.debug("Message %s is valid", message_type)
        else:
            logger.info("Message %s failed validation with %d error(s)", message_type, len(result.errors))
        return result

    async def _run_passes(self, message_type: MessageType, compiled, body: ByteSource) -> ValidationResult:
        engine = self.engines[message_type.kind]
        async with reusable_source(
            body,
            passes=self.passes,
            temp_dir=self.temp_dir,
            read_timeout=self.read_timeout,
            chunk_size=self.chunk_size,
        ) as source:
            result = await engine.validate(source.open(), compiled)
            if result.is_valid and self.business_validation_enabled:
                result = await self.business_validator.validate(source.open(), message_type)
        return result

    async def _discard(self, body: ByteSource, message_type_code: str) -> None:
        try:
            discarded = await drain(body, self.read_timeout)
        except ValidationServiceError as e:
            logger.warning("Failed to drain body for %s: %s", message_type_code, e.message)
            return
        except Exception as e:
            logger.warning("Body for %s failed while draining: %s", message_type_code, e, exc_info=True)
            return
        logger.debug("Discarded %d bytes for %s", discarded, message_type_code)


_validation_service: Optional[ValidationService] = None


def get_validation_service() -> ValidationService:
    """Get the process-wide validation service instance."""
    global _validation_service
    if _validation_service is None:
        _validation_service = ValidationService.from_settings(get_settings())
    return _validation_service


def reset_validation_service() -> None:
    """Drop the process-wide instance so the next call rebuilds it from settings."""
    global _validation_service
    _validation_service = None
