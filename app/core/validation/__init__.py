"""
Core validation package for the transit movements validator.

Components:
- registry: closed catalogue of message types and their schemas
- schema_cache: schema loading and memoized compilation
- streams: bounded reads, draining and the reusable-stream adapter
- validators: XML and JSON schema validation engines
- business_rules: root-node checks run after schema validation
- errors: result taxonomy and infrastructure exceptions
"""

from .business_rules import BusinessRuleValidator
from .errors import (
    BusinessValidationError,
    InternalServiceError,
    JsonSchemaViolation,
    SchemaViolation,
    UnrecognisedMessageType,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    ValidationServiceError,
)
from .registry import MessageType, MessageTypeRegistry, SchemaKind, get_message_type_registry
from .schema_cache import CompiledSchema, SchemaCache
from .streams import ReusableSource, drain, reusable_source, with_reusable_source
from .validators import JsonValidator, XmlValidator

__all__ = [
    "BusinessRuleValidator",
    "BusinessValidationError",
    "CompiledSchema",
    "InternalServiceError",
    "JsonSchemaViolation",
    "JsonValidator",
    "MessageType",
    "MessageTypeRegistry",
    "ReusableSource",
    "SchemaCache",
    "SchemaKind",
    "SchemaViolation",
    "UnrecognisedMessageType",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
    "ValidationServiceError",
    "XmlValidator",
    "drain",
    "get_message_type_registry",
    "reusable_source",
    "with_reusable_source",
]
