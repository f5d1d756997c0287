"""
Validation error framework for the transit movements validator.

This module defines two families of types:

- Result values (``ValidationError`` and its variants) describing why a
  payload was rejected. These are collected and returned, never raised.
- Infrastructure exceptions (``ValidationServiceError`` and subclasses) raised
  inside the validation core when the service itself cannot complete the
  work. The orchestrator converts them into ``InternalServiceError`` values.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


class ValidationErrorType(str, Enum):
    """Enumeration of validation error kinds."""

    UNRECOGNISED_MESSAGE_TYPE = "unrecognised_message_type"
    SCHEMA_VIOLATION = "schema_violation"
    JSON_SCHEMA_VIOLATION = "json_schema_violation"
    BUSINESS_VALIDATION = "business_validation"
    INTERNAL_SERVICE_ERROR = "internal_service_error"


# ============================================================================
# Result values
# ============================================================================

@dataclass(frozen=True)
class ValidationError:
    """Base class for a single diagnostic produced by a validation call."""

    @property
    def error_type(self) -> ValidationErrorType:
        raise NotImplementedError

    @property
    def is_content_error(self) -> bool:
        """True when the payload itself is at fault (a 4xx condition)."""
        return self.error_type is not ValidationErrorType.INTERNAL_SERVICE_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {"error_type": self.error_type.value}


@dataclass(frozen=True)
class UnrecognisedMessageType(ValidationError):
    code: str

    @property
    def error_type(self) -> ValidationErrorType:
        return ValidationErrorType.UNRECOGNISED_MESSAGE_TYPE

    @property
    def message(self) -> str:
        return f"Unknown Message Type provided: {self.code}"

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "code": self.code, "message": self.message}


@dataclass(frozen=True)
class SchemaViolation(ValidationError):
    """One XML parser diagnostic."""

    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def error_type(self) -> ValidationErrorType:
        return ValidationErrorType.SCHEMA_VIOLATION

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "line": self.line,
            "column": self.column,
            "message": self.message,
        }


@dataclass(frozen=True)
class JsonSchemaViolation(ValidationError):
    """One JSON Schema diagnostic, located by a JSON pointer."""

    pointer: str
    message: str

    @property
    def error_type(self) -> ValidationErrorType:
        return ValidationErrorType.JSON_SCHEMA_VIOLATION

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "pointer": self.pointer, "message": self.message}


@dataclass(frozen=True)
class BusinessValidationError(ValidationError):
    message: str

    @property
    def error_type(self) -> ValidationErrorType:
        return ValidationErrorType.BUSINESS_VALIDATION

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "message": self.message}


@dataclass(frozen=True)
class InternalServiceError(ValidationError):
    """
    The service could not complete validation.

    ``cause`` is kept for logging and diagnostics; only its summary is
    exposed through ``to_dict``.
    """

    cause: Optional[BaseException] = field(default=None, compare=False)

    @property
    def error_type(self) -> ValidationErrorType:
        return ValidationErrorType.INTERNAL_SERVICE_ERROR

    @property
    def message(self) -> str:
        if isinstance(self.cause, ValidationServiceError):
            return self.cause.message
        return "Internal server error"

    def to_dict(self) -> Dict[str, Any]:
        error_dict = {**super().to_dict(), "message": self.message}
        if isinstance(self.cause, ValidationServiceError):
            error_dict["error_code"] = self.cause.error_code
        return error_dict


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of one validation call.

    Either a success (no errors) or a failure carrying a non-empty, ordered
    tuple of errors in discovery order.
    """

    errors: Tuple[ValidationError, ...] = ()

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, errors: Iterable[ValidationError]) -> "ValidationResult":
        errors = tuple(errors)
        if not errors:
            raise ValueError("A failed validation result requires at least one error")
        return cls(errors=errors)

    @classmethod
    def internal_error(cls, cause: BaseException) -> "ValidationResult":
        return cls.failure([InternalServiceError(cause=cause)])

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def is_internal_error(self) -> bool:
        return any(isinstance(error, InternalServiceError) for error in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid,
            "errors": [error.to_dict() for error in self.errors],
        }


# ============================================================================
# Infrastructure exceptions
# ============================================================================

class ValidationServiceError(Exception):
    """Base exception for failures of the validation service itself."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "VALIDATION_SERVICE_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class SchemaNotFoundError(ValidationServiceError):
    """Raised when a schema document is missing from its packaged location."""

    def __init__(self, schema_path: str):
        super().__init__(
            message=f"Schema document not found: {schema_path}",
            error_code="SCHEMA_NOT_FOUND",
            details={"schema_path": schema_path}
        )


class SchemaLoadError(ValidationServiceError):
    """Raised when a schema document exists but cannot be read."""

    def __init__(self, schema_path: str, original_error: Optional[Exception] = None):
        details = {"schema_path": schema_path}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message=f"Unable to read schema document: {schema_path}",
            error_code="SCHEMA_LOAD_ERROR",
            details=details
        )


class SchemaCompilationError(ValidationServiceError):
    """Raised when a schema document cannot be compiled into a validator."""

    def __init__(
        self,
        schema_path: str,
        reason: str,
        original_error: Optional[Exception] = None
    ):
        details = {"schema_path": schema_path, "reason": reason}
        if original_error:
            details["original_error_type"] = type(original_error).__name__
        super().__init__(
            message=f"Unable to compile schema {schema_path}: {reason}",
            error_code="SCHEMA_COMPILATION_ERROR",
            details=details
        )


class StreamTimeoutError(ValidationServiceError):
    """Raised when the upstream producer makes no progress within the read timeout."""

    def __init__(self, timeout: float):
        super().__init__(
            message=f"Timed out after {timeout} seconds waiting for request body",
            error_code="STREAM_TIMEOUT",
            details={"timeout_seconds": timeout}
        )
        self.timeout = timeout


class StreamAlreadyConsumedError(ValidationServiceError):
    """Raised when a single-pass source is opened more than once."""

    def __init__(self):
        super().__init__(
            message="The request body can only be read once",
            error_code="STREAM_ALREADY_CONSUMED"
        )


class SpoolingError(ValidationServiceError):
    """Raised when the request body cannot be written to a temporary file."""

    def __init__(self, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(
            message="Failed to create file stream",
            error_code="SPOOLING_ERROR",
            details=details
        )


class PayloadDecodeError(ValidationServiceError):
    """Raised when a JSON payload is not valid UTF-8."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Request body is not valid UTF-8: {reason}",
            error_code="PAYLOAD_DECODE_ERROR",
            details={"reason": reason}
        )


class MalformedJsonError(ValidationServiceError):
    """Raised when a JSON payload is not syntactically valid JSON."""

    def __init__(self, reason: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(
            message=f"Request body is not valid JSON: {reason}",
            error_code="MALFORMED_JSON",
            details={"reason": reason, "line": line, "column": column}
        )
