"""
Pydantic schemas for the validation API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseResponse(BaseModel):
    """Base response model with common fields."""

    success: bool = Field(True, description="Indicates if the request was successful")
    message: Optional[str] = Field(None, description="Optional message or description")
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat(), description="Response timestamp")


class ErrorResponse(BaseResponse):
    """Error response model with detailed error information."""

    success: bool = Field(False, description="Always false for error responses")
    error_code: str = Field(..., description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class ValidationResponse(BaseResponse):
    """Body returned when a message fails validation."""

    success: bool = Field(False, description="Always false for failed validations")
    error_code: str = Field("SCHEMA_VALIDATION", description="Machine-readable error code")
    error_count: int = Field(..., ge=1, description="Number of validation errors")
    validation_errors: List[Dict[str, Any]] = Field(..., description="Errors in discovery order")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "message": "Request body does not match the schema for IE015",
                "error_code": "SCHEMA_VALIDATION",
                "error_count": 1,
                "validation_errors": [
                    {
                        "error_type": "schema_violation",
                        "line": 4,
                        "column": 0,
                        "message": "Element 'messageRecipient': This element is not expected.",
                    }
                ],
                "timestamp": "2024-07-26T18:00:00Z",
            }
        }
    )


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(description="Service status")
    service: str = Field(description="Service name")
    version: str = Field(description="Service version")
    timestamp: datetime
    schema_cache: Dict[str, int] = Field(description="Schema cache statistics")
