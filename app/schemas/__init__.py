"""
Pydantic schemas for API responses.
"""

from .validation import BaseResponse, ErrorResponse, HealthResponse, ValidationResponse

__all__ = [
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
    "ValidationResponse",
]
