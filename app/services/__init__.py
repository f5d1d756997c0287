"""
Services Package for the Transit Movements Validator

Orchestration of the validation core for the API layer.
"""

from .validation_service import (
    ValidationService,
    get_validation_service,
    reset_validation_service,
)

__all__ = [
    "ValidationService",
    "get_validation_service",
    "reset_validation_service",
]
