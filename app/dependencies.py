"""
Central dependency injection module for the Transit Movements Validator.

Route handlers obtain service instances through these functions so tests
can replace them with ``app.dependency_overrides``.
"""

from app.services.validation_service import ValidationService
from app.services.validation_service import get_validation_service as _get_validation_service


def get_validation_service() -> ValidationService:
    """Dependency to get the validation service instance."""
    return _get_validation_service()
