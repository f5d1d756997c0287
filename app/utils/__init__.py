"""
Utilities Package for the Transit Movements Validator

Request and operation logging helpers used by the application.
"""

from .logging import LoggingMiddleware, ValidationLogger

__all__ = [
    "LoggingMiddleware",
    "ValidationLogger",
]
