"""
Request and operation logging for the validation service.

Provides a small operation logger used to trace HTTP requests with a
request id and duration, and the ASGI middleware that applies it.
"""

import logging
import time
from datetime import datetime
from typing import Any


class ValidationLogger:
    """
    Logger for request-scoped operations.

    Each operation is given an id at start so its success or failure line can
    be correlated with the start line.
    """

    def __init__(self, name: str = __name__):
        self.logger = logging.getLogger(name)

    def log_operation_start(self, operation: str, **context: Any) -> str:
        """
        Log the start of an operation.

        Returns:
            Operation ID for tracking
        """
        operation_id = f"{operation}_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        self.logger.info(f"Starting operation: {operation} [ID: {operation_id}] | Context: {context_str}")
        return operation_id

    def log_operation_success(self, operation_id: str, operation: str, **results: Any):
        results_str = ", ".join(f"{k}={v}" for k, v in results.items())
        self.logger.info(f"Completed operation: {operation} [ID: {operation_id}] | Results: {results_str}")

    def log_operation_error(self, operation_id: str, operation: str, error: Exception, **context: Any):
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        self.logger.error(
            f"Failed operation: {operation} [ID: {operation_id}] | "
            f"Error: {type(error).__name__}: {error} | Context: {context_str}",
            exc_info=error
        )


class LoggingMiddleware:
    """
    ASGI middleware for request/response logging.
    """

    def __init__(self, app):
        self.app = app
        self.logger = ValidationLogger("app.middleware")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        status_code = {"value": None}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status_code["value"] = message["status"]
            await send(message)

        request_id = self.logger.log_operation_start(
            "http_request",
            method=scope.get("method"),
            path=scope.get("path"),
        )
        start = time.perf_counter()
        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            self.logger.log_operation_error(
                request_id,
                "http_request",
                e,
                duration_ms=f"{(time.perf_counter() - start) * 1000.0:.2f}"
            )
            raise
        self.logger.log_operation_success(
            request_id,
            "http_request",
            status=status_code["value"],
            duration_ms=f"{(time.perf_counter() - start) * 1000.0:.2f}"
        )
