"""
Transit Movements Validator - Main FastAPI Application

Entry point of the validation microservice. Builds the FastAPI application
with its routers, middleware and exception handlers, and runs the startup
tasks (Sentry, optional schema warm-up) in the lifespan.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.api.health import router as health_router
from app.api.validation_routes import router as validation_router
from app.config import Settings, configure_logging, get_settings
from app.schemas.validation import ErrorResponse
from app.services.validation_service import get_validation_service
from app.utils.logging import LoggingMiddleware

logger = logging.getLogger(__name__)


def init_sentry(settings: Settings) -> bool:
    """
    Start Sentry error tracking if it is enabled and has a DSN.

    A failure to initialise is logged and otherwise ignored; the service
    runs without error tracking.

    Returns:
        True if Sentry was initialised
    """
    sentry_config = settings.get_sentry_config()
    if not sentry_config["enabled"] or not sentry_config["dsn"]:
        logger.info("Sentry disabled")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    try:
        sentry_sdk.init(
            dsn=sentry_config["dsn"],
            environment=sentry_config["environment"],
            release=sentry_config["release"],
            traces_sample_rate=sentry_config["traces_sample_rate"],
            integrations=[
                FastApiIntegration(),
                # breadcrumbs from INFO, events from ERROR
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            attach_stacktrace=True,
            send_default_pii=False,
        )
    except Exception as e:
        logger.error(f"Sentry initialisation failed: {e}")
        return False

    logger.info(f"Sentry initialised for environment {sentry_config['environment']}")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} (debug={settings.debug})")

    init_sentry(settings)

    if settings.eager_schema_loading:
        # a malformed packaged schema stops startup
        compiled = await get_validation_service().schema_cache.warm_up()
        logger.info(f"Schema cache warmed up: {compiled} schemas compiled")

    yield

    logger.info(f"Stopping {settings.app_name}")


def _error_response(status_code: int, message: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, error_code=error_code).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render HTTP errors and unhandled exceptions as ``ErrorResponse`` bodies."""

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
        message = "Internal server error"
        if get_settings().debug:
            message = f"{message}: {exc}"
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message, "INTERNAL_SERVER_ERROR")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Validates customs transit movement messages (XML or JSON) against "
            "the schema of their declared message type, reporting every "
            "violation found."
        ),
        lifespan=lifespan,
    )

    app.add_middleware(CORSMiddleware, **settings.get_cors_config())
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/", tags=["Health"])
    async def root():
        """Service banner."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "timestamp": datetime.utcnow().isoformat(),
            "docs": "/docs",
        }

    app.include_router(health_router)
    app.include_router(validation_router, prefix=settings.api_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
