"""
Health Check API Endpoints
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from app.config import get_settings
from app.dependencies import get_validation_service
from app.schemas.validation import HealthResponse
from app.services.validation_service import ValidationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: ValidationService = Depends(get_validation_service)) -> HealthResponse:
    """Basic health check with schema cache statistics."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=settings.app_version,
        timestamp=datetime.utcnow(),
        schema_cache=service.schema_cache.stats(),
    )
