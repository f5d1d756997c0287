"""
Message Validation API Routes

Streams a submitted message body into the validation service and maps the
result onto an HTTP response:

- 204 when the message is valid
- 400 listing every schema, JSON schema or business validation error
- 404 when the message type is not recognised
- 415 when the content type is neither XML nor JSON
- 500 when the service could not complete validation
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import JSONResponse

from app.core.validation.errors import UnrecognisedMessageType, ValidationResult
from app.core.validation.registry import SchemaKind
from app.core.validation.streams import drain
from app.dependencies import get_validation_service
from app.schemas.validation import ErrorResponse, ValidationResponse
from app.services.validation_service import ValidationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Validation"])

CONTENT_TYPE_KINDS = {
    "application/xml": SchemaKind.XML,
    "text/xml": SchemaKind.XML,
    "application/json": SchemaKind.JSON,
}


def kind_for_content_type(content_type: Optional[str]) -> Optional[SchemaKind]:
    """Map a Content-Type header value (parameters ignored) to a schema kind."""
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    return CONTENT_TYPE_KINDS.get(media_type)


def result_to_response(message_type: str, result: ValidationResult) -> Response:
    """Convert a validation result into an HTTP response."""
    if result.is_valid:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    first = result.errors[0]
    if result.is_internal_error:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                message="Internal server error",
                error_code="INTERNAL_SERVER_ERROR",
            ).model_dump(),
        )

    if isinstance(first, UnrecognisedMessageType):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=ErrorResponse(
                message=first.message,
                error_code="UNRECOGNISED_MESSAGE_TYPE",
                details={"message_type": message_type},
            ).model_dump(),
        )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationResponse(
            message=f"Request body does not match the schema for {message_type}",
            error_count=len(result.errors),
            validation_errors=[error.to_dict() for error in result.errors],
        ).model_dump(),
    )


@router.post(
    "/messages/{message_type}/validation",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        400: {"model": ValidationResponse, "description": "Message failed validation"},
        404: {"model": ErrorResponse, "description": "Unrecognised message type"},
        415: {"model": ErrorResponse, "description": "Unsupported content type"},
        500: {"model": ErrorResponse, "description": "Validation could not be completed"},
    },
)
async def validate_message(
    message_type: str,
    request: Request,
    content_type: Optional[str] = Header(default=None),
    service: ValidationService = Depends(get_validation_service),
) -> Response:
    """
    Validate a customs message against the schema of its message type.

    The body is streamed; it is never buffered by this route.
    """
    kind = kind_for_content_type(content_type)
    if kind is None:
        await drain(request.stream(), service.read_timeout)
        return JSONResponse(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            content=ErrorResponse(
                message=f"Unsupported content type: {content_type}",
                error_code="UNSUPPORTED_MEDIA_TYPE",
                details={"supported": sorted(CONTENT_TYPE_KINDS)},
            ).model_dump(),
        )

    result = await service.validate(message_type, request.stream(), kind=kind)
    return result_to_response(message_type, result)
