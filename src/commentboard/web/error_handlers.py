import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from commentboard.errors import (
    AttachmentProcessingError,
    FieldError,
    NotFoundError,
    PersistenceError,
    RetrievalError,
    SpamCheckError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, errors: list[FieldError] | None = None
) -> JSONResponse:
    """Create JSON error response with optional type and field errors for machine parsing."""
    content: dict[str, Any] = {"message": message}
    if error_type:
        content["type"] = error_type
    if errors:
        content["errors"] = [error.model_dump() for error in errors]
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, ValidationError):
        return create_json_error_response(400, str(exc), "validation_error", exc.errors)
    if isinstance(exc, SpamCheckError):
        status_code = 400
        error_type = "captcha_failed"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def request_validation_error_handler(_: Request, exc: Exception) -> Response:
    """Report invalid query, path or form values as a field-attributed error list."""
    details = exc.errors() if isinstance(exc, RequestValidationError) else []
    error = ValidationError.from_details(details)
    return create_json_error_response(400, str(error), "validation_error", error.errors)


async def service_error_handler(_: Request, exc: Exception) -> Response:
    """Handle infrastructure failures without exposing internal details."""
    logger.error("Service error: %s", exc, exc_info=exc)
    if isinstance(exc, AttachmentProcessingError):
        return create_json_error_response(500, "Failed to process attachments.", "attachment_processing_error")
    if isinstance(exc, PersistenceError):
        return create_json_error_response(503, "Failed to save comment.", "persistence_error")
    if isinstance(exc, RetrievalError):
        return create_json_error_response(503, "Failed to load comments.", "retrieval_error")
    return create_json_error_response(500, "An unexpected error occurred.", "internal_server_error")


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
