from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from commentboard.errors import FieldError


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        app.openapi_schema = get_openapi(
            title="CommentBoard API",
            version="0.1.0",
            summary="Threaded comments with keyset pagination and file attachments",
            routes=app.routes,
        )
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")
    errors: list[FieldError] | None = Field(None, description="Field-attributed problems for validation errors")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "message": "Validation failed",
                    "type": "validation_error",
                    "errors": [{"path": ["email"], "message": "Invalid email format.", "code": "value_error"}],
                },
                {"message": "Invalid CAPTCHA.", "type": "captcha_failed"},
                {"message": "Comment not found", "type": "not_found"},
            ]
        }
    }
