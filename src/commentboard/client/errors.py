from collections.abc import Sequence
from typing import Any

import httpx

FIELD_LABELS = {
    "userName": "Username",
    "email": "Email",
    "homePage": "Homepage",
    "text": "Comment",
    "captchaToken": "CAPTCHA",
}

GENERIC_VALIDATION_MESSAGE = "Validation failed. Please check your input and try again."
GENERIC_FAILURE_MESSAGE = "Failed to post comment. Please try again."


class ApiError(Exception):
    """Non-2xx response from the comments API."""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_type: str | None = None,
        errors: Sequence[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error_type = error_type
        self.errors = list(errors or [])

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            return cls(response.status_code, f"HTTP error! status: {response.status_code}")
        return cls(
            response.status_code,
            payload.get("message") or f"HTTP error! status: {response.status_code}",
            payload.get("type"),
            payload.get("errors"),
        )


def format_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Render field errors as one line per field, e.g. `Email: Invalid email format.`"""
    if not errors:
        return GENERIC_VALIDATION_MESSAGE

    by_field: dict[str, list[str]] = {}
    for error in errors:
        path = error.get("path") or []
        field = str(path[0]) if path else "unknown"
        by_field.setdefault(field, []).append(str(error.get("message", "")))

    return "\n".join(f"{FIELD_LABELS.get(field, field)}: {', '.join(messages)}" for field, messages in by_field.items())


def describe_error(error: BaseException) -> str:
    """User-facing description of a failed submission."""
    if isinstance(error, ApiError):
        if error.errors:
            return format_validation_errors(error.errors)
        return error.message
    if isinstance(error, httpx.HTTPError):
        return GENERIC_FAILURE_MESSAGE
    return str(error) or GENERIC_FAILURE_MESSAGE
