from abc import ABC
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """Single validation problem attributed to an input field."""

    path: list[str] = Field(default_factory=list, description="Path to the offending field, e.g. ['userName']")
    message: str = Field(..., description="Human-readable description of the problem")
    code: str = Field("invalid", description="Machine-readable problem code")


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation.

    Carries the field-attributed problems so clients can render them next to the inputs.
    """

    def __init__(self, message: str = "Validation failed", errors: list[FieldError] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str, code: str = "invalid") -> "ValidationError":
        """Build an error about a single top-level field."""
        return cls(message, [FieldError(path=[field], message=message, code=code)])

    @classmethod
    def from_details(
        cls, details: Sequence[Mapping[str, Any]], messages: Mapping[str, str] | None = None
    ) -> "ValidationError":
        """Build from pydantic/FastAPI error details.

        Args:
            details: Items as returned by `errors()` of a pydantic or FastAPI validation error
            messages: Optional friendly message per top-level field, used instead of pydantic's text

        Returns:
            ValidationError listing one FieldError per detail
        """
        errors = []
        for detail in details:
            loc = [str(part) for part in detail.get("loc", ())]
            if loc and loc[0] in _REQUEST_LOCATIONS:
                loc = loc[1:]
            code = str(detail.get("type", "invalid"))
            message = str(detail.get("msg", "Invalid value"))
            if messages and loc and loc[0] in messages and code not in _KEEP_MESSAGE_CODES:
                message = messages[loc[0]]
            errors.append(FieldError(path=loc, message=message, code=code))
        return cls("Validation failed", errors)


_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie", "form"})
_KEEP_MESSAGE_CODES = frozenset({"missing", "string_too_long"})


class SpamCheckError(UserError):
    """Raised when the spam-check gate rejects a submission or cannot be reached."""

    def __init__(self, message: str = "Invalid CAPTCHA.") -> None:
        super().__init__(message)


class ServiceError(Exception):
    """Base class for infrastructure failures that are not caused by user input."""


class PersistenceError(ServiceError):
    """Raised when the authoritative comment insert fails."""


class RetrievalError(ServiceError):
    """Raised when reading a page of comments fails. No partial page is returned."""


class AttachmentProcessingError(ServiceError):
    """Raised when attachments cannot be stored after the comment was inserted."""
