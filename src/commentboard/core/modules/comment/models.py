from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import EmailStr, Field, HttpUrl, field_validator

from commentboard.core.db import ApiModel, MongoModel
from commentboard.core.modules.attachment.models import Attachment
from commentboard.utils import is_user_name, now

DEFAULT_PAGE_LIMIT = 25
MAX_PAGE_LIMIT = 100


class SortField(StrEnum):
    """Fields a comment page can be ordered by."""

    USER_NAME = "userName"
    EMAIL = "email"
    CREATED_AT = "createdAt"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class Comment(MongoModel):
    """Root comment or reply. Never updated after creation."""

    user_name: str
    email: str
    home_page: str | None = None
    text: str  # Sanitized rich-text fragment
    parent_id: UUID | None = None  # None for root comments
    created_at: datetime = Field(default_factory=now)


class CommentView(Comment):
    """Comment with its per-query aggregates."""

    replies_count: int = 0
    attachments: list[Attachment] = Field(default_factory=list)


@dataclass(frozen=True)
class CommentScope:
    """Which comments a page is drawn from: root comments, or direct replies of one comment."""

    parent_id: UUID | None = None

    @classmethod
    def root(cls) -> "CommentScope":
        return cls()

    @classmethod
    def replies_of(cls, parent_id: UUID) -> "CommentScope":
        return cls(parent_id=parent_id)


@dataclass(frozen=True)
class PageRequest:
    """One page of comments to fetch."""

    scope: CommentScope
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    limit: int = DEFAULT_PAGE_LIMIT
    cursor: UUID | None = None


class CommentInput(ApiModel):
    """Validated submission for a new comment."""

    user_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    home_page: HttpUrl | None = None
    text: str = Field(..., min_length=1)
    parent_id: UUID | None = None
    captcha_token: str = Field(..., min_length=1)

    @field_validator("user_name")
    @classmethod
    def check_user_name(cls, value: str) -> str:
        if not is_user_name(value):
            raise ValueError("Username must contain only Latin letters and numbers.")
        return value

    @field_validator("email")
    @classmethod
    def check_email_length(cls, value: str) -> str:
        if len(value) > 255:
            raise ValueError("Email must be at most 255 characters.")
        return value

    @field_validator("home_page")
    @classmethod
    def check_home_page_length(cls, value: HttpUrl | None) -> HttpUrl | None:
        if value is not None and len(str(value)) > 500:
            raise ValueError("Homepage must be at most 500 characters.")
        return value
