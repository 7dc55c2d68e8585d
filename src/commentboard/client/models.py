from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from commentboard.core.modules.attachment.models import FileType


class ClientModel(BaseModel):
    """Immutable view of an API payload. Cached values are replaced, never mutated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AttachmentData(ClientModel):
    id: str
    comment_id: str
    file_url: str
    file_type: FileType


class CommentData(ClientModel):
    id: str
    user_name: str
    email: str
    home_page: str | None = None
    text: str
    parent_id: str | None = None
    created_at: datetime
    replies_count: int = 0
    attachments: list[AttachmentData] = Field(default_factory=list)

    @property
    def is_optimistic(self) -> bool:
        """Whether this is a provisional entry that the server has not confirmed yet."""
        return self.id.startswith("temp-")


class CommentsPage(ClientModel):
    data: list[CommentData]
    next_cursor: str | None = None
