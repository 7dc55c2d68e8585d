from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from commentboard.core.db import MongoModel

# Upload limits for comment attachments
MAX_UPLOAD_SIZE = 5 * 1024 * 1024
MAX_TEXT_FILE_SIZE = 100 * 1024
MAX_IMAGE_WIDTH = 320
MAX_IMAGE_HEIGHT = 240

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif"})
TEXT_CONTENT_TYPE = "text/plain"


class FileType(StrEnum):
    """Kinds of files a comment may carry."""

    IMAGE = "image"
    TEXT = "text"


class Attachment(MongoModel):
    """File bound to exactly one comment."""

    comment_id: UUID
    file_url: str  # Opaque storage locator
    file_type: FileType
    position: int = 0  # Order of the file within its comment


@dataclass
class UploadedFile:
    """Raw file received with a comment submission."""

    filename: str
    content_type: str
    content: bytes


@dataclass
class PreparedFile:
    """File that passed validation and processing, ready to be stored."""

    blob_name: str
    file_type: FileType
    content_type: str
    content: bytes
