"""Utility functions for attachment handling."""

import re
from pathlib import PurePosixPath

from commentboard.core.modules.attachment.models import (
    ALLOWED_IMAGE_TYPES,
    MAX_TEXT_FILE_SIZE,
    MAX_UPLOAD_SIZE,
    TEXT_CONTENT_TYPE,
    FileType,
)

_FILE_EXTENSIONS: dict[FileType, str] = {
    FileType.IMAGE: "jpg",  # Images are re-encoded as JPEG
    FileType.TEXT: "txt",
}


def classify_file(content_type: str) -> FileType | None:
    """Map an upload's content type to an attachment file type.

    Returns:
        The file type, or None if the content type is not accepted
    """
    content_type = content_type.split(";", 1)[0].strip().lower()
    if content_type in ALLOWED_IMAGE_TYPES:
        return FileType.IMAGE
    if content_type == TEXT_CONTENT_TYPE:
        return FileType.TEXT
    return None


def check_file_size(filename: str, file_type: FileType, size: int) -> str | None:
    """Check upload size limits.

    Returns:
        Error message if the file is too large, None otherwise
    """
    if size > MAX_UPLOAD_SIZE:
        return f'File "{filename}" exceeds 5MB limit'
    if file_type == FileType.TEXT and size > MAX_TEXT_FILE_SIZE:
        return f'Text file "{filename}" exceeds 100KB limit'
    return None


def clean_filename(filename: str) -> str:
    """Reduce a user-supplied filename to a safe storage fragment.

    Drops any path components and replaces everything except Latin letters, digits,
    dots and hyphens with underscores. The result is limited to 50 characters.
    """
    name = PurePosixPath(filename.replace("\\", "/")).name.lstrip(".")
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", name)[:50]
    return cleaned or "file"


def generate_blob_name(filename: str, file_type: FileType, timestamp_ms: int, unique: str) -> str:
    """Build the storage name for an attachment.

    Format: `{images|texts}/{timestamp_ms}-{unique}-{clean name}.{jpg|txt}`
    """
    return f"{file_type}s/{timestamp_ms}-{unique}-{clean_filename(filename)}.{_FILE_EXTENSIONS[file_type]}"
