import asyncio
import time
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import structlog
from PIL import Image
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from commentboard.core.core import Service
from commentboard.core.modules.attachment.models import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    Attachment,
    FileType,
    PreparedFile,
    UploadedFile,
)
from commentboard.core.modules.attachment.storage import build_blob_url, delete_blob, get_blob_path, write_blob
from commentboard.core.modules.attachment.utils import check_file_size, classify_file, generate_blob_name
from commentboard.core.modules.image.image import fit_image
from commentboard.errors import AttachmentProcessingError, FieldError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class AttachmentService(Service):
    """Validates, stores and lists files attached to comments."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("attachments")

    async def on_start(self) -> None:
        """Create indexes for comment lookup."""
        await self._collection.create_index([("comment_id", 1), ("position", 1)])

    async def prepare_files(self, files: list[UploadedFile]) -> list[PreparedFile]:
        """Validate uploads and transform them into storable files.

        Images are resized to fit 320x240 and re-encoded as JPEG; text files are kept as-is.
        Every file is checked before any error is raised, so the caller sees all problems at once.

        Args:
            files: Uploaded files in submission order

        Returns:
            Prepared files in the same order

        Raises:
            ValidationError: If any file has an unsupported type, is too large, or is not a readable image
        """
        prepared: list[PreparedFile] = []
        errors: list[FieldError] = []
        timestamp_ms = int(time.time() * 1000)

        for index, file in enumerate(files):
            path = ["files", str(index)]
            file_type = classify_file(file.content_type)
            if file_type is None:
                errors.append(
                    FieldError(path=path, message=f"Unsupported file type: {file.content_type}", code="unsupported_type")
                )
                continue

            size_error = check_file_size(file.filename, file_type, len(file.content))
            if size_error is not None:
                errors.append(FieldError(path=path, message=size_error, code="too_large"))
                continue

            content = file.content
            content_type = "text/plain"
            if file_type == FileType.IMAGE:
                try:
                    content = await asyncio.to_thread(fit_image, file.content, MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT)
                except (OSError, Image.DecompressionBombError) as e:
                    logger.warning("image_processing_failed", filename=file.filename, error=str(e))
                    errors.append(FieldError(path=path, message="Failed to process image", code="invalid_image"))
                    continue
                content_type = "image/jpeg"

            blob_name = generate_blob_name(file.filename, file_type, timestamp_ms, uuid4().hex[:8])
            prepared.append(PreparedFile(blob_name=blob_name, file_type=file_type, content_type=content_type, content=content))

        if errors:
            raise ValidationError("Invalid attachments", errors)
        return prepared

    async def store_attachments(self, comment_id: UUID, files: list[PreparedFile]) -> list[Attachment]:
        """Store prepared files and record them as attachments of a comment.

        Either all files are stored and recorded, or nothing is left behind.

        Raises:
            AttachmentProcessingError: If writing a file or recording the attachments fails
        """
        if not files:
            return []

        config = self.core.config
        written: list[str] = []
        attachments: list[Attachment] = []
        try:
            for position, file in enumerate(files):
                await asyncio.to_thread(write_blob, config.attachments_path, file.blob_name, file.content)
                written.append(file.blob_name)
                attachments.append(
                    Attachment(
                        comment_id=comment_id,
                        file_url=build_blob_url(config.attachments_url, file.blob_name),
                        file_type=file.file_type,
                        position=position,
                    )
                )
            await self._collection.insert_many([attachment.to_mongo() for attachment in attachments])
        except (OSError, ValueError, PyMongoError) as e:
            logger.exception("attachment_store_failed", comment_id=comment_id, error=str(e))
            await self._discard(comment_id, written)
            raise AttachmentProcessingError(f"Failed to store attachments for comment {comment_id}") from e

        logger.debug("attachments_stored", comment_id=comment_id, count=len(attachments))
        return attachments

    def get_blob_file_path(self, blob_name: str) -> Path:
        """Resolve a stored blob for download.

        Raises:
            NotFoundError: If the name is invalid or the file does not exist
        """
        try:
            file_path = get_blob_path(self.core.config.attachments_path, blob_name)
        except ValueError:
            raise NotFoundError(f"Attachment file not found: {blob_name}") from None
        if not file_path.is_file():
            raise NotFoundError(f"Attachment file not found: {blob_name}")
        return file_path

    async def _discard(self, comment_id: UUID, blob_names: list[str]) -> None:
        """Best-effort removal of partially stored attachments."""
        for blob_name in blob_names:
            try:
                await asyncio.to_thread(delete_blob, self.core.config.attachments_path, blob_name)
            except OSError as e:
                logger.warning("blob_cleanup_failed", blob_name=blob_name, error=str(e))
        try:
            await self._collection.delete_many({"comment_id": comment_id})
        except PyMongoError as e:
            logger.warning("attachment_cleanup_failed", comment_id=comment_id, error=str(e))
