from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from commentboard.core.core import Service
from commentboard.core.modules.attachment.models import UploadedFile
from commentboard.core.modules.comment.aggregation import build_page_pipeline, build_single_pipeline
from commentboard.core.modules.comment.cursor import KeysetPosition, encode_cursor
from commentboard.core.modules.comment.models import Comment, CommentInput, CommentView, PageRequest, SortField
from commentboard.core.modules.comment.query_builder import build_mongo_sort, build_page_query, get_sort_path
from commentboard.core.modules.sanitizer.html import ALLOWED_TAGS, sanitize_html
from commentboard.core.pagination import CursorPage, assemble_page
from commentboard.errors import (
    AttachmentProcessingError,
    NotFoundError,
    PersistenceError,
    RetrievalError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class CommentService(Service):
    """Creates comments and serves keyset-paginated comment and reply lists."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("comments")

    async def on_start(self) -> None:
        """Create indexes backing every (scope, sort field, id) ordering."""
        for sort_by in SortField:
            await self._collection.create_index([("parent_id", 1), (get_sort_path(sort_by), -1), ("_id", -1)])

    async def get_comment(self, comment_id: UUID) -> CommentView:
        """Get one comment with its reply count and attachments."""
        try:
            cursor = await self._collection.aggregate(build_single_pipeline(comment_id))
            items = await CommentView.list_cursor(cursor)
        except PyMongoError as e:
            raise RetrievalError(f"Failed to load comment {comment_id}") from e
        if not items:
            raise NotFoundError(f"Comment not found: {comment_id}")
        return items[0]

    async def resolve_cursor(self, cursor_id: UUID, sort_by: SortField) -> KeysetPosition | None:
        """Look up the keyset position named by a cursor.

        Returns:
            The position, or None if no comment has that id
        """
        path = get_sort_path(sort_by)
        try:
            doc = await self._collection.find_one({"_id": cursor_id}, projection={path: 1})
        except PyMongoError as e:
            raise RetrievalError(f"Failed to resolve cursor {cursor_id}") from e
        if doc is None:
            return None
        return KeysetPosition.from_document(doc, sort_by)

    async def list_comments(self, request: PageRequest) -> CursorPage[CommentView]:
        """Get one page of root comments or replies.

        An unknown cursor restarts from the first page, unless `strict_cursor` is configured,
        in which case it is rejected.

        Args:
            request: Scope, ordering, page size and optional cursor

        Returns:
            Page of comments with `repliesCount` and `attachments`, plus the cursor of the next page

        Raises:
            ValidationError: If the cursor is unknown and strict cursors are enabled
            RetrievalError: If the storage call fails
        """
        position = None
        if request.cursor is not None:
            position = await self.resolve_cursor(request.cursor, request.sort_by)
            if position is None:
                if self.core.config.strict_cursor:
                    raise ValidationError.for_field("cursor", "Cursor does not reference an existing comment", "not_found")
                logger.info("cursor_not_found", cursor=request.cursor, parent_id=request.scope.parent_id)

        query = build_page_query(request.scope, request.sort_by, request.sort_order, position)
        sort = build_mongo_sort(request.sort_by, request.sort_order)
        pipeline = build_page_pipeline(query, sort, request.limit)

        try:
            cursor = await self._collection.aggregate(pipeline)
            rows = await CommentView.list_cursor(cursor)
        except PyMongoError as e:
            raise RetrievalError("Failed to load comments") from e

        page = assemble_page(rows, request.limit, lambda comment: encode_cursor(comment.id))
        logger.debug(
            "list_comments",
            parent_id=request.scope.parent_id,
            sort_by=request.sort_by,
            sort_order=request.sort_order,
            limit=request.limit,
            cursor=request.cursor,
            returned=len(page.data),
            has_next_page=page.has_next_page,
        )
        return page

    async def create_comment(self, data: CommentInput, files: list[UploadedFile] | None = None) -> Comment:
        """Create a root comment or reply, with optional attachments.

        Order: spam check, text sanitization, file validation, parent check, comment insert,
        attachment storage. A failure before the insert persists nothing; a failure while storing
        attachments removes the inserted comment again.

        Raises:
            SpamCheckError: If the CAPTCHA token is rejected
            ValidationError: If the text is empty after sanitization, a file is invalid,
                or the parent comment does not exist
            PersistenceError: If the comment insert fails
            AttachmentProcessingError: If attachments cannot be stored
        """
        await self.core.services.captcha.validate(data.captcha_token)

        text = sanitize_html(data.text, ALLOWED_TAGS)
        if not text.strip():
            raise ValidationError.for_field("text", "Text cannot be empty.", "too_small")

        prepared = await self.core.services.attachment.prepare_files(files or [])

        if data.parent_id is not None:
            await self._ensure_parent_exists(data.parent_id)

        comment = Comment(
            user_name=data.user_name,
            email=str(data.email),
            home_page=str(data.home_page) if data.home_page is not None else None,
            text=text,
            parent_id=data.parent_id,
        )
        try:
            await self._collection.insert_one(comment.to_mongo())
        except PyMongoError as e:
            logger.exception("comment_insert_failed", parent_id=data.parent_id)
            raise PersistenceError("Failed to create comment") from e

        try:
            await self.core.services.attachment.store_attachments(comment.id, prepared)
        except AttachmentProcessingError:
            await self._discard_comment(comment.id)
            raise

        logger.info("comment_created", comment_id=comment.id, parent_id=comment.parent_id, attachments=len(prepared))
        return comment

    async def _ensure_parent_exists(self, parent_id: UUID) -> None:
        try:
            exists = await self._collection.count_documents({"_id": parent_id}, limit=1)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to check parent comment {parent_id}") from e
        if not exists:
            raise ValidationError.for_field("parentId", "Parent comment does not exist.", "not_found")

    async def _discard_comment(self, comment_id: UUID) -> None:
        try:
            await self._collection.delete_one({"_id": comment_id})
        except PyMongoError:
            logger.exception("comment_cleanup_failed", comment_id=comment_id)
        else:
            logger.warning("comment_discarded", comment_id=comment_id)
