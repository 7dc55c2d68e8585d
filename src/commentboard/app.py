from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from uuid import UUID

from commentboard.config import Config
from commentboard.core.core import Core
from commentboard.core.modules.attachment.models import UploadedFile
from commentboard.core.modules.comment.cursor import decode_cursor
from commentboard.core.modules.comment.models import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    Comment,
    CommentScope,
    CommentView,
    PageRequest,
    SortField,
    SortOrder,
)
from commentboard.core.modules.comment.validators import parse_comment_input
from commentboard.core.pagination import CursorPage
from commentboard.errors import ValidationError


class App:
    """Facade for all application operations, translating request values before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def get_root_comments(
        self,
        limit: int = DEFAULT_PAGE_LIMIT,
        cursor: str | None = None,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> CursorPage[CommentView]:
        """Get a page of root comments."""
        return await self._list_comments(CommentScope.root(), limit, cursor, sort_by, sort_order)

    async def get_comment_replies(
        self,
        parent_id: UUID,
        limit: int = DEFAULT_PAGE_LIMIT,
        cursor: str | None = None,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
    ) -> CursorPage[CommentView]:
        """Get a page of direct replies to a comment."""
        return await self._list_comments(CommentScope.replies_of(parent_id), limit, cursor, sort_by, sort_order)

    async def get_comment(self, comment_id: UUID) -> CommentView:
        """Get a single comment with its aggregates."""
        return await self._core.services.comment.get_comment(comment_id)

    async def create_comment(self, raw_fields: dict[str, str | None], files: list[UploadedFile]) -> Comment:
        """Validate a form submission and create the comment."""
        data = parse_comment_input(raw_fields)
        return await self._core.services.comment.create_comment(data, files)

    def get_attachment_file_path(self, blob_name: str) -> Path:
        """Resolve a stored attachment file for download."""
        return self._core.services.attachment.get_blob_file_path(blob_name)

    def get_version(self) -> dict[str, str]:
        """Get version and build information."""
        config = self._core.config
        try:
            package_version = version("commentboard")
        except PackageNotFoundError:
            package_version = "unknown"
        return {
            "version": package_version,
            "git_commit_hash": config.git_commit_hash,
            "git_commit_date": config.git_commit_date,
            "build_time": config.build_time,
        }

    async def _list_comments(
        self, scope: CommentScope, limit: int, cursor: str | None, sort_by: SortField, sort_order: SortOrder
    ) -> CursorPage[CommentView]:
        if not 1 <= limit <= MAX_PAGE_LIMIT:
            raise ValidationError.for_field("limit", f"Limit must be between 1 and {MAX_PAGE_LIMIT}", "out_of_range")
        request = PageRequest(
            scope=scope,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            cursor=decode_cursor(cursor) if cursor else None,
        )
        return await self._core.services.comment.list_comments(request)
