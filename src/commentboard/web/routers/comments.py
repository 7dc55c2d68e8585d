"""Comment-related API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile

from commentboard.core.modules.attachment.models import UploadedFile
from commentboard.core.modules.comment.models import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    Comment,
    CommentView,
    SortField,
    SortOrder,
)
from commentboard.core.pagination import CursorPage
from commentboard.web.deps import AppDep
from commentboard.web.openapi import ErrorResponse

router = APIRouter(tags=["comments"])

LimitQuery = Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT, description="Maximum items to return")]
CursorQuery = Annotated[str | None, Query(description="Cursor from the previous page's `nextCursor`")]
SortByQuery = Annotated[SortField, Query(alias="sortBy", description="Field to order by")]
SortOrderQuery = Annotated[SortOrder, Query(alias="sortOrder", description="Sort direction")]

_LIST_RESPONSES: dict[int | str, dict[str, object]] = {
    200: {"description": "Page of comments"},
    400: {"model": ErrorResponse, "description": "Invalid limit, cursor or sort parameters"},
    503: {"model": ErrorResponse, "description": "Comments could not be loaded"},
}


@router.get(
    "/comments",
    summary="List root comments",
    description="Get a keyset-paginated page of root comments. Pass `nextCursor` back as `cursor` to get the next page.",
    operation_id="listComments",
    responses=_LIST_RESPONSES,
)
async def list_comments(
    app: AppDep,
    limit: LimitQuery = DEFAULT_PAGE_LIMIT,
    cursor: CursorQuery = None,
    sort_by: SortByQuery = SortField.CREATED_AT,
    sort_order: SortOrderQuery = SortOrder.DESC,
) -> CursorPage[CommentView]:
    return await app.get_root_comments(limit, cursor, sort_by, sort_order)


@router.get(
    "/comments/{comment_id}/replies",
    summary="List replies",
    description="Get a keyset-paginated page of direct replies to a comment.",
    operation_id="listReplies",
    responses=_LIST_RESPONSES,
)
async def list_replies(
    comment_id: UUID,
    app: AppDep,
    limit: LimitQuery = DEFAULT_PAGE_LIMIT,
    cursor: CursorQuery = None,
    sort_by: SortByQuery = SortField.CREATED_AT,
    sort_order: SortOrderQuery = SortOrder.DESC,
) -> CursorPage[CommentView]:
    return await app.get_comment_replies(comment_id, limit, cursor, sort_by, sort_order)


@router.get(
    "/comments/{comment_id}",
    summary="Get comment",
    description="Get a single comment with its reply count and attachments.",
    operation_id="getComment",
    responses={
        200: {"description": "The comment"},
        404: {"model": ErrorResponse, "description": "Comment not found"},
    },
)
async def get_comment(comment_id: UUID, app: AppDep) -> CommentView:
    return await app.get_comment(comment_id)


@router.post(
    "/comments",
    summary="Create comment",
    description=(
        "Create a root comment, or a reply when `parentId` is given. The text may only keep the tags "
        "`<a>`, `<code>`, `<i>` and `<strong>`. Files: JPEG/PNG/GIF images (resized to fit 320x240) "
        "and `.txt` files up to 100KB."
    ),
    operation_id="createComment",
    status_code=201,
    responses={
        201: {"description": "Comment created successfully"},
        400: {"model": ErrorResponse, "description": "Invalid input, files, or CAPTCHA"},
        500: {"model": ErrorResponse, "description": "Attachments could not be stored; nothing was saved"},
        503: {"model": ErrorResponse, "description": "Comment could not be saved"},
    },
)
async def create_comment(
    app: AppDep,
    user_name: Annotated[str, Form(alias="userName")] = "",
    email: Annotated[str, Form()] = "",
    home_page: Annotated[str | None, Form(alias="homePage")] = None,
    text: Annotated[str, Form()] = "",
    parent_id: Annotated[str | None, Form(alias="parentId")] = None,
    captcha_token: Annotated[str, Form(alias="captchaToken")] = "",
    files: Annotated[list[UploadFile] | None, File(description="Optional attachments")] = None,
) -> Comment:
    raw_fields = {
        "userName": user_name,
        "email": email,
        "homePage": home_page,
        "text": text,
        "parentId": parent_id,
        "captchaToken": captcha_token,
    }
    uploads = [
        UploadedFile(
            filename=upload.filename or "unnamed",
            content_type=upload.content_type or "application/octet-stream",
            content=await upload.read(),
        )
        for upload in files or []
    ]
    return await app.create_comment(raw_fields, uploads)
