import asyncio
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Any, Self

import httpx

from commentboard.client.errors import ApiError
from commentboard.client.models import CommentData, CommentsPage
from commentboard.core.modules.comment.models import SortField, SortOrder


@dataclass
class CommentSubmission:
    """Form values of a new comment or reply."""

    user_name: str
    email: str
    text: str
    captcha_token: str
    home_page: str | None = None
    parent_id: str | None = None
    files: list[Path] = field(default_factory=list)


def guess_content_type(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "application/octet-stream"


class ApiClient:
    """Async client for the comments API."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @classmethod
    def create(cls, base_url: str, timeout: float = 30.0) -> "ApiClient":
        """Build a client for an API root such as `http://localhost:3000/api/v1`."""
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        await self.aclose()

    async def get_root_comments(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        sort_by: SortField | None = None,
        sort_order: SortOrder | None = None,
    ) -> CommentsPage:
        """GET /comments"""
        params = _page_params(limit, cursor, sort_by, sort_order)
        return CommentsPage.model_validate(await self._request("GET", "/comments", params=params))

    async def get_comment_replies(
        self,
        comment_id: str,
        limit: int | None = None,
        cursor: str | None = None,
        sort_by: SortField | None = None,
        sort_order: SortOrder | None = None,
    ) -> CommentsPage:
        """GET /comments/{id}/replies"""
        params = _page_params(limit, cursor, sort_by, sort_order)
        return CommentsPage.model_validate(await self._request("GET", f"/comments/{comment_id}/replies", params=params))

    async def create_comment(self, submission: CommentSubmission) -> CommentData:
        """POST /comments as multipart form data."""
        data = {
            "userName": submission.user_name,
            "email": submission.email,
            "text": submission.text,
            "captchaToken": submission.captcha_token,
        }
        if submission.home_page:
            data["homePage"] = submission.home_page
        if submission.parent_id:
            data["parentId"] = submission.parent_id
        contents = await asyncio.gather(*(asyncio.to_thread(path.read_bytes) for path in submission.files))
        files = [
            ("files", (path.name, content, guess_content_type(path)))
            for path, content in zip(submission.files, contents, strict=True)
        ]
        return CommentData.model_validate(await self._request("POST", "/comments", data=data, files=files or None))

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._http.request(method, url, **kwargs)
        if response.is_error:
            raise ApiError.from_response(response)
        return response.json()


def _page_params(
    limit: int | None, cursor: str | None, sort_by: SortField | None, sort_order: SortOrder | None
) -> dict[str, str]:
    params: dict[str, str] = {}
    if limit:
        params["limit"] = str(limit)
    if cursor:
        params["cursor"] = cursor
    if sort_by:
        params["sortBy"] = sort_by.value
    if sort_order:
        params["sortOrder"] = sort_order.value
    return params
