"""Fixtures for client-side cache tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from commentboard.client.api import CommentSubmission
from commentboard.client.cache import InfiniteData, QueryCache
from commentboard.client.models import CommentData, CommentsPage


@pytest.fixture
def make_client_comment() -> Callable[..., CommentData]:
    """Create a factory for comments as the API returns them."""

    def factory(comment_id: str, parent_id: str | None = None, replies_count: int = 0, minute: int = 0) -> CommentData:
        return CommentData(
            id=comment_id,
            user_name="alice",
            email="alice@example.com",
            text=f"comment {comment_id}",
            parent_id=parent_id,
            created_at=datetime(2024, 1, 1, tzinfo=UTC) + timedelta(minutes=minute),
            replies_count=replies_count,
        )

    return factory


@pytest.fixture
def make_data() -> Callable[..., InfiniteData]:
    """Create a factory for cached lists from pages of comments."""

    def factory(*pages: list[CommentData]) -> InfiniteData:
        built = []
        params: list[str | None] = [None]
        for index, data in enumerate(pages):
            next_cursor = data[-1].id if index < len(pages) - 1 else None
            built.append(CommentsPage(data=data, next_cursor=next_cursor))
            if next_cursor is not None:
                params.append(next_cursor)
        return InfiniteData(pages=tuple(built), page_params=tuple(params))

    return factory


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def mock_api():
    api = MagicMock()
    api.create_comment = AsyncMock()
    api.get_root_comments = AsyncMock()
    api.get_comment_replies = AsyncMock()
    return api


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def make_submission() -> Callable[..., CommentSubmission]:
    def factory(parent_id: str | None = None, **overrides) -> CommentSubmission:
        fields = {
            "user_name": "bob",
            "email": "bob@example.com",
            "text": "New comment",
            "captcha_token": "token",
            "parent_id": parent_id,
        }
        fields.update(overrides)
        return CommentSubmission(**fields)

    return factory
