"""Shared pytest fixtures."""

from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from commentboard.config import Config


class FakeCursor:
    """Async-iterable stand-in for a MongoDB find/aggregate cursor."""

    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        for doc in self._docs:
            yield doc


@pytest.fixture
def config(tmp_path):
    """Create a config that needs no environment."""
    return Config(
        _env_file=None,
        database_url="mongodb://localhost:27017/commentboard_test",
        attachments_path=str(tmp_path / "attachments"),
        recaptcha_secret_key="test-secret",
    )


@pytest.fixture
def make_cursor() -> Callable[[list[dict[str, Any]]], FakeCursor]:
    """Create a factory for fake database cursors."""
    return FakeCursor


@pytest.fixture
def mock_collection():
    """Create a collection mock with async methods."""
    collection = MagicMock()
    collection.aggregate = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=1)
    collection.insert_one = AsyncMock()
    collection.insert_many = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def mock_database(mock_collection):
    """Create a database mock whose collections all share one mock."""
    database = MagicMock()
    database.get_collection.return_value = mock_collection
    return database


@pytest.fixture
def mock_core(config):
    """Create a core with mocked collaborator services."""
    return SimpleNamespace(
        config=config,
        services=SimpleNamespace(
            captcha=SimpleNamespace(validate=AsyncMock()),
            attachment=SimpleNamespace(
                prepare_files=AsyncMock(return_value=[]),
                store_attachments=AsyncMock(return_value=[]),
            ),
        ),
    )


@pytest.fixture
def make_comment_doc() -> Callable[..., dict[str, Any]]:
    """Create a factory for stored comment documents as returned by the page pipeline."""
    base_time = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def factory(
        minute: int = 0,
        user_name: str = "alice",
        parent_id: UUID | None = None,
        replies_count: int = 0,
        attachments: list[dict[str, Any]] | None = None,
        comment_id: UUID | None = None,
    ) -> dict[str, Any]:
        return {
            "_id": comment_id or uuid4(),
            "user_name": user_name,
            "email": f"{user_name}@example.com",
            "home_page": None,
            "text": f"comment {minute}",
            "parent_id": parent_id,
            "created_at": base_time + timedelta(minutes=minute),
            "replies_count": replies_count,
            "attachments": attachments if attachments is not None else [],
        }

    return factory
