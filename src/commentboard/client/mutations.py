"""Optimistic creation of comments.

A submission goes through three steps:

* pending: a provisional comment is put at the head of the first page of every cached list of
  its scope, and for a reply the parent's `repliesCount` is incremented wherever it is cached.
  In-flight loads of those lists are cancelled first so they cannot overwrite the change.
* committed: the provisional entry is swapped for the server's comment and the affected lists
  are invalidated and reloaded.
* rolled back: every list the submission changed gets its snapshot back. If another writer
  changed a list in the meantime, only this submission's own entry and increment are removed.

Each submission owns its snapshot and temporary id, so concurrent submissions do not interfere.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from uuid import uuid4

import structlog

from commentboard.client.api import ApiClient, CommentSubmission, guess_content_type
from commentboard.client.cache import InfiniteData, QueryCache, QueryKey
from commentboard.client.errors import describe_error
from commentboard.client.models import AttachmentData, CommentData
from commentboard.client.notifier import LoggingNotifier, Notifier
from commentboard.core.modules.attachment.models import FileType
from commentboard.utils import now

logger = structlog.get_logger(__name__)


@dataclass
class PendingSubmission:
    """Cache changes made for one submission, with what is needed to undo them."""

    comment: CommentData
    snapshot: dict[QueryKey, InfiniteData | None]
    inserted: set[QueryKey] = field(default_factory=set)
    incremented: set[QueryKey] = field(default_factory=set)
    versions: dict[QueryKey, int] = field(default_factory=dict)
    generations: dict[QueryKey, int] = field(default_factory=dict)
    page_counts: dict[QueryKey, int] = field(default_factory=dict)

    @property
    def temp_id(self) -> str:
        return self.comment.id

    @property
    def parent_id(self) -> str | None:
        return self.comment.parent_id


def make_temp_id() -> str:
    return f"temp-{int(time.time() * 1000)}-{uuid4().hex[:9]}"


def build_optimistic_attachment(temp_id: str, index: int, path: Path) -> AttachmentData:
    if guess_content_type(path).startswith("image/"):
        return AttachmentData(
            id=f"temp-attachment-{temp_id}-{index}",
            comment_id=temp_id,
            file_url=path.resolve().as_uri(),
            file_type=FileType.IMAGE,
        )
    return AttachmentData(
        id=f"temp-attachment-{temp_id}-{index}",
        comment_id=temp_id,
        file_url=f"temp-file://{path.name}",  # Placeholder until the server stores the file
        file_type=FileType.TEXT,
    )


def build_optimistic_comment(submission: CommentSubmission, temp_id: str) -> CommentData:
    return CommentData(
        id=temp_id,
        user_name=submission.user_name,
        email=submission.email,
        home_page=submission.home_page or None,
        text=submission.text,
        parent_id=submission.parent_id or None,
        created_at=now(),
        replies_count=0,
        attachments=[build_optimistic_attachment(temp_id, i, path) for i, path in enumerate(submission.files)],
    )


def adjust_replies_count(comment_id: str, delta: int) -> Callable[[CommentData], CommentData]:
    def adjust(comment: CommentData) -> CommentData:
        if comment.id != comment_id:
            return comment
        return comment.model_copy(update={"replies_count": max(0, comment.replies_count + delta)})

    return adjust


def drop_comment(comment_id: str) -> Callable[[CommentData], CommentData | None]:
    return lambda comment: None if comment.id == comment_id else comment


class AddCommentMutation:
    """Submits comments and keeps every cached list consistent with the submission."""

    def __init__(self, api: ApiClient, cache: QueryCache, notifier: Notifier | None = None) -> None:
        self._api = api
        self._cache = cache
        self._notifier = notifier or LoggingNotifier()

    async def submit(self, submission: CommentSubmission) -> CommentData:
        """Create a comment with optimistic cache updates.

        Returns:
            The comment as created by the server

        Raises:
            ApiError: If the server rejects the submission; the cache is rolled back
            httpx.HTTPError: If the server cannot be reached; the cache is rolled back
        """
        pending = await self.begin(submission)
        try:
            comment = await self._api.create_comment(submission)
        except asyncio.CancelledError:
            self.rollback(pending)
            raise
        except Exception as e:
            self.rollback(pending)
            self._notifier.error("Comment Failed", describe_error(e))
            raise

        description = "Your reply has been added." if comment.parent_id else "Your comment has been posted."
        self._notifier.success("Comment Posted!", description)
        await self.commit(pending, comment)
        return comment

    async def begin(self, submission: CommentSubmission) -> PendingSubmission:
        """Apply the provisional comment to every affected cached list."""
        parent_id = submission.parent_id or None

        await self._cache.cancel_many(self._affected_keys(parent_id))

        # Lists may have changed while loads were being cancelled
        inserted = set(self._affected_scope_keys(parent_id))
        incremented = set(self._lists_showing(parent_id)) if parent_id else set()
        touched = inserted | incremented

        comment = build_optimistic_comment(submission, make_temp_id())
        pending = PendingSubmission(
            comment=comment, snapshot=self._cache.snapshot(touched), inserted=inserted, incremented=incremented
        )
        for key in touched:
            data = self._cache.get(key)
            if data is None:
                continue
            if key in inserted:
                data = data.prepend(comment)
            if parent_id and key in incremented:
                data = data.map_comments(adjust_replies_count(parent_id, 1))
            self._cache.set(key, data)
            pending.versions[key] = self._cache.version(key)
            pending.generations[key] = self._cache.generation(key)
            pending.page_counts[key] = len(data.pages)

        logger.debug("comment_pending", temp_id=comment.id, parent_id=parent_id, lists=len(touched))
        return pending

    async def commit(self, pending: PendingSubmission, comment: CommentData) -> None:
        """Replace the provisional entry with the server's comment and reload affected lists."""
        for key in pending.inserted:
            data = self._cache.get(key)
            if data is not None and data.contains(pending.temp_id):
                self._cache.set(key, data.map_comments(lambda c: comment if c.id == pending.temp_id else c))

        parent_id = comment.parent_id
        if parent_id is None:
            await self._cache.invalidate(lambda key: key.is_roots)
        else:
            await self._cache.invalidate(
                lambda key: key.is_roots or key.is_replies_of(parent_id) or self._shows(key, parent_id)
            )
        logger.debug("comment_committed", temp_id=pending.temp_id, comment_id=comment.id)

    def rollback(self, pending: PendingSubmission) -> None:
        """Undo the cache changes of a failed submission."""
        for key, previous in pending.snapshot.items():
            if key not in pending.versions:
                continue
            if self._cache.version(key) == pending.versions[key]:
                self._cache.set(key, previous)
                continue

            data = self._cache.get(key)
            if data is None:
                continue
            reverted = data.map_comments(drop_comment(pending.temp_id))
            # A reload since then already shows server counts; pages appended later never had the increment
            if (
                pending.parent_id
                and key in pending.incremented
                and self._cache.generation(key) == pending.generations[key]
            ):
                reverted = reverted.map_comments(
                    adjust_replies_count(pending.parent_id, -1), page_limit=pending.page_counts[key]
                )
            if reverted != data:
                self._cache.set(key, reverted)

        logger.debug("comment_rolled_back", temp_id=pending.temp_id, parent_id=pending.parent_id)

    def _affected_scope_keys(self, parent_id: str | None) -> list[QueryKey]:
        if parent_id is None:
            return self._cache.keys(lambda key: key.is_roots)
        return self._cache.keys(lambda key: key.is_replies_of(parent_id))

    def _lists_showing(self, comment_id: str) -> list[QueryKey]:
        return self._cache.keys(lambda key: self._shows(key, comment_id))

    def _affected_keys(self, parent_id: str | None) -> list[QueryKey]:
        keys = self._affected_scope_keys(parent_id)
        if parent_id is not None:
            keys += [key for key in self._lists_showing(parent_id) if key not in keys]
        return keys

    def _shows(self, key: QueryKey, comment_id: str) -> bool:
        data = self._cache.get(key)
        return data is not None and data.contains(comment_id)
