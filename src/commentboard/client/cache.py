"""In-memory query cache for paginated comment lists.

Every cached list is keyed by a `QueryKey` and holds the pages loaded so far. Writers replace
values instead of mutating them, so a snapshot is just the values it captured.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field, replace
from enum import StrEnum

import structlog

from commentboard.client.models import CommentData, CommentsPage
from commentboard.core.modules.comment.models import SortField, SortOrder

logger = structlog.get_logger(__name__)

type PageFetcher = Callable[[str | None], Awaitable[CommentsPage]]
type Loader = Callable[[InfiniteData | None], Awaitable[InfiniteData]]
type KeyPredicate = Callable[[QueryKey], bool]


class QueryKind(StrEnum):
    ROOTS = "roots"
    REPLIES = "replies"


@dataclass(frozen=True)
class QueryKey:
    """Scope and ordering of one cached comment list."""

    kind: QueryKind
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    parent_id: str | None = None

    @classmethod
    def roots(cls, sort_by: SortField = SortField.CREATED_AT, sort_order: SortOrder = SortOrder.DESC) -> "QueryKey":
        return cls(QueryKind.ROOTS, sort_by, sort_order)

    @classmethod
    def replies(cls, parent_id: str) -> "QueryKey":
        return cls(QueryKind.REPLIES, parent_id=parent_id)

    @property
    def is_roots(self) -> bool:
        return self.kind == QueryKind.ROOTS

    def is_replies_of(self, parent_id: str) -> bool:
        return self.kind == QueryKind.REPLIES and self.parent_id == parent_id


@dataclass(frozen=True)
class InfiniteData:
    """Pages of one list in load order, with the cursor each page was requested with."""

    pages: tuple[CommentsPage, ...] = ()
    page_params: tuple[str | None, ...] = ()

    @property
    def comments(self) -> Iterator[CommentData]:
        for page in self.pages:
            yield from page.data

    @property
    def next_page_param(self) -> str | None:
        return self.pages[-1].next_cursor if self.pages else None

    def contains(self, comment_id: str) -> bool:
        return any(comment.id == comment_id for comment in self.comments)

    def map_comments(
        self, fn: Callable[[CommentData], CommentData | None], page_limit: int | None = None
    ) -> "InfiniteData":
        """Rewrite comments, all of them or those on the first `page_limit` pages.

        Comments mapped to None are removed.
        """
        pages = []
        for index, page in enumerate(self.pages):
            if page_limit is not None and index >= page_limit:
                pages.append(page)
                continue
            data = [mapped for comment in page.data if (mapped := fn(comment)) is not None]
            pages.append(page.model_copy(update={"data": data}))
        return replace(self, pages=tuple(pages))

    def prepend(self, comment: CommentData) -> "InfiniteData":
        """Insert a comment at the head of the first page."""
        if not self.pages:
            return InfiniteData(pages=(CommentsPage(data=[comment]),), page_params=(None,))
        first = self.pages[0]
        first = first.model_copy(update={"data": [comment, *first.data]})
        return replace(self, pages=(first, *self.pages[1:]))


@dataclass
class _Entry:
    data: InfiniteData | None = None
    fetcher: PageFetcher | None = None
    task: asyncio.Task[InfiniteData] | None = None
    stale: bool = False
    error: BaseException | None = None
    version: int = 0  # Bumped by every write
    generation: int = 0  # Bumped by every server load that replaced all pages


class QueryCache:
    """Store of comment lists shared by every view of the client."""

    def __init__(self) -> None:
        self._entries: dict[QueryKey, _Entry] = {}

    def _entry(self, key: QueryKey) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        return entry

    def get(self, key: QueryKey) -> InfiniteData | None:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def set(self, key: QueryKey, data: InfiniteData | None) -> None:
        entry = self._entry(key)
        entry.data = data
        entry.version += 1

    def version(self, key: QueryKey) -> int:
        entry = self._entries.get(key)
        return entry.version if entry else 0

    def generation(self, key: QueryKey) -> int:
        entry = self._entries.get(key)
        return entry.generation if entry else 0

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry.stale if entry else False

    def is_fetching(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.task is not None and not entry.task.done()

    def error(self, key: QueryKey) -> BaseException | None:
        entry = self._entries.get(key)
        return entry.error if entry else None

    def keys(self, predicate: KeyPredicate | None = None) -> list[QueryKey]:
        """Keys that currently hold data, optionally filtered."""
        return [
            key for key, entry in self._entries.items() if entry.data is not None and (predicate is None or predicate(key))
        ]

    def register(self, key: QueryKey, fetcher: PageFetcher) -> None:
        """Set how pages of `key` are loaded, used by refetches after invalidation."""
        self._entry(key).fetcher = fetcher

    def fetcher(self, key: QueryKey) -> PageFetcher | None:
        entry = self._entries.get(key)
        return entry.fetcher if entry else None

    async def fetch(self, key: QueryKey, load: Loader, *, replaces: bool = True) -> InfiniteData | None:
        """Run a load for `key` and store its result.

        A previous in-flight load for the same key is cancelled first. If this load is cancelled
        through `cancel`, nothing is written and the current cached value is returned. Pass
        `replaces=False` for loads that keep the cached pages and only add to them.

        Raises:
            Whatever `load` raises; the error is also kept as the key's error state
        """
        await self.cancel(key)
        entry = self._entry(key)
        task = asyncio.create_task(self._run(key, load, replaces))
        entry.task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return self.get(key)
        finally:
            if entry.task is task:
                entry.task = None

    async def _run(self, key: QueryKey, load: Loader, replaces: bool) -> InfiniteData:
        entry = self._entry(key)
        try:
            data = await load(entry.data)
        except Exception as e:
            entry.error = e
            raise
        self.set(key, data)
        if replaces:
            entry.generation += 1
        entry.stale = False
        entry.error = None
        return data

    async def cancel(self, key: QueryKey) -> None:
        """Cancel the in-flight load of `key` and wait until it has settled."""
        entry = self._entries.get(key)
        if entry is None or entry.task is None or entry.task.done():
            return
        task = entry.task
        task.cancel()
        await asyncio.wait([task])

    async def cancel_many(self, keys: Iterable[QueryKey]) -> None:
        await asyncio.gather(*(self.cancel(key) for key in keys))

    async def refetch(self, key: QueryKey) -> InfiniteData | None:
        """Reload every page currently loaded for `key`, following fresh cursors."""
        entry = self._entry(key)
        fetcher = entry.fetcher
        if fetcher is None:
            raise LookupError(f"No fetcher registered for {key}")
        page_count = max(1, len(entry.data.pages)) if entry.data else 1

        async def load(_: InfiniteData | None) -> InfiniteData:
            pages: list[CommentsPage] = []
            params: list[str | None] = []
            param: str | None = None
            for _index in range(page_count):
                page = await fetcher(param)
                pages.append(page)
                params.append(param)
                param = page.next_cursor
                if param is None:
                    break
            return InfiniteData(pages=tuple(pages), page_params=tuple(params))

        return await self.fetch(key, load)

    async def invalidate(self, predicate: KeyPredicate) -> None:
        """Mark matching lists stale and refetch the ones that can be reloaded.

        Refetch failures are logged and kept as the key's error state.
        """
        keys = self.keys(predicate)
        for key in keys:
            self._entries[key].stale = True
        reloadable = [key for key in keys if self._entries[key].fetcher is not None]
        results = await asyncio.gather(*(self.refetch(key) for key in reloadable), return_exceptions=True)
        for key, result in zip(reloadable, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("refetch_failed", key=key, error=str(result))
            elif isinstance(result, BaseException):
                raise result

    def snapshot(self, keys: Iterable[QueryKey]) -> dict[QueryKey, InfiniteData | None]:
        """Capture the current values of `keys`."""
        return {key: self.get(key) for key in keys}

    def restore(self, snapshot: dict[QueryKey, InfiniteData | None]) -> None:
        """Put back values captured by `snapshot`."""
        for key, data in snapshot.items():
            self.set(key, data)
