from commentboard.client.api import ApiClient
from commentboard.client.cache import InfiniteData, PageFetcher, QueryCache, QueryKey
from commentboard.client.models import CommentsPage
from commentboard.core.modules.comment.models import SortField, SortOrder

PAGE_SIZE = 25


class CommentQueries:
    """Loads root comment and reply lists into the shared cache."""

    def __init__(self, api: ApiClient, cache: QueryCache, page_size: int = PAGE_SIZE) -> None:
        self._api = api
        self._cache = cache
        self._page_size = page_size

    async def root_comments(
        self, sort_by: SortField = SortField.CREATED_AT, sort_order: SortOrder = SortOrder.DESC
    ) -> InfiniteData | None:
        """First page of root comments, from cache unless missing or stale."""
        key = QueryKey.roots(sort_by, sort_order)

        async def fetch_page(cursor: str | None) -> CommentsPage:
            return await self._api.get_root_comments(self._page_size, cursor, sort_by, sort_order)

        return await self._load_first_page(key, fetch_page)

    async def replies(self, parent_id: str) -> InfiniteData | None:
        """First page of direct replies to a comment, from cache unless missing or stale."""
        key = QueryKey.replies(parent_id)

        async def fetch_page(cursor: str | None) -> CommentsPage:
            return await self._api.get_comment_replies(parent_id, self._page_size, cursor)

        return await self._load_first_page(key, fetch_page)

    async def fetch_next_page(self, key: QueryKey) -> InfiniteData | None:
        """Append the next page of a loaded list. A list without a next page is returned unchanged."""
        fetcher = self._cache.fetcher(key)
        if fetcher is None:
            raise LookupError(f"Query not loaded: {key}")
        current = self._cache.get(key)
        if current is not None and current.pages and current.next_page_param is None:
            return current

        async def load(data: InfiniteData | None) -> InfiniteData:
            if data is None or not data.pages:
                return InfiniteData(pages=(await fetcher(None),), page_params=(None,))
            param = data.next_page_param
            page = await fetcher(param)
            return InfiniteData(pages=(*data.pages, page), page_params=(*data.page_params, param))

        return await self._cache.fetch(key, load, replaces=current is None or not current.pages)

    def has_next_page(self, key: QueryKey) -> bool:
        data = self._cache.get(key)
        return data is not None and data.next_page_param is not None

    async def _load_first_page(self, key: QueryKey, fetch_page: PageFetcher) -> InfiniteData | None:
        self._cache.register(key, fetch_page)
        cached = self._cache.get(key)
        if cached is not None and not self._cache.is_stale(key):
            return cached

        async def load(_: InfiniteData | None) -> InfiniteData:
            return InfiniteData(pages=(await fetch_page(None),), page_params=(None,))

        return await self._cache.fetch(key, load)
