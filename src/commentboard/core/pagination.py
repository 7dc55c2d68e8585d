from collections.abc import Callable, Sequence

from pydantic import Field

from commentboard.core.db import ApiModel


class CursorPage[T](ApiModel):
    """Keyset-paginated result wrapper for list endpoints."""

    data: list[T] = Field(..., description="Items of the current page, in the requested order")
    next_cursor: str | None = Field(..., description="Cursor for the following page, null when there is none")

    @property
    def has_next_page(self) -> bool:
        """Whether there are more items beyond the current page."""
        return self.next_cursor is not None


def assemble_page[T](rows: Sequence[T], limit: int, cursor_of: Callable[[T], str]) -> CursorPage[T]:
    """Turn a padded result set into a page.

    Args:
        rows: Up to `limit + 1` rows, already sorted
        limit: Page size requested by the caller
        cursor_of: Builds the cursor for a row

    Returns:
        Page holding at most `limit` rows in their original order; `next_cursor` names the
        last returned row only when the extra row proved that another page exists
    """
    if len(rows) > limit:
        data = list(rows[:limit])
        return CursorPage[T](data=data, next_cursor=cursor_of(data[-1]))
    return CursorPage[T](data=list(rows), next_cursor=None)
