"""Tests for turning padded result sets into pages."""

from commentboard.core.pagination import CursorPage, assemble_page


def cursor_of(row: int) -> str:
    return f"cursor-{row}"


class TestAssemblePage:
    """Tests for assemble_page."""

    def test_extra_row_means_next_page(self):
        """Test that a padded result is truncated and the cursor names the last kept row."""
        page = assemble_page([5, 4, 3], 2, cursor_of)
        assert page.data == [5, 4]
        assert page.next_cursor == "cursor-4"
        assert page.has_next_page

    def test_exact_limit_has_no_next_page(self):
        """Test that exactly `limit` rows produce a full page with no cursor."""
        page = assemble_page([2, 1], 2, cursor_of)
        assert page.data == [2, 1]
        assert page.next_cursor is None
        assert not page.has_next_page

    def test_short_page(self):
        """Test the last, partial page."""
        page = assemble_page([1], 2, cursor_of)
        assert page.data == [1]
        assert page.next_cursor is None

    def test_empty(self):
        """Test that an empty result is an empty page."""
        page = assemble_page([], 25, cursor_of)
        assert page.data == []
        assert page.next_cursor is None

    def test_order_is_preserved(self):
        """Test that rows are never reordered."""
        rows = [3, 9, 1, 7, 5, 2]
        page = assemble_page(rows, 5, cursor_of)
        assert page.data == [3, 9, 1, 7, 5]
        assert page.next_cursor == "cursor-5"

    def test_wire_format(self):
        """Test that pages serialize as {data, nextCursor}."""
        page = CursorPage[int](data=[1], next_cursor=None)
        assert page.model_dump(by_alias=True) == {"data": [1], "nextCursor": None}
