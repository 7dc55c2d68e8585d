"""Tests for optimistic comment creation."""

import asyncio

import pytest

from commentboard.client.cache import InfiniteData, QueryKey
from commentboard.client.errors import ApiError
from commentboard.client.models import CommentsPage
from commentboard.client.mutations import AddCommentMutation
from commentboard.client.queries import CommentQueries
from commentboard.core.modules.attachment.models import FileType
from commentboard.core.modules.comment.models import SortField, SortOrder

ROOTS = QueryKey.roots()
ROOTS_BY_NAME = QueryKey.roots(SortField.USER_NAME, SortOrder.ASC)
PARENT_REPLIES = QueryKey.replies("parent")


@pytest.fixture
def mutation(mock_api, cache, notifier):
    return AddCommentMutation(mock_api, cache, notifier)


@pytest.fixture
def populated(cache, make_client_comment, make_data):
    """Two root lists showing the parent, and a loaded reply list of the parent."""
    parent = make_client_comment("parent", replies_count=1)
    cache.set(ROOTS, make_data([parent, make_client_comment("r2")], [make_client_comment("r3")]))
    cache.set(ROOTS_BY_NAME, make_data([make_client_comment("r2"), parent]))
    cache.set(PARENT_REPLIES, make_data([make_client_comment("reply1", parent_id="parent")]))
    return cache


def replies_count(cache, key, comment_id):
    return next(c.replies_count for c in cache.get(key).comments if c.id == comment_id)


def first_page_ids(cache, key):
    return [c.id for c in cache.get(key).pages[0].data]


class TestPending:
    """Tests for the optimistic step."""

    @pytest.mark.asyncio
    async def test_root_comment_added_to_every_root_list(self, mutation, populated, make_submission):
        """Test that a root comment heads the first page of every cached root list."""
        pending = await mutation.begin(make_submission())

        assert pending.temp_id.startswith("temp-")
        assert first_page_ids(populated, ROOTS)[0] == pending.temp_id
        assert first_page_ids(populated, ROOTS_BY_NAME)[0] == pending.temp_id
        assert [c.id for c in populated.get(ROOTS).pages[1].data] == ["r3"]
        assert not populated.get(PARENT_REPLIES).contains(pending.temp_id)

    @pytest.mark.asyncio
    async def test_reply_added_and_parent_count_incremented(self, mutation, populated, make_submission):
        """Test that a reply heads the parent's reply list and bumps the parent's count everywhere."""
        pending = await mutation.begin(make_submission(parent_id="parent"))

        assert first_page_ids(populated, PARENT_REPLIES) == [pending.temp_id, "reply1"]
        assert replies_count(populated, ROOTS, "parent") == 2
        assert replies_count(populated, ROOTS_BY_NAME, "parent") == 2
        assert not populated.get(ROOTS).contains(pending.temp_id)

    @pytest.mark.asyncio
    async def test_provisional_comment(self, mutation, populated, make_submission, tmp_path):
        """Test the shape of the provisional entry."""
        image = tmp_path / "cat.png"
        image.write_bytes(b"png")
        notes = tmp_path / "notes.txt"
        notes.write_text("hi")

        pending = await mutation.begin(make_submission(files=[image, notes]))

        comment = pending.comment
        assert comment.is_optimistic
        assert comment.replies_count == 0
        assert comment.created_at.tzinfo is not None
        assert comment.attachments[0].file_type == FileType.IMAGE
        assert comment.attachments[0].file_url.startswith("file://")
        assert comment.attachments[1].file_type == FileType.TEXT
        assert comment.attachments[1].file_url == "temp-file://notes.txt"

    @pytest.mark.asyncio
    async def test_in_flight_fetch_cancelled(self, mutation, cache, make_client_comment, make_data, make_submission):
        """Test that a load started before the submission cannot overwrite the provisional entry."""
        cache.set(ROOTS, make_data([make_client_comment("a")]))
        gate = asyncio.Event()

        async def slow_fetcher(cursor):
            await gate.wait()
            return CommentsPage(data=[make_client_comment("stale")])

        cache.register(ROOTS, slow_fetcher)
        refetch = asyncio.create_task(cache.refetch(ROOTS))
        await asyncio.sleep(0)

        pending = await mutation.begin(make_submission())
        gate.set()
        await refetch

        assert first_page_ids(cache, ROOTS) == [pending.temp_id, "a"]

    @pytest.mark.asyncio
    async def test_nothing_cached(self, mutation, cache, make_submission):
        """Test that a submission with no cached lists changes nothing."""
        pending = await mutation.begin(make_submission(parent_id="parent"))
        assert pending.snapshot == {}
        assert cache.keys() == []


class TestRollback:
    """Tests for undoing failed submissions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parent_id", [None, "parent"])
    async def test_failed_submission_restores_cache(self, mutation, populated, mock_api, notifier, make_submission, parent_id):
        """Test that a failed root comment or reply leaves the cache deep-equal to before."""
        before = {key: populated.get(key) for key in (ROOTS, ROOTS_BY_NAME, PARENT_REPLIES)}
        seen_during_request = []

        async def reject(submission):
            seen_during_request.append({key: populated.get(key) for key in before})
            raise ApiError(400, "Validation failed", "validation_error", [{"path": ["email"], "message": "Invalid email format."}])

        mock_api.create_comment.side_effect = reject

        with pytest.raises(ApiError):
            await mutation.submit(make_submission(parent_id=parent_id))

        assert seen_during_request[0] != before
        assert {key: populated.get(key) for key in before} == before
        notifier.error.assert_called_once_with("Comment Failed", "Email: Invalid email format.")
        notifier.success.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_submissions_are_independent(self, mutation, populated, make_submission):
        """Test that rolling back one of two pending replies keeps the other intact."""
        before = {key: populated.get(key) for key in (ROOTS, ROOTS_BY_NAME, PARENT_REPLIES)}
        first = await mutation.begin(make_submission(parent_id="parent", text="first"))
        second = await mutation.begin(make_submission(parent_id="parent", text="second"))
        assert first.temp_id != second.temp_id
        assert replies_count(populated, ROOTS, "parent") == 3

        mutation.rollback(first)

        assert first_page_ids(populated, PARENT_REPLIES) == [second.temp_id, "reply1"]
        assert replies_count(populated, ROOTS, "parent") == 2
        assert replies_count(populated, ROOTS_BY_NAME, "parent") == 2

        mutation.rollback(second)

        assert {key: populated.get(key) for key in before} == before

    @pytest.mark.asyncio
    async def test_rollback_in_submission_order(self, mutation, populated, make_submission):
        """Test that the later submission rolled back first keeps the earlier one."""
        before = {key: populated.get(key) for key in (ROOTS, PARENT_REPLIES)}
        first = await mutation.begin(make_submission(parent_id="parent"))
        second = await mutation.begin(make_submission(parent_id="parent"))

        mutation.rollback(second)
        assert first_page_ids(populated, PARENT_REPLIES) == [first.temp_id, "reply1"]
        assert replies_count(populated, ROOTS, "parent") == 2

        mutation.rollback(first)
        assert {key: populated.get(key) for key in before} == before

    @pytest.mark.asyncio
    async def test_rollback_after_reload_keeps_server_counts(
        self, mutation, populated, make_client_comment, make_data, make_submission
    ):
        """Test that counts reloaded from the server are not decremented again."""
        pending = await mutation.begin(make_submission(parent_id="parent"))
        server_data = make_data([make_client_comment("parent", replies_count=1)])

        async def load(_):
            return server_data

        await populated.fetch(ROOTS, load)
        mutation.rollback(pending)

        assert populated.get(ROOTS) == server_data
        assert not populated.get(PARENT_REPLIES).contains(pending.temp_id)

    @pytest.mark.asyncio
    async def test_rollback_after_next_page_restores_parent_count(
        self, mutation, cache, mock_api, make_client_comment, make_submission
    ):
        """Test that appending a page while a reply is pending still lets the parent's count go back."""
        parent = make_client_comment("parent", replies_count=1)
        cache.set(
            ROOTS,
            InfiniteData(pages=(CommentsPage(data=[parent, make_client_comment("r2")], next_cursor="r2"),), page_params=(None,)),
        )
        # The next page shows the parent again with its server count
        next_page = CommentsPage(data=[make_client_comment("r3"), make_client_comment("parent", replies_count=1)])

        async def fetch_page(cursor):
            assert cursor == "r2"
            return next_page

        cache.register(ROOTS, fetch_page)
        pending = await mutation.begin(make_submission(parent_id="parent"))
        assert replies_count(cache, ROOTS, "parent") == 2

        await CommentQueries(mock_api, cache).fetch_next_page(ROOTS)
        mutation.rollback(pending)

        data = cache.get(ROOTS)
        assert len(data.pages) == 2
        assert [c.replies_count for c in data.comments if c.id == "parent"] == [1, 1]


class TestCommit:
    """Tests for successful submissions."""

    @pytest.mark.asyncio
    async def test_reply_invalidates_affected_lists(
        self, mutation, populated, mock_api, notifier, make_client_comment, make_submission
    ):
        """Test that the reply list and lists showing the parent are reloaded from the server."""
        server_reply = make_client_comment("server-reply", parent_id="parent")
        mock_api.create_comment.return_value = server_reply
        refreshed_parent = make_client_comment("parent", replies_count=2)

        async def roots_fetcher(cursor):
            return CommentsPage(data=[refreshed_parent])

        async def replies_fetcher(cursor):
            return CommentsPage(data=[server_reply, make_client_comment("reply1", parent_id="parent")])

        populated.register(ROOTS, roots_fetcher)
        populated.register(PARENT_REPLIES, replies_fetcher)

        comment = await mutation.submit(make_submission(parent_id="parent"))

        assert comment == server_reply
        assert first_page_ids(populated, PARENT_REPLIES) == ["server-reply", "reply1"]
        assert replies_count(populated, ROOTS, "parent") == 2
        assert not any(c.is_optimistic for c in populated.get(ROOTS).comments)
        assert populated.is_stale(ROOTS_BY_NAME)
        notifier.success.assert_called_once_with("Comment Posted!", "Your reply has been added.")

    @pytest.mark.asyncio
    async def test_provisional_entry_replaced_without_reload(
        self, mutation, populated, mock_api, make_client_comment, make_submission
    ):
        """Test that lists that cannot be reloaded show the server's comment instead of the provisional one."""
        server_comment = make_client_comment("server-root")
        mock_api.create_comment.return_value = server_comment

        await mutation.submit(make_submission())

        assert first_page_ids(populated, ROOTS)[0] == "server-root"
        assert first_page_ids(populated, ROOTS_BY_NAME)[0] == "server-root"
        assert populated.is_stale(ROOTS)
