"""Opaque pagination cursors.

A cursor names the last comment of the previous page by id. The sort value needed to resume
is read back from that comment, so the pair (sort value, id) is always consistent with storage.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from commentboard.core.modules.comment.models import SortField
from commentboard.core.modules.comment.query_builder import get_sort_path
from commentboard.errors import ValidationError


@dataclass(frozen=True)
class KeysetPosition:
    """Resume point of a keyset page: the last row's sort value and id."""

    value: Any
    id: UUID

    @classmethod
    def from_document(cls, doc: dict[str, Any], sort_by: SortField) -> "KeysetPosition":
        """Build the position of a stored comment document for the given sort field."""
        return cls(value=doc[get_sort_path(sort_by)], id=doc["_id"])


def encode_cursor(comment_id: UUID) -> str:
    return str(comment_id)


def decode_cursor(cursor: str) -> UUID:
    """Parse a cursor received from a client.

    Raises:
        ValidationError: If the cursor is not a comment id
    """
    try:
        return UUID(cursor)
    except ValueError:
        raise ValidationError.for_field("cursor", "Invalid cursor format", "uuid_parsing") from None
