"""Pure functions for building MongoDB queries for comment pages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from commentboard.core.modules.comment.models import CommentScope, SortField, SortOrder

if TYPE_CHECKING:
    from commentboard.core.modules.comment.cursor import KeysetPosition

# Closed mapping of public sort fields to stored document paths
_SORT_FIELD_PATHS: dict[SortField, str] = {
    SortField.USER_NAME: "user_name",
    SortField.EMAIL: "email",
    SortField.CREATED_AT: "created_at",
}

_SORT_DIRECTIONS: dict[SortOrder, int] = {
    SortOrder.ASC: 1,
    SortOrder.DESC: -1,
}

# Comparison that selects rows after the cursor in each direction
_KEYSET_OPERATORS: dict[SortOrder, str] = {
    SortOrder.ASC: "$gt",
    SortOrder.DESC: "$lt",
}


def get_sort_path(sort_by: SortField) -> str:
    """Get the MongoDB document path for a sort field."""
    return _SORT_FIELD_PATHS[sort_by]


def build_scope_query(scope: CommentScope) -> dict[str, Any]:
    """Build the filter selecting root comments or the direct replies of one comment."""
    return {"parent_id": scope.parent_id}


def build_mongo_sort(sort_by: SortField, sort_order: SortOrder) -> dict[str, int]:
    """Build the sort document.

    The id is always the secondary key, in the same direction, so that no two
    comments compare equal and page boundaries are deterministic.

    Returns:
        Ordered mapping of field path to direction, as accepted by `$sort`
    """
    direction = _SORT_DIRECTIONS[sort_order]
    return {get_sort_path(sort_by): direction, "_id": direction}


def build_keyset_condition(position: KeysetPosition, sort_by: SortField, sort_order: SortOrder) -> dict[str, Any]:
    """Build the strict inequality selecting rows that sort after the given position.

    For descending order: (field < value) OR (field = value AND id < cursor_id).
    Ascending order uses the mirrored `$gt` form.
    """
    path = get_sort_path(sort_by)
    operator = _KEYSET_OPERATORS[sort_order]
    return {
        "$or": [
            {path: {operator: position.value}},
            {path: position.value, "_id": {operator: position.id}},
        ]
    }


def build_page_query(
    scope: CommentScope, sort_by: SortField, sort_order: SortOrder, position: KeysetPosition | None = None
) -> dict[str, Any]:
    """Build the full filter for one page: scope plus the optional keyset condition."""
    query = build_scope_query(scope)
    if position is not None:
        query.update(build_keyset_condition(position, sort_by, sort_order))
    return query
