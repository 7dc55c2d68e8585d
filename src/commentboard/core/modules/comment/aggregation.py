"""Aggregation stages that attach reply counts and attachments to comment rows.

Both aggregates are computed inside the same pipeline that selects the page, after `$limit`,
so the cost does not grow with one extra query per returned comment.
"""

from typing import Any

COMMENTS_COLLECTION = "comments"
ATTACHMENTS_COLLECTION = "attachments"


def build_aggregate_stages() -> list[dict[str, Any]]:
    """Build the `$lookup` stages producing `replies_count` and `attachments` for each row.

    `$lookup` always yields an array, so comments without files get an empty list.
    """
    return [
        {
            "$lookup": {
                "from": COMMENTS_COLLECTION,
                "localField": "_id",
                "foreignField": "parent_id",
                "pipeline": [{"$project": {"_id": 1}}],
                "as": "_replies",
            }
        },
        {
            "$lookup": {
                "from": ATTACHMENTS_COLLECTION,
                "localField": "_id",
                "foreignField": "comment_id",
                "pipeline": [{"$sort": {"position": 1, "_id": 1}}],
                "as": "attachments",
            }
        },
        {"$set": {"replies_count": {"$size": "$_replies"}}},
        {"$unset": "_replies"},
    ]


def build_page_pipeline(query: dict[str, Any], sort: dict[str, int], limit: int) -> list[dict[str, Any]]:
    """Build the pipeline for one page.

    Fetches `limit + 1` rows so the caller can tell whether another page exists.
    """
    return [
        {"$match": query},
        {"$sort": sort},
        {"$limit": limit + 1},
        *build_aggregate_stages(),
    ]


def build_single_pipeline(comment_id: Any) -> list[dict[str, Any]]:
    """Build the pipeline fetching one comment with its aggregates."""
    return [{"$match": {"_id": comment_id}}, {"$limit": 1}, *build_aggregate_stages()]
