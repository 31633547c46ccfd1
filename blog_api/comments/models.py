"""Database models for threaded comments and likes.

Cassandra table definitions for:
- Comments: one partition per post, newest first, adjacency list via parent_id
- Comments by ID: O(1) lookup for ownership checks and post membership
- Likes: one partition per comment, one row per liking user

Architecture: Adjacency List pattern for threading
- parent_id references the parent comment (NULL for top-level comments)
- The (comment_id, user_id) primary key of ``likes`` is the uniqueness
  backstop for the like toggle; creates and deletes use lightweight
  transactions so concurrent toggles are detected instead of silently merged
- Author name is denormalized at write time (users are immutable)
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition by post_id, clustering by created_at DESC: a single-partition
# read returns the whole thread newest first
COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    post_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    message TEXT,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    post_id UUID,
    created_at TIMESTAMP,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    message TEXT
)
"""

LIKES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.likes (
    comment_id UUID,
    user_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((comment_id), user_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENT_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
    LIKES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to the naive timestamps the driver returns."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class Comment:
    """Comment entity."""

    comment_id: UUID
    post_id: UUID
    parent_id: UUID | None
    author_id: UUID
    author_name: str
    message: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from a ``comments`` or ``comments_by_id`` row."""
        return cls(
            comment_id=row.comment_id,
            post_id=row.post_id,
            parent_id=row.parent_id,
            author_id=row.author_id,
            author_name=row.author_name or "",
            message=row.message or "",
            created_at=as_utc(row.created_at),
        )


@dataclass
class Like:
    """A user's like on a comment."""

    comment_id: UUID
    user_id: UUID
    created_at: datetime


# ==============================================================================
# Factory Functions
# ==============================================================================


def storage_now() -> datetime:
    """Current UTC time truncated to the millisecond precision Cassandra keeps.

    ``created_at`` is part of the ``comments`` primary key, so the value
    handed back to callers must match what is stored.
    """
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def create_comment(
    post_id: UUID,
    author_id: UUID,
    author_name: str,
    message: str,
    parent_id: UUID | None = None,
) -> Comment:
    """Create a new comment with a fresh id and timestamp."""
    return Comment(
        comment_id=uuid4(),
        post_id=post_id,
        parent_id=parent_id,
        author_id=author_id,
        author_name=author_name,
        message=message,
        created_at=storage_now(),
    )


def create_like(comment_id: UUID, user_id: UUID) -> Like:
    return Like(comment_id=comment_id, user_id=user_id, created_at=storage_now())
