"""Post table and entity.

Posts are read-only through the API; they are created by the seed script.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id UUID PRIMARY KEY,
    title TEXT,
    body TEXT,
    created_at TIMESTAMP
)
"""

POSTS_TABLES_CQL = [
    POSTS_TABLE_CQL,
]


@dataclass
class Post:
    """Blog post."""

    post_id: UUID
    title: str
    body: str

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(post_id=row.post_id, title=row.title or "", body=row.body or "")


@dataclass
class PostSummary:
    """Post as shown in the post list."""

    post_id: UUID
    title: str

    @classmethod
    def from_row(cls, row: Any) -> "PostSummary":
        return cls(post_id=row.post_id, title=row.title or "")


def create_post(title: str, body: str) -> tuple[Post, datetime]:
    """Create a new post and its creation timestamp."""
    return Post(post_id=uuid4(), title=title, body=body), datetime.now(UTC)
