"""Blog posts."""

from .models import POSTS_TABLES_CQL, Post, PostSummary
from .service import PostService


__all__ = [
    "POSTS_TABLES_CQL",
    "Post",
    "PostService",
    "PostSummary",
]
