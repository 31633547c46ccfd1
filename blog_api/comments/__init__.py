"""Threaded comments and likes.

Note: Service and router are not exported here to avoid circular imports
with the posts module. Import them from their modules directly.
"""

from .models import COMMENTS_TABLES_CQL, Comment, Like


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "Like",
]
