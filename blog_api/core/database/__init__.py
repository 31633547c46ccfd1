"""Cassandra access helpers.

Connection management lives in ``blog_api.core.database.async_cassandra``;
it is not re-exported here because it imports every table definition.
"""

from blog_api.core.database.execution import execute, was_applied


__all__ = [
    "execute",
    "was_applied",
]
