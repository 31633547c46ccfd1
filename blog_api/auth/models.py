"""User table and entity.

Users are seeded outside the request API and never change here; the
request layer only needs to look them up by id (comment authors) or by name
(the demo login user).
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4


USERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    user_id UUID PRIMARY KEY,
    name TEXT
)
"""

USERS_NAME_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_name_idx
ON {keyspace}.users (name)
"""

AUTH_TABLES_CQL = [
    USERS_TABLE_CQL,
    USERS_NAME_INDEX_CQL,
]


@dataclass
class User:
    """Blog user."""

    user_id: UUID
    name: str

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User from Cassandra row."""
        return cls(user_id=row.user_id, name=row.name or "")


def create_user(name: str) -> User:
    return User(user_id=uuid4(), name=name)
