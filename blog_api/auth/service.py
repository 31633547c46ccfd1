"""User lookups."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from blog_api.core.database.execution import execute

from .models import User


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class UserService:
    """Read access to seeded users."""

    def __init__(self, session: "Session", keyspace: str, timeout: float = 10.0):
        self.session = session
        self.keyspace = keyspace
        self.timeout = timeout
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_user = self.session.prepare(f"""
            SELECT user_id, name FROM {self.keyspace}.users
            WHERE user_id = ?
        """)

        # Secondary index on name
        self._get_user_by_name = self.session.prepare(f"""
            SELECT user_id, name FROM {self.keyspace}.users
            WHERE name = ?
        """)

        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users (user_id, name)
            VALUES (?, ?)
        """)

    async def get_user(self, user_id: UUID) -> User | None:
        rows = await execute(
            self.session, self._get_user, [user_id], timeout=self.timeout
        )
        return User.from_row(rows[0]) if rows else None

    async def find_by_name(self, name: str) -> User | None:
        """Find the first user with the given display name.

        Names are not unique; like the demo login this backs, the first
        match wins.
        """
        rows = await execute(
            self.session, self._get_user_by_name, [name], timeout=self.timeout
        )
        return User.from_row(rows[0]) if rows else None

    async def create_user(self, user: User) -> User:
        """Insert a user (used by the seed script)."""
        await execute(
            self.session,
            self._insert_user,
            [user.user_id, user.name],
            timeout=self.timeout,
        )
        logger.info("user_created", created_user_id=str(user.user_id), name=user.name)
        return user
