"""Post service layer.

Posts are immutable through the API, so the post list and individual post
headers (title and body) may be cached in Redis for a short TTL. Comment and
like data is never cached.
"""

import json
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from blog_api.core.database.execution import execute
from blog_api.core.exceptions import PostNotFoundError

from .models import Post, PostSummary


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


class PostService:
    """Service for reading (and seeding) posts."""

    POST_LIST_CACHE_KEY = "posts:all"

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        timeout: float = 10.0,
        cache_ttl: int = 300,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._list_posts = self.session.prepare(f"""
            SELECT post_id, title FROM {self.keyspace}.posts
        """)

        self._get_post = self.session.prepare(f"""
            SELECT post_id, title, body FROM {self.keyspace}.posts
            WHERE post_id = ?
        """)

        self._insert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts (post_id, title, body, created_at)
            VALUES (?, ?, ?, ?)
        """)

    async def list_posts(self) -> list[PostSummary]:
        """Get id and title of every post."""
        cached = await self._cache_get(self.POST_LIST_CACHE_KEY)
        if cached is not None:
            return [
                PostSummary(post_id=UUID(item["id"]), title=item["title"])
                for item in cached
            ]

        rows = await execute(self.session, self._list_posts, timeout=self.timeout)
        posts = [PostSummary.from_row(row) for row in rows]

        await self._cache_set(
            self.POST_LIST_CACHE_KEY,
            [{"id": str(p.post_id), "title": p.title} for p in posts],
        )
        return posts

    async def get_post(self, post_id: UUID) -> Post:
        """Get a post's title and body.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        key = f"posts:{post_id}"
        cached = await self._cache_get(key)
        if cached is not None:
            return Post(post_id=post_id, title=cached["title"], body=cached["body"])

        rows = await execute(
            self.session, self._get_post, [post_id], timeout=self.timeout
        )
        if not rows:
            raise PostNotFoundError

        post = Post.from_row(rows[0])
        await self._cache_set(key, {"title": post.title, "body": post.body})
        return post

    async def create_post(self, post: Post, created_at: datetime) -> Post:
        """Insert a post (used by the seed script)."""
        await execute(
            self.session,
            self._insert_post,
            [post.post_id, post.title, post.body, created_at],
            timeout=self.timeout,
        )
        await self._cache_delete(self.POST_LIST_CACHE_KEY)
        logger.info("post_created", post_id=str(post.post_id))
        return post

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _cache_get(self, key: str) -> list | dict | None:
        if not self.redis:
            return None
        try:
            cached = await self.redis.get(key)
        except RedisError as e:
            # Cache outages must not break reads
            logger.warning("post_cache_read_failed", key=key, error=str(e))
            return None
        return json.loads(cached) if cached else None

    async def _cache_set(self, key: str, value: list | dict) -> None:
        if not self.redis:
            return
        try:
            await self.redis.setex(key, self.cache_ttl, json.dumps(value))
        except RedisError as e:
            logger.warning("post_cache_write_failed", key=key, error=str(e))

    async def _cache_delete(self, key: str) -> None:
        if not self.redis:
            return
        try:
            await self.redis.delete(key)
        except RedisError as e:
            logger.warning("post_cache_delete_failed", key=key, error=str(e))
