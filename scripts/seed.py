"""Seed demo data: users, posts and a few comments.

Creates the keyspace and tables if needed, then inserts the demo users
"Kyle" and "Sally", two posts and a short comment thread. Users that already
exist (by name) are reused; posts are only created when there are none.

Usage:
    python scripts/seed.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from blog_api.auth.models import User, create_user
from blog_api.auth.service import UserService
from blog_api.comments.service import CommentService
from blog_api.config.settings import get_settings
from blog_api.core.database.async_cassandra import (
    init_async_cassandra,
    shutdown_async_cassandra,
)
from blog_api.posts.models import create_post
from blog_api.posts.service import PostService


logger = structlog.get_logger(__name__)


DEMO_USERS = ["Kyle", "Sally"]

DEMO_POSTS = [
    (
        "Post 1",
        "Lorem ipsum dolor sit amet, consectetur adipiscing elit. Sed a "
        "dictum urna. Morbi a ipsum euismod, placerat nulla vel, viverra "
        "lectus. Aenean convallis sapien nec erat semper, at maximus dui "
        "vehicula.",
    ),
    (
        "Post 2",
        "Quisque vel tellus vel justo tempus ornare. Nulla facilisi. Integer "
        "sed libero quis sem aliquet elementum. Nam id dui non neque tempor "
        "finibus a in erat.",
    ),
]


async def seed_users(user_service: UserService) -> dict[str, User]:
    """Create the demo users that do not exist yet."""
    users = {}
    for name in DEMO_USERS:
        user = await user_service.find_by_name(name)
        if user is None:
            user = await user_service.create_user(create_user(name))
        else:
            logger.info("seed_user_exists", name=name, user_id=str(user.user_id))
        users[name] = user
    return users


async def seed_posts(
    post_service: PostService,
    comment_service: CommentService,
    users: dict[str, User],
) -> int:
    """Create demo posts with a small comment thread on the first one.

    Returns:
        Number of posts created
    """
    if await post_service.list_posts():
        logger.info("seed_posts_skipped", message="Posts already exist")
        return 0

    kyle, sally = users["Kyle"], users["Sally"]
    created = []
    for title, body in DEMO_POSTS:
        post, created_at = create_post(title, body)
        created.append(await post_service.create_post(post, created_at))

    first_post = created[0].post_id
    root = await comment_service.create_comment(
        first_post, kyle.user_id, "I am a root comment"
    )
    await comment_service.create_comment(
        first_post, sally.user_id, "I am a nested comment", parent_id=root.id
    )
    await comment_service.create_comment(
        first_post, sally.user_id, "I am another root comment"
    )
    await comment_service.toggle_like(root.id, sally.user_id)

    return len(created)


async def run_seed() -> None:
    """Run the seed."""
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    logger.info("seed_starting", keyspace=keyspace, hosts=settings.cassandra_hosts)

    session = await init_async_cassandra()
    try:
        user_service = UserService(session=session, keyspace=keyspace)
        post_service = PostService(session=session, keyspace=keyspace)
        comment_service = CommentService(
            session=session,
            keyspace=keyspace,
            post_service=post_service,
            user_service=user_service,
        )

        users = await seed_users(user_service)
        posts_created = await seed_posts(post_service, comment_service, users)
        logger.info(
            "seed_completed",
            users=len(users),
            posts_created=posts_created,
        )
    finally:
        await shutdown_async_cassandra()


if __name__ == "__main__":
    asyncio.run(run_seed())
