"""Shared fixtures.

API tests run the real services against ``FakeCassandraSession``, an
in-memory stand-in that understands exactly the CQL statements the services
prepare.
"""

import os
import tempfile
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest


# Log files go to a scratch directory; must happen before blog_api.main import
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="blog-api-logs-"))
os.environ.setdefault("ENVIRONMENT", "testing")

from fastapi.testclient import TestClient  # noqa: E402

from blog_api.auth.models import User  # noqa: E402
from blog_api.auth.service import UserService  # noqa: E402
from blog_api.comments.service import CommentService  # noqa: E402
from blog_api.posts.models import Post  # noqa: E402
from blog_api.posts.service import PostService  # noqa: E402


KEYSPACE = "blog_test"


def _row(**fields) -> SimpleNamespace:
    return SimpleNamespace(**fields)


def _stored(value: datetime) -> datetime:
    """TIMESTAMP as the driver hands it back: naive, in UTC."""
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


class FakeCassandraSession:
    """In-memory Cassandra session supporting the service statements."""

    def __init__(self, keyspace: str = KEYSPACE):
        self.keyspace = keyspace
        self.users: dict[UUID, str] = {}
        self.posts: dict[UUID, dict] = {}
        # comments keyed by primary key, comments_by_id keyed by id
        self.comments: dict[tuple, dict] = {}
        self.comments_by_id: dict[UUID, dict] = {}
        self.likes: dict[tuple[UUID, UUID], datetime] = {}
        self.executed: list[str] = []
        self.fail_with: Exception | None = None
        # (query fragment, first bind value, error) raised once when matched
        self.fail_once_on: tuple[str, object, Exception] | None = None

        ks = keyspace
        self._handlers = [
            (f"FROM {ks}.users WHERE user_id", self._get_user),
            (f"FROM {ks}.users WHERE name", self._get_user_by_name),
            (f"INSERT INTO {ks}.users", self._insert_user),
            (f"FROM {ks}.posts WHERE post_id", self._get_post),
            (f"SELECT post_id, title FROM {ks}.posts", self._list_posts),
            (f"INSERT INTO {ks}.posts", self._insert_post),
            (f"SELECT * FROM {ks}.comments WHERE post_id", self._comments_by_post),
            (f"SELECT * FROM {ks}.comments_by_id", self._comment_by_id),
            (f"INSERT INTO {ks}.comments (", self._insert_comment),
            (f"INSERT INTO {ks}.comments_by_id (", self._insert_comment_by_id),
            (f"UPDATE {ks}.comments_by_id SET", self._update_comment_by_id),
            (f"UPDATE {ks}.comments SET", self._update_comment),
            (f"DELETE FROM {ks}.comments WHERE", self._delete_comment),
            (f"DELETE FROM {ks}.comments_by_id WHERE", self._delete_comment_by_id),
            ("COUNT(*)", self._count_likes),
            ("WHERE comment_id IN ? AND user_id = ?", self._user_likes),
            (f"SELECT comment_id, user_id FROM {ks}.likes", self._get_like),
            (f"INSERT INTO {ks}.likes", self._insert_like),
            ("WHERE comment_id = ? AND user_id = ? IF EXISTS", self._delete_like),
            (f"DELETE FROM {ks}.likes WHERE comment_id = ?", self._delete_likes),
        ]

    # -- driver surface -------------------------------------------------------

    def prepare(self, query: str) -> SimpleNamespace:
        return SimpleNamespace(query_string=" ".join(query.split()))

    async def aexecute(self, statement, parameters=None):
        query = getattr(statement, "query_string", None) or " ".join(
            str(statement).split()
        )
        self.executed.append(query)
        if self.fail_with is not None:
            raise self.fail_with
        if self.fail_once_on is not None:
            fragment, value, error = self.fail_once_on
            if fragment in query and parameters and parameters[0] == value:
                self.fail_once_on = None
                raise error
        for fragment, handler in self._handlers:
            if fragment in query:
                return handler(*(parameters or []))
        raise AssertionError(f"Unexpected query: {query}")

    # -- seeding helpers ------------------------------------------------------

    def add_user(self, name: str) -> User:
        user = User(user_id=uuid4(), name=name)
        self.users[user.user_id] = name
        return user

    def add_post(self, title: str = "Post 1", body: str = "Body") -> Post:
        post = Post(post_id=uuid4(), title=title, body=body)
        self.posts[post.post_id] = {
            "title": title,
            "body": body,
            "created_at": datetime.now(UTC),
        }
        return post

    # -- users ----------------------------------------------------------------

    def _get_user(self, user_id):
        if user_id not in self.users:
            return []
        return [_row(user_id=user_id, name=self.users[user_id])]

    def _get_user_by_name(self, name):
        return [
            _row(user_id=uid, name=n) for uid, n in self.users.items() if n == name
        ][:1]

    def _insert_user(self, user_id, name):
        self.users[user_id] = name
        return []

    # -- posts ----------------------------------------------------------------

    def _get_post(self, post_id):
        post = self.posts.get(post_id)
        if post is None:
            return []
        return [_row(post_id=post_id, title=post["title"], body=post["body"])]

    def _list_posts(self):
        return [_row(post_id=pid, title=p["title"]) for pid, p in self.posts.items()]

    def _insert_post(self, post_id, title, body, created_at):
        self.posts[post_id] = {"title": title, "body": body, "created_at": created_at}
        return []

    # -- comments -------------------------------------------------------------

    def _comments_by_post(self, post_id):
        rows = [
            c for (pid, _, _), c in self.comments.items() if pid == post_id
        ]
        rows.sort(key=lambda c: c["created_at"], reverse=True)
        return [_row(**c) for c in rows]

    def _comment_by_id(self, comment_id):
        comment = self.comments_by_id.get(comment_id)
        return [_row(**comment)] if comment else []

    def _insert_comment(
        self, post_id, created_at, comment_id, parent_id, author_id, author_name, message
    ):
        created_at = _stored(created_at)
        self.comments[(post_id, created_at, comment_id)] = {
            "post_id": post_id,
            "created_at": created_at,
            "comment_id": comment_id,
            "parent_id": parent_id,
            "author_id": author_id,
            "author_name": author_name,
            "message": message,
        }
        return []

    def _insert_comment_by_id(
        self, comment_id, post_id, created_at, parent_id, author_id, author_name, message
    ):
        created_at = _stored(created_at)
        self.comments_by_id[comment_id] = {
            "comment_id": comment_id,
            "post_id": post_id,
            "created_at": created_at,
            "parent_id": parent_id,
            "author_id": author_id,
            "author_name": author_name,
            "message": message,
        }
        return []

    def _update_comment_by_id(self, message, comment_id):
        comment = self.comments_by_id.get(comment_id)
        if comment is None:
            return [_row(applied=False)]
        comment["message"] = message
        return [_row(applied=True)]

    def _update_comment(self, message, post_id, created_at, comment_id):
        comment = self.comments.get((post_id, _stored(created_at), comment_id))
        if comment is None:
            return [_row(applied=False)]
        comment["message"] = message
        return [_row(applied=True)]

    def _delete_comment(self, post_id, created_at, comment_id):
        self.comments.pop((post_id, _stored(created_at), comment_id), None)
        return []

    def _delete_comment_by_id(self, comment_id):
        self.comments_by_id.pop(comment_id, None)
        return []

    # -- likes ----------------------------------------------------------------

    def _count_likes(self, comment_ids):
        counts: dict[UUID, int] = {}
        for cid, _ in self.likes:
            if cid in comment_ids:
                counts[cid] = counts.get(cid, 0) + 1
        return [_row(comment_id=cid, like_count=n) for cid, n in counts.items()]

    def _user_likes(self, comment_ids, user_id):
        return [
            _row(comment_id=cid)
            for cid, uid in self.likes
            if cid in comment_ids and uid == user_id
        ]

    def _get_like(self, comment_id, user_id):
        if (comment_id, user_id) in self.likes:
            return [_row(comment_id=comment_id, user_id=user_id)]
        return []

    def _insert_like(self, comment_id, user_id, created_at):
        if (comment_id, user_id) in self.likes:
            return [_row(applied=False, comment_id=comment_id, user_id=user_id)]
        self.likes[(comment_id, user_id)] = created_at
        return [_row(applied=True)]

    def _delete_like(self, comment_id, user_id):
        if self.likes.pop((comment_id, user_id), None) is None:
            return [_row(applied=False)]
        return [_row(applied=True)]

    def _delete_likes(self, comment_id):
        for key in [key for key in self.likes if key[0] == comment_id]:
            del self.likes[key]
        return []


# ==============================================================================
# Service fixtures
# ==============================================================================


@pytest.fixture
def session() -> FakeCassandraSession:
    return FakeCassandraSession()


@pytest.fixture
def user_service(session: FakeCassandraSession) -> UserService:
    return UserService(session=session, keyspace=KEYSPACE)


@pytest.fixture
def post_service(session: FakeCassandraSession) -> PostService:
    return PostService(session=session, keyspace=KEYSPACE)


@pytest.fixture
def comment_service(
    session: FakeCassandraSession,
    post_service: PostService,
    user_service: UserService,
) -> CommentService:
    return CommentService(
        session=session,
        keyspace=KEYSPACE,
        post_service=post_service,
        user_service=user_service,
    )


@pytest.fixture
def kyle(session: FakeCassandraSession) -> User:
    return session.add_user("Kyle")


@pytest.fixture
def sally(session: FakeCassandraSession) -> User:
    return session.add_user("Sally")


@pytest.fixture
def post(session: FakeCassandraSession) -> Post:
    return session.add_post("Post 1", "Lorem ipsum dolor sit amet")


# ==============================================================================
# API fixtures
# ==============================================================================


def act_as(client: TestClient, user: User | None) -> None:
    """Make subsequent requests carry ``user``'s cookie (or none)."""
    client.cookies.clear()
    if user is not None:
        client.cookies.set("userId", str(user.user_id))


@pytest.fixture
def client(
    user_service: UserService,
    post_service: PostService,
    comment_service: CommentService,
    kyle: User,
):
    """Test client wired to the in-memory services, Kyle as demo user.

    The lifespan is not run, so no Cassandra or Redis connection is made.
    """
    from blog_api.main import app

    app.state.user_service = user_service
    app.state.post_service = post_service
    app.state.comment_service = comment_service
    app.state.demo_user_id = kyle.user_id
    app.state.redis = None

    test_client = TestClient(app)
    act_as(test_client, kyle)
    yield test_client

    for attr in (
        "user_service",
        "post_service",
        "comment_service",
        "demo_user_id",
        "redis",
    ):
        setattr(app.state, attr, None)


@pytest.fixture
def comment_timestamps():
    """Strictly increasing timestamps for deterministic comment ordering."""
    start = datetime(2024, 1, 1, tzinfo=UTC)
    return (start + timedelta(seconds=i) for i in range(1000))
