"""Unit tests for CommentService against a mocked Cassandra session."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session

from blog_api.auth.models import User
from blog_api.auth.service import UserService
from blog_api.comments.service import CommentService, require_message
from blog_api.core.exceptions import (
    CommentNotFoundError,
    PermissionDeniedError,
    PostNotFoundError,
    StorageUnavailableError,
    UserNotFoundError,
    ValidationError,
)
from blog_api.posts.models import Post
from blog_api.posts.service import PostService


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: Mock(query_string=query))
    session.aexecute = AsyncMock(return_value=[])
    return session


@pytest.fixture
def post_id() -> UUID:
    return uuid4()


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def mock_post_service(post_id):
    service = Mock(spec=PostService)
    service.get_post = AsyncMock(
        return_value=Post(post_id=post_id, title="Post 1", body="Body")
    )
    return service


@pytest.fixture
def mock_user_service(owner_id):
    service = Mock(spec=UserService)
    service.get_user = AsyncMock(return_value=User(user_id=owner_id, name="Kyle"))
    return service


@pytest.fixture
def comment_service(mock_session, mock_post_service, mock_user_service):
    return CommentService(
        session=mock_session,
        keyspace="test_keyspace",
        post_service=mock_post_service,
        user_service=mock_user_service,
        timeout=1.0,
    )


def comment_row(post_id: UUID, author_id: UUID, **overrides) -> SimpleNamespace:
    fields = {
        "comment_id": uuid4(),
        "post_id": post_id,
        "parent_id": None,
        "author_id": author_id,
        "author_name": "Kyle",
        "message": "Hello",
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestRequireMessage:
    @pytest.mark.parametrize("message", [None, "", "   ", "\n\t"])
    def test_rejects_blank(self, message):
        with pytest.raises(ValidationError, match="Message is required"):
            require_message(message)

    def test_keeps_message_verbatim(self):
        assert require_message("  hi  ") == "  hi  "


class TestCreateComment:
    @pytest.mark.asyncio
    async def test_empty_message_writes_nothing(
        self, comment_service, mock_session, post_id, owner_id
    ):
        with pytest.raises(ValidationError):
            await comment_service.create_comment(post_id, owner_id, "  ")

        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_post(
        self, comment_service, mock_post_service, mock_session, post_id, owner_id
    ):
        mock_post_service.get_post.side_effect = PostNotFoundError

        with pytest.raises(PostNotFoundError):
            await comment_service.create_comment(post_id, owner_id, "Hello")

        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_author(
        self, comment_service, mock_user_service, post_id, owner_id
    ):
        mock_user_service.get_user.return_value = None

        with pytest.raises(UserNotFoundError):
            await comment_service.create_comment(post_id, owner_id, "Hello")

    @pytest.mark.asyncio
    async def test_writes_both_tables(
        self, comment_service, mock_session, post_id, owner_id
    ):
        result = await comment_service.create_comment(post_id, owner_id, "Hello")

        assert result.message == "Hello"
        assert result.author.id == owner_id
        assert result.author.name == "Kyle"
        assert result.like_count == 0
        assert result.liked_by_me is False
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_parent_on_other_post_is_rejected(
        self, comment_service, mock_session, post_id, owner_id
    ):
        other_post = uuid4()
        mock_session.aexecute.return_value = [comment_row(other_post, owner_id)]

        with pytest.raises(ValidationError, match="Parent comment"):
            await comment_service.create_comment(
                post_id, owner_id, "Reply", parent_id=uuid4()
            )

        # Only the parent lookup ran
        assert mock_session.aexecute.await_count == 1


class TestUpdateComment:
    @pytest.mark.asyncio
    async def test_blank_message_checked_before_lookup(
        self, comment_service, mock_session, owner_id
    ):
        with pytest.raises(ValidationError):
            await comment_service.update_comment(uuid4(), owner_id, "")

        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_owner_is_rejected(
        self, comment_service, mock_session, post_id, owner_id
    ):
        row = comment_row(post_id, owner_id)
        mock_session.aexecute.return_value = [row]

        with pytest.raises(PermissionDeniedError, match="edit"):
            await comment_service.update_comment(row.comment_id, uuid4(), "Hacked")

        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_comment_deleted_concurrently(
        self, comment_service, mock_session, post_id, owner_id
    ):
        row = comment_row(post_id, owner_id)
        mock_session.aexecute.side_effect = [
            [row],
            [SimpleNamespace(applied=False)],
        ]

        with pytest.raises(CommentNotFoundError):
            await comment_service.update_comment(row.comment_id, owner_id, "Edited")

    @pytest.mark.asyncio
    async def test_listing_row_deleted_between_writes(
        self, comment_service, mock_session, post_id, owner_id
    ):
        row = comment_row(post_id, owner_id)
        mock_session.aexecute.side_effect = [
            [row],
            [SimpleNamespace(applied=True)],
            [SimpleNamespace(applied=False)],
        ]

        with pytest.raises(CommentNotFoundError):
            await comment_service.update_comment(row.comment_id, owner_id, "Edited")

        listing_update = mock_session.aexecute.await_args_list[2].args[0]
        assert "IF EXISTS" in listing_update.query_string

    @pytest.mark.asyncio
    async def test_wrong_post(self, comment_service, mock_session, post_id, owner_id):
        row = comment_row(post_id, owner_id)
        mock_session.aexecute.return_value = [row]

        with pytest.raises(CommentNotFoundError):
            await comment_service.update_comment(
                row.comment_id, owner_id, "Edited", post_id=uuid4()
            )


class TestDeleteComment:
    @pytest.mark.asyncio
    async def test_non_owner_is_rejected(
        self, comment_service, mock_session, post_id, owner_id
    ):
        row = comment_row(post_id, owner_id)
        mock_session.aexecute.return_value = [row]

        with pytest.raises(PermissionDeniedError, match="delete"):
            await comment_service.delete_comment(row.comment_id, uuid4())

        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_comment(self, comment_service, mock_session, owner_id):
        mock_session.aexecute.return_value = []

        with pytest.raises(CommentNotFoundError):
            await comment_service.delete_comment(uuid4(), owner_id)


class TestToggleLike:
    @pytest.mark.asyncio
    async def test_concurrent_create_still_reports_liked(
        self, comment_service, mock_session, post_id, owner_id
    ):
        row = comment_row(post_id, owner_id)
        mock_session.aexecute.side_effect = [
            [row],
            [],
            [SimpleNamespace(applied=False)],
        ]

        assert await comment_service.toggle_like(row.comment_id, owner_id) is True

    @pytest.mark.asyncio
    async def test_concurrent_delete_still_reports_unliked(
        self, comment_service, mock_session, post_id, owner_id
    ):
        row = comment_row(post_id, owner_id)
        like = SimpleNamespace(comment_id=row.comment_id, user_id=owner_id)
        mock_session.aexecute.side_effect = [
            [row],
            [like],
            [SimpleNamespace(applied=False)],
        ]

        assert await comment_service.toggle_like(row.comment_id, owner_id) is False

    @pytest.mark.asyncio
    async def test_missing_comment(self, comment_service, mock_session, owner_id):
        mock_session.aexecute.return_value = []

        with pytest.raises(CommentNotFoundError):
            await comment_service.toggle_like(uuid4(), owner_id)

        assert mock_session.aexecute.await_count == 1


class TestLikeAggregation:
    @pytest.mark.asyncio
    async def test_like_queries_are_chunked(self, comment_service, mock_session):
        comment_ids = [uuid4() for _ in range(250)]

        await comment_service.get_like_counts(comment_ids)

        chunk_sizes = [
            len(call.args[1][0]) for call in mock_session.aexecute.await_args_list
        ]
        assert chunk_sizes == [100, 100, 50]

    @pytest.mark.asyncio
    async def test_anonymous_viewer_skips_membership_query(
        self, comment_service, mock_session
    ):
        liked = await comment_service.get_liked_comment_ids([uuid4()], None)

        assert liked == set()
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_post_without_comments_skips_like_queries(
        self, comment_service, mock_session, post_id
    ):
        comments = await comment_service.get_post_comments(post_id, uuid4())

        assert comments == []
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_rows_without_author_are_skipped(
        self, comment_service, mock_session, post_id, owner_id
    ):
        good = comment_row(post_id, owner_id)
        partial = comment_row(
            post_id, None, author_name=None, message="Edited", parent_id=None
        )
        mock_session.aexecute.side_effect = [[good, partial], [], []]

        comments = await comment_service.get_post_comments(post_id, uuid4())

        assert [c.id for c in comments] == [good.comment_id]

    @pytest.mark.asyncio
    async def test_storage_timeout_propagates(
        self, comment_service, mock_session, post_id
    ):
        mock_session.aexecute.side_effect = TimeoutError

        with pytest.raises(StorageUnavailableError):
            await comment_service.get_post_comments(post_id)
