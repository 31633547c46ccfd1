"""Comment service layer.

Business logic for:
- Comment tree retrieval with per-comment like counts and viewer like state
- Comment create / edit / delete with ownership checks
- Like toggling backed by lightweight transactions
"""

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from blog_api.auth.service import UserService
from blog_api.core.database.execution import execute, was_applied
from blog_api.core.exceptions import (
    CommentNotFoundError,
    PermissionDeniedError,
    UserNotFoundError,
    ValidationError,
)
from blog_api.posts.schemas import PostDetailResponse
from blog_api.posts.service import PostService

from .models import Comment, create_comment, create_like
from .schemas import CommentResponse


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


def require_message(message: str | None) -> str:
    """Reject a missing, empty or whitespace-only message.

    Raises:
        ValidationError: If there is nothing to store
    """
    if message is None or not message.strip():
        raise ValidationError("Message is required")
    return message


class CommentService:
    """Service for comments and likes."""

    # Comment ids per IN (...) query against the likes table
    LIKE_QUERY_CHUNK_SIZE = 100

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        post_service: PostService,
        user_service: UserService,
        timeout: float = 10.0,
    ):
        self.session = session
        self.keyspace = keyspace
        self.post_service = post_service
        self.user_service = user_service
        self.timeout = timeout
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Comments
        self._get_comments_by_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
            WHERE post_id = ?
            ORDER BY created_at DESC
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments
            (post_id, created_at, comment_id, parent_id, author_id, author_name, message)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id
            (comment_id, post_id, created_at, parent_id, author_id, author_name, message)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        # Edits are conditional so an edit racing a delete cannot resurrect
        # a partial row in either table
        self._update_comment_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET message = ?
            WHERE comment_id = ?
            IF EXISTS
        """)

        self._update_comment = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments
            SET message = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
            IF EXISTS
        """)

        self._delete_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._delete_comment_by_id = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        # Likes
        self._count_likes = self.session.prepare(f"""
            SELECT comment_id, COUNT(*) AS like_count FROM {self.keyspace}.likes
            WHERE comment_id IN ?
            GROUP BY comment_id
        """)

        self._get_user_likes = self.session.prepare(f"""
            SELECT comment_id FROM {self.keyspace}.likes
            WHERE comment_id IN ? AND user_id = ?
        """)

        self._get_like = self.session.prepare(f"""
            SELECT comment_id, user_id FROM {self.keyspace}.likes
            WHERE comment_id = ? AND user_id = ?
        """)

        self._insert_like = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.likes (comment_id, user_id, created_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        self._delete_like = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.likes
            WHERE comment_id = ? AND user_id = ?
            IF EXISTS
        """)

        self._delete_comment_likes = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.likes
            WHERE comment_id = ?
        """)

    async def _execute(self, statement, parameters=None) -> list:
        return await execute(
            self.session, statement, parameters, timeout=self.timeout
        )

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        rows = await self._execute(self._get_comment, [comment_id])
        return Comment.from_row(rows[0]) if rows else None

    async def _get_comment_on_post(
        self, comment_id: UUID, post_id: UUID | None = None
    ) -> Comment:
        """Fetch a comment, optionally requiring it to belong to ``post_id``.

        Raises:
            CommentNotFoundError: If absent or attached to another post
        """
        comment = await self.get_comment(comment_id)
        if comment is None or (post_id is not None and comment.post_id != post_id):
            raise CommentNotFoundError
        return comment

    # ==========================================================================
    # Comment tree retrieval
    # ==========================================================================

    async def get_post_with_comments(
        self, post_id: UUID, viewing_user_id: UUID | None = None
    ) -> PostDetailResponse:
        """Get a post with all of its comments as seen by ``viewing_user_id``.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        post = await self.post_service.get_post(post_id)
        comments = await self.get_post_comments(post_id, viewing_user_id)
        return PostDetailResponse(title=post.title, body=post.body, comments=comments)

    async def get_post_comments(
        self, post_id: UUID, viewing_user_id: UUID | None = None
    ) -> list[CommentResponse]:
        """Get every comment of a post, newest first, as a flat list.

        Each comment carries its like count and whether the viewing user
        liked it. Threading is preserved through ``parent_id``; building the
        tree is up to the client.
        """
        rows = await self._execute(self._get_comments_by_post, [post_id])
        comments = []
        for row in rows:
            # Rows left behind by a partial write have no author
            if row.author_id is None:
                logger.warning(
                    "comment_row_incomplete",
                    post_id=str(post_id),
                    comment_id=str(row.comment_id),
                )
                continue
            comments.append(Comment.from_row(row))
        if not comments:
            return []

        comment_ids = [comment.comment_id for comment in comments]
        like_counts, liked_ids = await asyncio.gather(
            self.get_like_counts(comment_ids),
            self.get_liked_comment_ids(comment_ids, viewing_user_id),
        )

        return [
            CommentResponse.from_comment(
                comment,
                like_count=like_counts.get(comment.comment_id, 0),
                liked_by_me=comment.comment_id in liked_ids,
            )
            for comment in comments
        ]

    def _chunks(self, comment_ids: list[UUID]) -> list[list[UUID]]:
        size = self.LIKE_QUERY_CHUNK_SIZE
        return [comment_ids[i : i + size] for i in range(0, len(comment_ids), size)]

    async def get_like_counts(self, comment_ids: list[UUID]) -> dict[UUID, int]:
        """Count likes per comment. Comments without likes are omitted."""
        results = await asyncio.gather(
            *(
                self._execute(self._count_likes, [chunk])
                for chunk in self._chunks(comment_ids)
            )
        )
        return {row.comment_id: row.like_count for rows in results for row in rows}

    async def get_liked_comment_ids(
        self, comment_ids: list[UUID], user_id: UUID | None
    ) -> set[UUID]:
        """Return the subset of ``comment_ids`` liked by ``user_id``."""
        if user_id is None:
            return set()
        results = await asyncio.gather(
            *(
                self._execute(self._get_user_likes, [chunk, user_id])
                for chunk in self._chunks(comment_ids)
            )
        )
        return {row.comment_id for rows in results for row in rows}

    # ==========================================================================
    # Comment CRUD
    # ==========================================================================

    async def create_comment(
        self,
        post_id: UUID,
        author_id: UUID,
        message: str | None,
        parent_id: UUID | None = None,
    ) -> CommentResponse:
        """Create a top-level comment or a reply.

        Raises:
            ValidationError: Empty message, or parent not on this post
            PostNotFoundError: If the post does not exist
            UserNotFoundError: If the author does not exist
        """
        message = require_message(message)

        await self.post_service.get_post(post_id)

        author = await self.user_service.get_user(author_id)
        if author is None:
            raise UserNotFoundError

        if parent_id is not None:
            parent = await self.get_comment(parent_id)
            if parent is None or parent.post_id != post_id:
                raise ValidationError("Parent comment not found on this post")

        comment = create_comment(
            post_id=post_id,
            author_id=author.user_id,
            author_name=author.name,
            message=message,
            parent_id=parent_id,
        )

        values = [
            comment.post_id,
            comment.created_at,
            comment.comment_id,
            comment.parent_id,
            comment.author_id,
            comment.author_name,
            comment.message,
        ]
        await self._execute(self._insert_comment, values)
        await self._execute(
            self._insert_comment_by_id,
            [
                comment.comment_id,
                comment.post_id,
                comment.created_at,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.message,
            ],
        )

        logger.info(
            "comment_created",
            comment_id=str(comment.comment_id),
            post_id=str(post_id),
            parent_id=str(parent_id) if parent_id else None,
        )

        # A fresh comment has no likes yet
        return CommentResponse.from_comment(comment, like_count=0, liked_by_me=False)

    async def update_comment(
        self,
        comment_id: UUID,
        user_id: UUID,
        message: str | None,
        post_id: UUID | None = None,
    ) -> str:
        """Replace a comment's message. Only the owner may edit.

        Returns:
            The stored message

        Raises:
            ValidationError: Empty message (checked before any read)
            CommentNotFoundError: Comment absent or not on ``post_id``
            PermissionDeniedError: ``user_id`` is not the author
        """
        message = require_message(message)

        comment = await self._get_comment_on_post(comment_id, post_id)
        if comment.author_id != user_id:
            raise PermissionDeniedError(
                "You do not have permission to edit this message"
            )

        result = await self._execute(self._update_comment_by_id, [message, comment_id])
        if not was_applied(result):
            raise CommentNotFoundError

        result = await self._execute(
            self._update_comment,
            [message, comment.post_id, comment.created_at, comment_id],
        )
        if not was_applied(result):
            raise CommentNotFoundError

        logger.info("comment_updated", comment_id=str(comment_id))
        return message

    async def delete_comment(
        self,
        comment_id: UUID,
        user_id: UUID,
        post_id: UUID | None = None,
    ) -> UUID:
        """Delete a comment together with all of its replies and their likes.

        Returns:
            The id of the deleted comment

        Raises:
            CommentNotFoundError: Comment absent or not on ``post_id``
            PermissionDeniedError: ``user_id`` is not the author
        """
        comment = await self._get_comment_on_post(comment_id, post_id)
        if comment.author_id != user_id:
            raise PermissionDeniedError(
                "You do not have permission to delete this message"
            )

        thread = await self._collect_thread(comment)
        # Deepest replies first: an interrupted cascade leaves the root in
        # place, so retrying the delete reaches the remaining replies
        for target in reversed(thread):
            await self._execute(self._delete_comment_likes, [target.comment_id])
            await self._execute(
                self._delete_comment,
                [target.post_id, target.created_at, target.comment_id],
            )
            await self._execute(self._delete_comment_by_id, [target.comment_id])

        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            post_id=str(comment.post_id),
            replies_deleted=len(thread) - 1,
        )
        return comment_id

    async def _collect_thread(self, root: Comment) -> list[Comment]:
        """Return ``root`` and all of its descendants, replies last."""
        rows = await self._execute(self._get_comments_by_post, [root.post_id])

        children: dict[UUID, list[Comment]] = defaultdict(list)
        for row in rows:
            comment = Comment.from_row(row)
            if comment.parent_id is not None:
                children[comment.parent_id].append(comment)

        thread = [root]
        seen = {root.comment_id}
        index = 0
        while index < len(thread):
            for child in children.get(thread[index].comment_id, []):
                if child.comment_id not in seen:
                    seen.add(child.comment_id)
                    thread.append(child)
            index += 1
        return thread

    # ==========================================================================
    # Likes
    # ==========================================================================

    async def toggle_like(
        self,
        comment_id: UUID,
        user_id: UUID,
        post_id: UUID | None = None,
    ) -> bool:
        """Like the comment if the user has not, otherwise remove the like.

        Returns:
            True if the comment is now liked, False if the like was removed

        Raises:
            CommentNotFoundError: Comment absent or not on ``post_id``
        """
        await self._get_comment_on_post(comment_id, post_id)

        existing = await self._execute(self._get_like, [comment_id, user_id])

        if not existing:
            like = create_like(comment_id, user_id)
            result = await self._execute(
                self._insert_like, [like.comment_id, like.user_id, like.created_at]
            )
            if not was_applied(result):
                # A concurrent toggle created it first; the end state is the same
                logger.info("like_create_conflict", comment_id=str(comment_id))
            logger.info("like_toggled", comment_id=str(comment_id), add_like=True)
            return True

        result = await self._execute(self._delete_like, [comment_id, user_id])
        if not was_applied(result):
            logger.info("like_delete_noop", comment_id=str(comment_id))
        logger.info("like_toggled", comment_id=str(comment_id), add_like=False)
        return False
