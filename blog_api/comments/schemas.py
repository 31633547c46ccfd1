"""Pydantic schemas for comments and likes.

Message emptiness is checked by the service rather than here so that an
empty or missing message is reported as 400 "Message is required" instead of
a 422 validation error.
"""

from datetime import datetime
from uuid import UUID

from blog_api.core.schemas import CamelModel

from .models import Comment


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(CamelModel):
    """Request to create a comment (top-level or reply)."""

    message: str | None = None
    parent_id: UUID | None = None


class UpdateCommentRequest(CamelModel):
    """Request to edit a comment's message."""

    message: str | None = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class AuthorResponse(CamelModel):
    id: UUID
    name: str


class CommentResponse(CamelModel):
    """A comment merged with its like count and the viewer's like state."""

    id: UUID
    message: str
    parent_id: UUID | None = None
    created_at: datetime
    author: AuthorResponse
    like_count: int = 0
    liked_by_me: bool = False

    @classmethod
    def from_comment(
        cls,
        comment: Comment,
        like_count: int = 0,
        liked_by_me: bool = False,
    ) -> "CommentResponse":
        return cls(
            id=comment.comment_id,
            message=comment.message,
            parent_id=comment.parent_id,
            created_at=comment.created_at,
            author=AuthorResponse(id=comment.author_id, name=comment.author_name),
            like_count=like_count,
            liked_by_me=liked_by_me,
        )


class UpdateCommentResponse(CamelModel):
    message: str


class DeleteCommentResponse(CamelModel):
    id: UUID


class ToggleLikeResponse(CamelModel):
    add_like: bool
