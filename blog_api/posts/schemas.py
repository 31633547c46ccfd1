"""Pydantic schemas for posts."""

from uuid import UUID

from blog_api.comments.schemas import CommentResponse
from blog_api.core.schemas import CamelModel


class PostSummaryResponse(CamelModel):
    """Entry of the post list."""

    id: UUID
    title: str


class PostDetailResponse(CamelModel):
    """A post with its flat, newest-first comment list."""

    title: str
    body: str
    comments: list[CommentResponse]
