"""Comment API endpoints.

Routes for creating, editing and deleting comments on a post and for
toggling the acting user's like on a comment.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter

from blog_api.auth.dependencies import CurrentUserId
from blog_api.core.exceptions import BlogError, handle_blog_error

from .dependencies import CommentServiceDep
from .schemas import (
    CommentResponse,
    CreateCommentRequest,
    DeleteCommentResponse,
    ToggleLikeResponse,
    UpdateCommentRequest,
    UpdateCommentResponse,
)


logger = structlog.get_logger(__name__)


router = APIRouter(prefix="/posts/{post_id}/comments", tags=["comments"])


@router.post(
    "",
    response_model=CommentResponse,
    summary="Create comment",
)
async def create_comment(
    post_id: UUID,
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> CommentResponse:
    """Create a top-level comment, or a reply when ``parentId`` is given."""
    try:
        return await comment_service.create_comment(
            post_id=post_id,
            author_id=user_id,
            message=data.message,
            parent_id=data.parent_id,
        )
    except BlogError as e:
        raise handle_blog_error(e) from e


@router.put(
    "/{comment_id}",
    response_model=UpdateCommentResponse,
    summary="Edit comment",
)
async def update_comment(
    post_id: UUID,
    comment_id: UUID,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> UpdateCommentResponse:
    """Replace the message of a comment owned by the acting user."""
    try:
        message = await comment_service.update_comment(
            comment_id=comment_id,
            user_id=user_id,
            message=data.message,
            post_id=post_id,
        )
        return UpdateCommentResponse(message=message)
    except BlogError as e:
        raise handle_blog_error(e) from e


@router.delete(
    "/{comment_id}",
    response_model=DeleteCommentResponse,
    summary="Delete comment",
)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> DeleteCommentResponse:
    """Delete a comment owned by the acting user, along with its replies."""
    try:
        deleted_id = await comment_service.delete_comment(
            comment_id=comment_id,
            user_id=user_id,
            post_id=post_id,
        )
        return DeleteCommentResponse(id=deleted_id)
    except BlogError as e:
        raise handle_blog_error(e) from e


@router.post(
    "/{comment_id}/toggleLike",
    response_model=ToggleLikeResponse,
    summary="Toggle like",
)
async def toggle_like(
    post_id: UUID,
    comment_id: UUID,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> ToggleLikeResponse:
    """Like the comment, or remove the acting user's existing like."""
    try:
        add_like = await comment_service.toggle_like(
            comment_id=comment_id,
            user_id=user_id,
            post_id=post_id,
        )
        return ToggleLikeResponse(add_like=add_like)
    except BlogError as e:
        raise handle_blog_error(e) from e
