"""Post API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from blog_api.auth.dependencies import OptionalUserId
from blog_api.comments.dependencies import CommentServiceDep
from blog_api.core.exceptions import BlogError, handle_blog_error

from .dependencies import PostServiceDep
from .schemas import PostDetailResponse, PostSummaryResponse


router = APIRouter(prefix="/posts", tags=["posts"])


@router.get(
    "",
    response_model=list[PostSummaryResponse],
    summary="List posts",
)
async def list_posts(post_service: PostServiceDep) -> list[PostSummaryResponse]:
    try:
        posts = await post_service.list_posts()
    except BlogError as e:
        raise handle_blog_error(e) from e
    return [PostSummaryResponse(id=post.post_id, title=post.title) for post in posts]


@router.get(
    "/{post_id}",
    response_model=PostDetailResponse,
    summary="Get post with comments",
)
async def get_post(
    post_id: UUID,
    comment_service: CommentServiceDep,
    user_id: OptionalUserId,
) -> PostDetailResponse:
    """Get a post and its comments, newest first.

    ``likedByMe`` reflects the acting user; it is false for every comment
    when no user is resolved.
    """
    try:
        return await comment_service.get_post_with_comments(post_id, user_id)
    except BlogError as e:
        raise handle_blog_error(e) from e
