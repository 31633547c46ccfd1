"""Domain errors and their HTTP translation.

Services raise ``BlogError`` subclasses; routers convert them with
``handle_blog_error`` so the services never depend on HTTP concerns.
"""

from fastapi import HTTPException, status


class BlogError(Exception):
    """Base domain error."""

    def __init__(self, message: str, code: str = "blog_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(BlogError):
    """Bad input shape, e.g. an empty message."""

    def __init__(self, message: str = "Message is required"):
        super().__init__(message, "validation_error")


class PermissionDeniedError(BlogError):
    """Acting user is not the owner of the resource."""

    def __init__(self, message: str = "You do not have permission to do that"):
        super().__init__(message, "permission_denied")


class PostNotFoundError(BlogError):
    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class CommentNotFoundError(BlogError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class UserNotFoundError(BlogError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class StorageError(BlogError):
    """Failure reported by the data store."""

    def __init__(self, message: str = "Storage error"):
        super().__init__(message, "storage_error")


class StorageUnavailableError(BlogError):
    """Data store timed out or has no reachable replicas."""

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(message, "storage_unavailable")


STATUS_BY_CODE = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "permission_denied": status.HTTP_401_UNAUTHORIZED,
    "post_not_found": status.HTTP_404_NOT_FOUND,
    "comment_not_found": status.HTTP_404_NOT_FOUND,
    "user_not_found": status.HTTP_404_NOT_FOUND,
    "storage_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "storage_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def handle_blog_error(error: BlogError) -> HTTPException:
    """Convert a domain error into an HTTPException.

    Args:
        error: Domain error raised by a service

    Returns:
        HTTPException with the mapped status code and the error message
    """
    status_code = STATUS_BY_CODE.get(
        error.code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return HTTPException(status_code=status_code, detail=error.message)
