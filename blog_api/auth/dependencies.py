"""FastAPI dependencies for the acting user."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from blog_api.core.context import set_user_id


async def get_current_user_id(request: Request) -> UUID:
    """Get the acting user id resolved by ``DemoLoginMiddleware``.

    Raises:
        HTTPException(401): If no user id is present or it is not a UUID
    """
    raw_user_id = getattr(request.state, "user_id", None)
    if not raw_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not logged in",
        )

    try:
        user_id = UUID(str(raw_user_id))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user cookie",
        ) from e

    set_user_id(user_id)
    return user_id


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]


async def get_optional_user_id(request: Request) -> UUID | None:
    """Get the acting user id if one is present and well formed."""
    raw_user_id = getattr(request.state, "user_id", None)
    if not raw_user_id:
        return None
    try:
        return UUID(str(raw_user_id))
    except ValueError:
        return None


OptionalUserId = Annotated[UUID | None, Depends(get_optional_user_id)]
