"""Cookie-based demo login.

There is no real authentication: the acting user is whatever id the
``userId`` cookie carries. Requests without the cookie are logged in as the
configured demo user and receive the cookie on the response. With
``demo_login_force`` every request acts as the demo user, whatever cookie it
sent.
"""

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from blog_api.core.context import set_user_id


logger = structlog.get_logger(__name__)


class DemoLoginMiddleware(BaseHTTPMiddleware):
    """Resolve the acting user id into ``request.state.user_id``."""

    def __init__(
        self,
        app: ASGIApp,
        cookie_name: str = "userId",
        force: bool = False,
    ) -> None:
        super().__init__(app)
        self.cookie_name = cookie_name
        self.force = force

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        cookie_value = request.cookies.get(self.cookie_name)
        demo_user_id = getattr(request.app.state, "demo_user_id", None)

        user_id = cookie_value
        issue_cookie = False
        if demo_user_id is not None and (self.force or not cookie_value):
            user_id = str(demo_user_id)
            issue_cookie = cookie_value != user_id

        request.state.user_id = user_id
        if user_id:
            set_user_id(user_id)

        response = await call_next(request)

        if issue_cookie:
            response.set_cookie(self.cookie_name, user_id, path="/", samesite="lax")
            logger.debug("demo_login_cookie_issued", replaced=cookie_value is not None)

        return response
