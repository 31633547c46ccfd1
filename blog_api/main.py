"""Blog Comments API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_api.auth.middleware import DemoLoginMiddleware
from blog_api.auth.service import UserService
from blog_api.comments.router import router as comments_router
from blog_api.comments.service import CommentService
from blog_api.config import get_settings
from blog_api.core.context import get_request_id
from blog_api.core.database.async_cassandra import (
    init_async_cassandra,
    shutdown_async_cassandra,
)
from blog_api.core.exceptions import BlogError
from blog_api.core.logging import configure_structlog, get_logger
from blog_api.core.middleware import RequestContextMiddleware
from blog_api.core.redis import init_redis, shutdown_redis
from blog_api.health import router as health_router
from blog_api.posts.router import router as posts_router
from blog_api.posts.service import PostService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


async def resolve_demo_user(app: FastAPI, user_service: UserService) -> None:
    """Look up the demo login user by name and store its id on ``app.state``."""
    settings = get_settings()
    try:
        user = await user_service.find_by_name(settings.demo_user_name)
    except BlogError as e:
        logger.warning("demo_user_lookup_failed", error=e.message)
        return

    if user is None:
        logger.warning(
            "demo_user_missing",
            name=settings.demo_user_name,
            message="Run scripts/seed.py to create demo users",
        )
        return

    app.state.demo_user_id = user.user_id
    logger.info("demo_user_resolved", name=user.name, user_id=str(user.user_id))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    app.state.demo_user_id = None

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    if settings.redis_enabled:
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - post cache disabled",
            )
    app.state.redis = redis_client

    # Initialize Cassandra
    try:
        session = await init_async_cassandra()
        app.state.cassandra_session = session

        user_service = UserService(
            session=session,
            keyspace=settings.cassandra_keyspace,
            timeout=settings.cassandra_request_timeout,
        )
        post_service = PostService(
            session=session,
            keyspace=settings.cassandra_keyspace,
            redis=redis_client,
            timeout=settings.cassandra_request_timeout,
            cache_ttl=settings.post_cache_ttl_seconds,
        )
        app.state.user_service = user_service
        app.state.post_service = post_service
        app.state.comment_service = CommentService(
            session=session,
            keyspace=settings.cassandra_keyspace,
            post_service=post_service,
            user_service=user_service,
            timeout=settings.cassandra_request_timeout,
        )
        logger.info("services_initialized", redis_enabled=redis_client is not None)

        await resolve_demo_user(app, user_service)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays off so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Blog posts with threaded comments and likes",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Middleware added later wraps the earlier ones: CORS, then request
    # context, then demo login closest to the routes.
    app.add_middleware(
        DemoLoginMiddleware,
        cookie_name=settings.user_cookie_name,
        force=settings.demo_login_force,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    # Credentials are required for the userId cookie
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions, hiding 5xx details unless configured."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        show_detail = (
            exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            or settings.expose_internal_errors
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail) if show_detail else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle request body and path validation errors."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged; the response carries a generic message only.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": GENERIC_ERROR_MESSAGE,
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(posts_router)
    app.include_router(comments_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Blog Comments API",
            "version": settings.app_version,
        }

    return app


app = create_app()
