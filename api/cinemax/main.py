"""Cinemax Comments API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as redis
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cinemax.auth.service import AccessGuard
from cinemax.auth.users import UserDirectory
from cinemax.comments.repository import CommentRepository
from cinemax.comments.router import router as comments_router
from cinemax.comments.service import CommentService
from cinemax.config import get_settings
from cinemax.core.context import get_request_id
from cinemax.core.errors import AppError, PersistenceError, RateLimitError
from cinemax.core.logging import configure_structlog, get_logger
from cinemax.core.middleware import RequestContextMiddleware
from cinemax.core.rate_limit import create_rate_limiter
from cinemax.core.redis import init_redis, shutdown_redis
from cinemax.health import router as health_router
from cinemax.storage import AsyncDocumentStore, create_document_store


# Configure logging early (before creating logger)
configure_structlog(get_settings())

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        data_dir=str(settings.data_path),
    )

    store = AsyncDocumentStore(create_document_store(settings))
    app.state.document_store = store

    # Redis only backs the shared rate limiter; the app runs without it
    redis_client = None
    if settings.rate_limit_backend == "redis":
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except (redis.RedisError, OSError) as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running with in-memory rate limiting",
            )

    guard = AccessGuard(
        users=UserDirectory(store, document_name=settings.users_document),
        admin_role=settings.admin_role,
    )

    app.state.comment_service = CommentService(
        repository=CommentRepository(store, document_name=settings.comments_document),
        guard=guard,
        rate_limiter=create_rate_limiter(settings, redis_client),
    )
    logger.info(
        "comment_service_initialized",
        storage_type=settings.storage_type,
        rate_limit_backend=settings.rate_limit_backend,
        redis_enabled=redis_client is not None,
    )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays off so Starlette never renders tracebacks; the handlers
    # below log details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Threaded movie comments - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_body(
        request: Request, status_code: int, code: str, message: str
    ) -> dict:
        return {
            "error": True,
            "code": code,
            "message": message,
            "status_code": status_code,
            "request_id": _get_request_id_safe(request),
        }

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        """Render domain errors with their status and stable code."""
        message = exc.message
        headers = None

        if isinstance(exc, PersistenceError):
            logger.error(
                "persistence_error",
                error=exc.message,
                path=request.url.path,
                method=request.method,
                exc_info=exc,
            )
            message = "Internal server error"
        else:
            logger.info(
                "request_rejected",
                code=exc.code,
                status_code=exc.status_code,
                path=request.url.path,
                method=request.method,
            )

        if isinstance(exc, RateLimitError) and exc.retry_after is not None:
            headers = {"Retry-After": str(max(1, round(exc.retry_after)))}

        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.code, message),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, "http_error", message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors; field-level details are safe to expose."""
        logger.warning(
            "validation_error",
            errors=[
                {k: v for k, v in err.items() if k != "input"} for err in exc.errors()
            ],
            path=request.url.path,
            method=request.method,
        )

        content = _error_body(
            request,
            status.HTTP_400_BAD_REQUEST,
            "validation_error",
            "Validation error",
        )
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Full details are logged; the response carries a generic message.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "internal_error",
                "An unexpected error occurred. Please try again later.",
            ),
        )

    app.include_router(health_router)
    app.include_router(comments_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Cinemax Comments API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "cinemax.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
