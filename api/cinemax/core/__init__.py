# Core infrastructure
from cinemax.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from cinemax.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    RateLimitError,
    ValidationError,
)
from cinemax.core.logging import configure_structlog, get_logger
from cinemax.core.middleware import RequestContextMiddleware


__all__ = [
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "PersistenceError",
    "RateLimitError",
    "RequestContextMiddleware",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
