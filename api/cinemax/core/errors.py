"""Error taxonomy shared by every module.

Each error carries a stable ``code`` and the HTTP status it maps to; the
handler registered in ``cinemax.main`` renders them all with one shape.
"""

from fastapi import status


class AppError(Exception):
    """Base application error."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str = "app_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed request fields."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid request", code: str = "validation_error"):
        super().__init__(message, code)


class AuthenticationError(AppError):
    """Session missing, malformed or expired."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized"):
        super().__init__(message, code)


class AuthorizationError(AppError):
    """Valid session but insufficient role."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden", code: str = "forbidden"):
        super().__init__(message, code)


class NotFoundError(AppError):
    """Referenced user or resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found", code: str = "not_found"):
        super().__init__(message, code)


class RateLimitError(AppError):
    """Caller exceeded the request budget."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str = "Too Many Requests",
        retry_after: float | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, "rate_limit_exceeded")


class PersistenceError(AppError):
    """Reading or writing a document failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Storage failure"):
        super().__init__(message, "persistence_error")
