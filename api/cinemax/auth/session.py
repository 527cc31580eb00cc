"""Session validation.

Sessions are issued by an external login flow and sent back by the client
as a plain object::

    {"token": "...", "user": {"id": "...", ...}, "expires": <epoch millis>}

Validation is structural plus an expiry check; the token itself is opaque
here and is never written to logs.
"""

import time
from typing import Any, NoReturn

import structlog
from pydantic import BaseModel, ConfigDict

from cinemax.core.errors import AuthenticationError


logger = structlog.get_logger(__name__)


class SessionUser(BaseModel):
    """User snapshot embedded in a session."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None
    email: str | None = None
    username: str | None = None
    role: str | None = None


class Session(BaseModel):
    """A structurally valid, unexpired session."""

    model_config = ConfigDict(extra="ignore")

    token: str
    user: SessionUser
    expires: float


def now_ms() -> float:
    """Current wall clock time in epoch milliseconds."""
    return time.time() * 1000


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def validate_session(raw: Any, current_ms: float | None = None) -> Session:
    """Validate a raw session object.

    Checks run in order and stop at the first failure: object shape, user id,
    token, expiry type, then ``expires`` strictly after now.

    Args:
        raw: Session value exactly as received in the request body
        current_ms: Override for the current time (epoch millis)

    Returns:
        Parsed Session

    Raises:
        AuthenticationError: With ``code`` naming the failed check
    """
    if not isinstance(raw, dict):
        _reject("session_missing")

    user = raw.get("user")
    if not isinstance(user, dict) or not _non_empty_str(user.get("id")):
        _reject("invalid_user")

    user_id = user["id"]

    if not _non_empty_str(raw.get("token")):
        _reject("invalid_token", user_id)

    expires = raw.get("expires")
    if not _is_number(expires):
        _reject("invalid_expiry", user_id)

    current = now_ms() if current_ms is None else current_ms
    if expires <= current:
        _reject("session_expired", user_id)

    profile = {
        key: user[key]
        for key in ("name", "email", "username", "role")
        if isinstance(user.get(key), str)
    }
    return Session(
        token=raw["token"],
        user=SessionUser(id=user_id, **profile),
        expires=expires,
    )


def _reject(reason: str, user_id: str | None = None) -> NoReturn:
    logger.warning("session_rejected", reason=reason, session_user_id=user_id)
    raise AuthenticationError(code=reason)
