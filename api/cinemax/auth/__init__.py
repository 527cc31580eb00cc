"""Session validation, user lookup and role checks."""

from cinemax.auth.models import User
from cinemax.auth.permissions import UserRole, is_admin
from cinemax.auth.service import AccessGuard
from cinemax.auth.session import Session, SessionUser, validate_session
from cinemax.auth.users import UserDirectory


__all__ = [
    "AccessGuard",
    "Session",
    "SessionUser",
    "User",
    "UserDirectory",
    "UserRole",
    "is_admin",
    "validate_session",
]
