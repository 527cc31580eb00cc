"""Access guard shared by every mutating entry point.

Request states: unchecked -> structurally valid -> not expired -> authorized.
The first two transitions live in ``validate_session``; the last one needs
the stored account because roles in the session itself are not trusted.
"""

from collections.abc import Callable
from typing import Any

import structlog

from cinemax.auth.models import User
from cinemax.auth.permissions import UserRole, is_admin
from cinemax.auth.session import Session, now_ms, validate_session
from cinemax.auth.users import UserDirectory
from cinemax.core.context import set_user_id
from cinemax.core.errors import AuthorizationError, NotFoundError


logger = structlog.get_logger(__name__)


class AccessGuard:
    """Authenticates sessions and authorizes privileged actions."""

    def __init__(
        self,
        users: UserDirectory,
        admin_role: str = UserRole.ADMIN.value,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.users = users
        self.admin_role = admin_role
        self._clock = clock

    def authenticate(self, raw_session: Any) -> Session:
        """Validate a raw session and bind its user to the log context.

        Raises:
            AuthenticationError: If the session is malformed or expired
        """
        session = validate_session(raw_session, current_ms=self._clock())
        set_user_id(session.user.id)
        return session

    async def resolve_user(self, session: Session) -> User:
        """Load the stored account behind a session.

        Raises:
            NotFoundError: If the account no longer exists
        """
        user = await self.users.get_user_by_id(session.user.id)
        if user is None:
            logger.warning("session_user_not_found", session_user_id=session.user.id)
            raise NotFoundError("User not found", "user_not_found")
        return user

    async def require_admin(self, session: Session) -> User:
        """Return the stored account if it holds the admin role.

        A vanished account is treated as unauthorized rather than missing,
        so deletion never reveals which accounts exist.

        Raises:
            AuthorizationError: If the account is gone or not an admin
        """
        user = await self.users.get_user_by_id(session.user.id)
        if user is None:
            logger.warning(
                "authorization_denied",
                reason="user_not_found",
                session_user_id=session.user.id,
            )
            raise AuthorizationError(code="user_not_found")

        if not is_admin(user.role, self.admin_role):
            logger.warning(
                "authorization_denied",
                reason="not_admin",
                session_user_id=user.id,
                role=user.role,
            )
            raise AuthorizationError(code="not_admin")

        return user
