"""Role-based access control.

Two roles exist:
- ADMIN: may delete any comment (with its replies)
- USER: may comment and upvote
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles stored on the account record."""

    USER = "user"
    ADMIN = "admin"


def is_admin(role: UserRole | str | None, admin_role: str = UserRole.ADMIN.value) -> bool:
    """Check whether a stored role grants administrative rights.

    Args:
        role: Role as stored on the user (enum, string or missing)
        admin_role: Role value that counts as administrator

    Returns:
        True only for an exact match with ``admin_role``
    """
    if role is None:
        return False
    if isinstance(role, UserRole):
        role = role.value
    return role == admin_role
