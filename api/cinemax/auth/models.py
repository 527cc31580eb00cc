"""User account entity as read from the users collection."""

from dataclasses import dataclass
from typing import Any


@dataclass
class User:
    """Account record. Only ``id`` is required; the rest may be missing."""

    id: str
    name: str | None = None
    email: str | None = None
    username: str | None = None
    role: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create User from a stored JSON object."""
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            email=data.get("email"),
            username=data.get("username"),
            role=data.get("role"),
        )

    @property
    def display_name(self) -> str:
        """Name shown next to the user's comments."""
        return self.name or self.username or "Anonymous"
