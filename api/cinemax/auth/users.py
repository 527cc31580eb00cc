"""Read-only access to the users collection.

Accounts are managed elsewhere; this module only looks them up so that
comments capture the author's current name and deletions can check roles.
"""

from typing import Any

import structlog

from cinemax.auth.models import User
from cinemax.storage.service import AsyncDocumentStore


logger = structlog.get_logger(__name__)


class UserDirectory:
    """Looks up accounts in the users document."""

    def __init__(self, store: AsyncDocumentStore, document_name: str = "users"):
        self.store = store
        self.document_name = document_name

    async def get_user_by_id(self, user_id: str) -> User | None:
        """Find a user by id, re-reading the collection on every call."""
        records: Any = await self.store.read(self.document_name, [])
        if not isinstance(records, list):
            logger.warning(
                "users_document_invalid",
                document=self.document_name,
                found_type=type(records).__name__,
            )
            return None

        for record in records:
            if isinstance(record, dict) and str(record.get("id")) == user_id:
                return User.from_dict(record)
        return None
