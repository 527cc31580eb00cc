"""Loads and saves the comments document.

Owns the on-disk shape only. Anything that does not fit the expected shape
is logged and left out, so a damaged document reads as (partially) empty
instead of failing every request.
"""

from typing import Any

import structlog

from cinemax.storage.service import AsyncDocumentStore

from .models import Comment, CommentDocument, empty_document


logger = structlog.get_logger(__name__)


class CommentRepository:
    """Persistence for the comments-and-upvotes document."""

    def __init__(self, store: AsyncDocumentStore, document_name: str = "comments"):
        self.store = store
        self.document_name = document_name

    async def load_document(self) -> CommentDocument:
        """Read the current document; missing or corrupt data reads as empty."""
        raw = await self.store.read(self.document_name, empty_document())
        return self._parse_document(raw)

    async def save_document(self, document: CommentDocument) -> None:
        """Atomically replace the stored document.

        Raises:
            PersistenceError: If the write fails
        """
        await self.store.write(self.document_name, document.to_dict())

    def _parse_document(self, raw: Any) -> CommentDocument:
        if not isinstance(raw, dict):
            logger.warning(
                "comment_document_invalid",
                document=self.document_name,
                found_type=type(raw).__name__,
            )
            return CommentDocument()

        return CommentDocument(
            comments=self._parse_comments(raw.get("comments")),
            upvotes=self._parse_upvotes(raw.get("upvotes")),
        )

    def _parse_comments(self, raw: Any) -> dict[str, list[Comment]]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            logger.warning("comment_map_invalid", found_type=type(raw).__name__)
            return {}

        comments: dict[str, list[Comment]] = {}
        for movie_id, records in raw.items():
            if not isinstance(records, list):
                logger.warning("movie_comments_invalid", movie_id=movie_id)
                continue

            parsed: list[Comment] = []
            for record in records:
                try:
                    parsed.append(Comment.from_dict(record, movie_id=movie_id))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(
                        "comment_record_invalid",
                        movie_id=movie_id,
                        comment_id=record.get("id") if isinstance(record, dict) else None,
                        error=str(e),
                    )
            comments[movie_id] = parsed
        return comments

    def _parse_upvotes(self, raw: Any) -> dict[str, list[str]]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            logger.warning("upvote_ledger_invalid", found_type=type(raw).__name__)
            return {}

        upvotes: dict[str, list[str]] = {}
        for comment_id, voters in raw.items():
            if not isinstance(voters, list):
                logger.warning("upvote_entry_invalid", comment_id=comment_id)
                continue
            # Membership is what counts; drop repeated voters
            unique = list(dict.fromkeys(str(voter) for voter in voters))
            if unique:
                upvotes[comment_id] = unique
        return upvotes
