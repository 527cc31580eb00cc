"""Comment service layer.

Business logic for:
- Reading a movie's comments as a reply tree
- Creating comments and replies
- Toggling upvotes
- Cascading deletion (admin only)

Every mutation goes through the same steps: authenticate the session,
check permissions, apply the caller's rate limit, then load, transform and
save the document while holding the writer lock. The document is a single
unit of persistence, so one lock serialises all writers; reads never wait
on it.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from cinemax.auth.service import AccessGuard
from cinemax.core.errors import NotFoundError
from cinemax.core.rate_limit import RateLimiter

from .models import Comment, create_comment
from .repository import CommentRepository
from .threads import ThreadView, build_thread, remove_comments, toggle_upvote


logger = structlog.get_logger(__name__)


# ==============================================================================
# Content Sanitization
# ==============================================================================


def sanitize_body(body: str) -> str:
    """Escape angle brackets so the stored text can't inject markup."""
    return body.replace("<", "&lt;").replace(">", "&gt;")


def _utc_now() -> datetime:
    return datetime.now(UTC)


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment management."""

    def __init__(
        self,
        repository: CommentRepository,
        guard: AccessGuard,
        rate_limiter: RateLimiter,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.repository = repository
        self.guard = guard
        self.rate_limiter = rate_limiter
        self._clock = clock
        self._write_lock = asyncio.Lock()

    async def list_comments(self, movie_id: str) -> ThreadView:
        """Get a movie's comments as a tree with their upvotes."""
        document = await self.repository.load_document()
        return build_thread(document.movie_comments(movie_id), document.upvotes)

    async def add_comment(
        self,
        movie_id: str,
        raw_session: Any,
        body: str,
        parent_id: str | None = None,
        rating: int | None = None,
    ) -> Comment:
        """Create a comment or reply.

        The author name is taken from the stored account, not the session.
        A reply's ``parent_id`` must name an existing comment of the same
        movie, and replies never carry a rating.

        Raises:
            AuthenticationError: Invalid or expired session
            NotFoundError: Account or parent comment does not exist
            RateLimitError: Caller is over budget
            PersistenceError: Document could not be saved
        """
        session = self.guard.authenticate(raw_session)
        user = await self.guard.resolve_user(session)
        await self.rate_limiter.hit(user.id)

        async with self._write_lock:
            document = await self.repository.load_document()
            movie_comments = document.comments.setdefault(movie_id, [])

            if parent_id is not None and not any(
                comment.id == parent_id for comment in movie_comments
            ):
                logger.info(
                    "comment_parent_not_found",
                    movie_id=movie_id,
                    parent_id=parent_id,
                )
                raise NotFoundError("Parent comment not found", "parent_not_found")

            comment = create_comment(
                movie_id=movie_id,
                author_id=user.id,
                author_display_name=user.display_name,
                body=sanitize_body(body),
                parent_id=parent_id,
                rating=rating,
                created_at=self._clock(),
            )
            movie_comments.append(comment)
            await self.repository.save_document(document)

        logger.info(
            "comment_created",
            comment_id=comment.id,
            movie_id=movie_id,
            parent_id=parent_id,
        )
        return comment

    async def toggle_upvote(self, comment_id: str, raw_session: Any) -> list[str]:
        """Toggle the caller's upvote on a comment.

        The comment id is not checked for existence: a vote on an unknown id
        is stored but never shown, since listings only return votes of
        existing comments.

        Returns:
            Voter ids for the comment after the toggle
        """
        session = self.guard.authenticate(raw_session)
        user_id = session.user.id
        await self.rate_limiter.hit(user_id)

        async with self._write_lock:
            document = await self.repository.load_document()
            voters = toggle_upvote(document.upvotes, comment_id, user_id)
            await self.repository.save_document(document)

        logger.info(
            "upvote_toggled",
            comment_id=comment_id,
            voted=user_id in voters,
            vote_count=len(voters),
        )
        return voters

    async def delete_comment(
        self,
        movie_id: str,
        comment_id: str,
        raw_session: Any,
    ) -> set[str]:
        """Delete a comment with all of its replies and their votes.

        Only admins may delete. Deleting an unknown id succeeds without
        changing any comment.

        Returns:
            Ids of the removed comments

        Raises:
            AuthenticationError: Invalid or expired session
            AuthorizationError: Caller is not an admin
            RateLimitError: Caller is over budget
            PersistenceError: Document could not be saved
        """
        session = self.guard.authenticate(raw_session)
        admin = await self.guard.require_admin(session)
        await self.rate_limiter.hit(admin.id)

        async with self._write_lock:
            document = await self.repository.load_document()
            removed = remove_comments(document, movie_id, comment_id)
            await self.repository.save_document(document)

        logger.info(
            "comment_deleted",
            comment_id=comment_id,
            movie_id=movie_id,
            removed_count=len(removed),
        )
        return removed
