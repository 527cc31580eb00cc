"""Comment entities and the persisted comments document.

Stored layout (one JSON document)::

    {
      "comments": {"<movieId>": [Comment, ...]},
      "upvotes": {"<commentId>": ["<userId>", ...]}
    }

Comments are stored flat per movie; ``parentId`` links replies to their
parent (adjacency list) and the tree is rebuilt on read. Keys are camelCase
on disk and on the wire.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


@dataclass
class Comment:
    """A single comment or reply."""

    id: str
    movie_id: str
    parent_id: str | None
    author_id: str
    author_display_name: str
    body: str
    created_at: datetime
    rating: int | None = None

    @property
    def is_root(self) -> bool:
        """Whether this comment starts a thread."""
        return self.parent_id is None

    @classmethod
    def from_dict(cls, data: dict[str, Any], movie_id: str | None = None) -> "Comment":
        """Create Comment from a stored JSON object.

        Raises:
            KeyError, TypeError, ValueError: If required fields are missing
                or malformed
        """
        created_at = datetime.fromisoformat(data["createdAt"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)

        parent_id = data.get("parentId")
        rating = data.get("rating")
        return cls(
            id=str(data["id"]),
            movie_id=str(data.get("movieId") or movie_id),
            parent_id=str(parent_id) if parent_id else None,
            author_id=str(data["authorId"]),
            author_display_name=str(data.get("authorDisplayName") or ""),
            body=str(data["body"]),
            created_at=created_at,
            rating=int(rating) if rating is not None and parent_id is None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON shape. ``rating`` is omitted when unset."""
        data: dict[str, Any] = {
            "id": self.id,
            "movieId": self.movie_id,
            "parentId": self.parent_id,
            "authorId": self.author_id,
            "authorDisplayName": self.author_display_name,
            "body": self.body,
            "createdAt": self.created_at.isoformat(),
        }
        if self.rating is not None:
            data["rating"] = self.rating
        return data


@dataclass
class CommentDocument:
    """All movies' comments plus the global upvote ledger."""

    comments: dict[str, list[Comment]] = field(default_factory=dict)
    upvotes: dict[str, list[str]] = field(default_factory=dict)

    def movie_comments(self, movie_id: str) -> list[Comment]:
        """Comments of one movie (empty list if none)."""
        return self.comments.get(movie_id, [])

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON shape."""
        return {
            "comments": {
                movie_id: [comment.to_dict() for comment in comments]
                for movie_id, comments in self.comments.items()
            },
            "upvotes": {
                comment_id: list(voters) for comment_id, voters in self.upvotes.items()
            },
        }


def empty_document() -> dict[str, Any]:
    """Stored shape of a document with no comments and no votes."""
    return {"comments": {}, "upvotes": {}}


def create_comment(
    movie_id: str,
    author_id: str,
    author_display_name: str,
    body: str,
    parent_id: str | None = None,
    rating: int | None = None,
    created_at: datetime | None = None,
) -> Comment:
    """Create a new comment. Replies never keep a rating."""
    return Comment(
        id=str(uuid4()),
        movie_id=movie_id,
        parent_id=parent_id,
        author_id=author_id,
        author_display_name=author_display_name,
        body=body,
        created_at=created_at or datetime.now(UTC),
        rating=None if parent_id else rating,
    )
