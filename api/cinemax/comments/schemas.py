"""Pydantic schemas for the comments API.

Field names are snake_case in Python and camelCase on the wire. Request
bodies reject unknown fields. ``session`` is accepted as any JSON value and
checked by the access guard, so a malformed session is a 401 and not a 400.
"""

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from .threads import CommentNode, ThreadView


# ==============================================================================
# Constants
# ==============================================================================
MIN_RATING = 1
MAX_RATING = 10
MAX_BODY_LENGTH = 5000


class CamelModel(BaseModel):
    """Base model using camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestModel(CamelModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


# ==============================================================================
# Request Schemas
# ==============================================================================


class CommentPayload(RequestModel):
    """Content of a new comment."""

    parent_id: str | None = None
    body: str = Field(..., max_length=MAX_BODY_LENGTH)
    rating: int | None = Field(None, ge=MIN_RATING, le=MAX_RATING)

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str) -> str:
        """Reject blank bodies."""
        if not v:
            msg = "Comment body cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("parent_id")
    @classmethod
    def blank_parent_is_root(cls, v: str | None) -> str | None:
        """Treat an empty parent id as no parent."""
        return v or None


class CreateCommentRequest(RequestModel):
    """Request to add a comment to a movie."""

    movie_id: str = Field(..., min_length=1)
    comment_data: CommentPayload
    session: Any = None


class ToggleUpvoteRequest(RequestModel):
    """Request to toggle the caller's upvote on a comment."""

    comment_id: str = Field(..., min_length=1)
    session: Any = None


class DeleteCommentRequest(RequestModel):
    """Request to delete a comment and its replies."""

    movie_id: str = Field(..., min_length=1)
    comment_id: str = Field(..., min_length=1)
    session: Any = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(CamelModel):
    """A single comment."""

    id: str
    movie_id: str
    parent_id: str | None = None
    author_id: str
    author_display_name: str
    body: str
    created_at: datetime
    rating: int | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_rating(
        self, handler: SerializerFunctionWrapHandler
    ) -> dict[str, Any]:
        data = handler(self)
        if self.rating is None:
            data.pop("rating", None)
        return data

    @classmethod
    def from_comment(cls, comment: Any) -> "CommentResponse":
        """Create response from a Comment entity."""
        return cls(
            id=comment.id,
            movie_id=comment.movie_id,
            parent_id=comment.parent_id,
            author_id=comment.author_id,
            author_display_name=comment.author_display_name,
            body=comment.body,
            created_at=comment.created_at,
            rating=comment.rating,
        )


class CommentThreadResponse(CommentResponse):
    """A comment with its replies, as listed in a thread."""

    replies: list["CommentThreadResponse"] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: CommentNode) -> "CommentThreadResponse":
        """Create response for a comment and, recursively, its replies."""
        response = cls.from_comment(node.comment)
        response.replies = [cls.from_node(reply) for reply in node.replies]
        return response


class CommentListResponse(CamelModel):
    """Reply tree for a movie plus its upvote ledger."""

    comments: list[CommentThreadResponse]
    upvotes: dict[str, list[str]]

    @classmethod
    def from_view(cls, view: ThreadView) -> "CommentListResponse":
        """Create response from a ThreadView."""
        return cls(
            comments=[CommentThreadResponse.from_node(node) for node in view.comments],
            upvotes=view.upvotes,
        )


class SuccessResponse(CamelModel):
    """Bare acknowledgement."""

    success: bool = True


class CreateCommentResponse(SuccessResponse):
    """Acknowledgement carrying the new comment."""

    comment: CommentResponse


class ToggleUpvoteResponse(SuccessResponse):
    """Acknowledgement carrying the comment's voters after the toggle."""

    upvotes: list[str]


class ErrorResponse(BaseModel):
    """Shape of every error body."""

    error: bool = True
    code: str
    message: str
    status_code: int
    request_id: str | None = None
