"""Comment API endpoints.

One movie-scoped resource:
- GET    list a movie's comment tree with upvotes
- POST   add a comment or reply
- PUT    toggle the caller's upvote
- DELETE remove a comment and its replies (admin)

Mutations carry the caller's session in the JSON body.
"""

from fastapi import APIRouter, Query, status

from cinemax.core.errors import ValidationError

from .dependencies import CommentServiceDep
from .schemas import (
    CommentListResponse,
    CommentResponse,
    CreateCommentRequest,
    CreateCommentResponse,
    DeleteCommentRequest,
    ErrorResponse,
    SuccessResponse,
    ToggleUpvoteRequest,
    ToggleUpvoteResponse,
)


router = APIRouter(
    prefix="/api/comments",
    tags=["comments"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


@router.get(
    "",
    response_model=CommentListResponse,
    summary="List movie comments",
)
async def list_comments(
    comment_service: CommentServiceDep,
    movie_id: str | None = Query(default=None, alias="movieId"),
) -> CommentListResponse:
    """Get a movie's comments as a reply tree.

    Root comments are ordered newest first; replies keep creation order.
    """
    if not movie_id:
        raise ValidationError("Movie ID is required", "movie_id_required")

    view = await comment_service.list_comments(movie_id)
    return CommentListResponse.from_view(view)


@router.post(
    "",
    response_model=CreateCommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    },
)
async def create_comment(
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
) -> CreateCommentResponse:
    """Add a comment to a movie, or a reply when ``parentId`` is given.

    The body is HTML-escaped; a rating is only kept on root comments.
    """
    payload = data.comment_data
    comment = await comment_service.add_comment(
        movie_id=data.movie_id,
        raw_session=data.session,
        body=payload.body,
        parent_id=payload.parent_id,
        rating=payload.rating,
    )
    return CreateCommentResponse(comment=CommentResponse.from_comment(comment))


@router.put(
    "",
    response_model=ToggleUpvoteResponse,
    summary="Toggle upvote",
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    },
)
async def toggle_upvote(
    data: ToggleUpvoteRequest,
    comment_service: CommentServiceDep,
) -> ToggleUpvoteResponse:
    """Upvote a comment, or withdraw the caller's existing upvote."""
    voters = await comment_service.toggle_upvote(
        comment_id=data.comment_id,
        raw_session=data.session,
    )
    return ToggleUpvoteResponse(upvotes=voters)


@router.delete(
    "",
    response_model=SuccessResponse,
    summary="Delete comment",
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    },
)
async def delete_comment(
    data: DeleteCommentRequest,
    comment_service: CommentServiceDep,
) -> SuccessResponse:
    """Delete a comment together with every reply below it (admin only)."""
    await comment_service.delete_comment(
        movie_id=data.movie_id,
        comment_id=data.comment_id,
        raw_session=data.session,
    )
    return SuccessResponse()
