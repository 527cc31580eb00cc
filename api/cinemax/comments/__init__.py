"""Threaded movie comments.

Provides:
- Comments partitioned by movie, threaded through parent ids
- Per-comment upvotes
- Cascading admin deletion

Note: Router is not exported here to avoid circular imports.
Import directly from cinemax.comments.router when needed.
"""

from .models import Comment, CommentDocument, create_comment
from .repository import CommentRepository
from .service import CommentService, sanitize_body
from .threads import (
    CommentNode,
    ThreadView,
    build_thread,
    collect_descendants,
    remove_comments,
    toggle_upvote,
)


__all__ = [
    "Comment",
    "CommentDocument",
    "CommentNode",
    "CommentRepository",
    "CommentService",
    "ThreadView",
    "build_thread",
    "collect_descendants",
    "create_comment",
    "remove_comments",
    "sanitize_body",
    "toggle_upvote",
]
