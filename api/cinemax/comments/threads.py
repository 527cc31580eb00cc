"""Pure transformations over the comments document.

- ``build_thread``: flat comment list -> reply tree for one movie
- ``toggle_upvote``: add/remove a user's vote in the ledger
- ``collect_descendants`` / ``remove_comments``: cascade deletion

None of these touch storage; the service runs them between a load and a
save.
"""

from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import Comment, CommentDocument


@dataclass
class CommentNode:
    """A comment with its direct replies."""

    comment: Comment
    replies: list["CommentNode"] = field(default_factory=list)


@dataclass
class ThreadView:
    """Reply tree of one movie plus the votes on its comments."""

    comments: list[CommentNode]
    upvotes: dict[str, list[str]]


def build_thread(
    comments: list[Comment],
    upvotes: dict[str, list[str]],
) -> ThreadView:
    """Build the reply tree for one movie's comments.

    A comment whose ``parent_id`` does not resolve within ``comments`` is
    shown as a root. Roots are ordered newest first; replies keep the order
    in which they appear in ``comments``. The returned ledger only contains
    ids present in this movie.
    """
    nodes = [CommentNode(comment) for comment in comments]
    by_id = {node.comment.id: node for node in nodes}

    roots: list[CommentNode] = []
    for node in nodes:
        parent_id = node.comment.parent_id
        parent = by_id.get(parent_id) if parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.replies.append(node)

    _promote_cycles(nodes, by_id, roots)

    roots.sort(key=lambda node: node.comment.created_at, reverse=True)

    movie_upvotes = {
        comment_id: list(voters)
        for comment_id, voters in upvotes.items()
        if comment_id in by_id
    }
    return ThreadView(comments=roots, upvotes=movie_upvotes)


def _promote_cycles(
    nodes: list[CommentNode],
    by_id: dict[str, CommentNode],
    roots: list[CommentNode],
) -> None:
    """Detach comments caught in a parent cycle and show them as roots.

    Only reachable with hand-edited data; new replies always point at an
    existing, older comment.
    """
    reached: set[int] = set()

    def mark(start: CommentNode) -> None:
        stack = [start]
        while stack:
            node = stack.pop()
            if id(node) in reached:
                continue
            reached.add(id(node))
            stack.extend(node.replies)

    for root in roots:
        mark(root)

    for node in nodes:
        if id(node) in reached:
            continue
        # Every unreached ancestor has a resolvable parent, so walking up
        # ends on a comment that belongs to the cycle.
        seen: set[int] = set()
        current = node
        while id(current) not in seen:
            seen.add(id(current))
            current = by_id[current.comment.parent_id]
        by_id[current.comment.parent_id].replies.remove(current)
        roots.append(current)
        mark(current)


def toggle_upvote(
    upvotes: dict[str, list[str]],
    comment_id: str,
    user_id: str,
) -> list[str]:
    """Add ``user_id`` to the comment's voters, or remove it if present.

    The ledger is changed in place; empty entries are dropped.

    Returns:
        Voters of ``comment_id`` after the toggle
    """
    voters = upvotes.get(comment_id, [])
    if user_id in voters:
        voters = [voter for voter in voters if voter != user_id]
    else:
        voters = [*voters, user_id]

    if voters:
        upvotes[comment_id] = voters
    else:
        upvotes.pop(comment_id, None)
    return list(voters)


def collect_descendants(comments: Iterable[Comment], comment_id: str) -> set[str]:
    """Return ``comment_id`` plus the ids of all direct and indirect replies.

    Builds a parent -> children index once and walks it breadth first.
    """
    children: defaultdict[str, list[str]] = defaultdict(list)
    for comment in comments:
        if comment.parent_id:
            children[comment.parent_id].append(comment.id)

    closure = {comment_id}
    queue = deque([comment_id])
    while queue:
        current = queue.popleft()
        for child_id in children.get(current, ()):
            if child_id not in closure:
                closure.add(child_id)
                queue.append(child_id)
    return closure


def remove_comments(
    document: CommentDocument,
    movie_id: str,
    comment_id: str,
) -> set[str]:
    """Delete a comment, every reply below it and their votes.

    Returns:
        Ids that were removed from the movie (empty if ``comment_id`` was
        not there)
    """
    movie_comments = document.movie_comments(movie_id)
    closure = collect_descendants(movie_comments, comment_id)

    kept = [comment for comment in movie_comments if comment.id not in closure]
    removed = {comment.id for comment in movie_comments if comment.id in closure}
    if movie_id in document.comments:
        document.comments[movie_id] = kept

    for removed_id in closure:
        document.upvotes.pop(removed_id, None)

    return removed
