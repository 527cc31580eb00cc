"""Tests for thread building, upvote toggling and cascade deletion."""

from datetime import UTC, datetime, timedelta

from cinemax.comments.models import Comment, CommentDocument
from cinemax.comments.threads import (
    CommentNode,
    build_thread,
    collect_descendants,
    remove_comments,
    toggle_upvote,
)


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_comment(
    comment_id: str,
    parent_id: str | None = None,
    minutes: int = 0,
    movie_id: str = "m1",
) -> Comment:
    """Comment created ``minutes`` after BASE_TIME."""
    return Comment(
        id=comment_id,
        movie_id=movie_id,
        parent_id=parent_id,
        author_id="user-1",
        author_display_name="Alice",
        body=f"body of {comment_id}",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def ids(nodes: list[CommentNode]) -> list[str]:
    return [node.comment.id for node in nodes]


def count_nodes(nodes: list[CommentNode]) -> int:
    return sum(1 + count_nodes(node.replies) for node in nodes)


class TestBuildThread:
    """Tests for build_thread."""

    def test_empty(self) -> None:
        """No comments gives an empty tree and ledger."""
        view = build_thread([], {"other": ["u1"]})
        assert view.comments == []
        assert view.upvotes == {}

    def test_roots_newest_first(self) -> None:
        """Root comments are ordered by creation time, newest first."""
        comments = [
            make_comment("a", minutes=0),
            make_comment("b", minutes=5),
            make_comment("c", minutes=2),
        ]
        assert ids(build_thread(comments, {}).comments) == ["b", "c", "a"]

    def test_equal_timestamps_keep_stored_order(self) -> None:
        """Sorting is stable for comments created at the same instant."""
        comments = [make_comment("a"), make_comment("b"), make_comment("c")]
        assert ids(build_thread(comments, {}).comments) == ["a", "b", "c"]

    def test_replies_keep_insertion_order(self) -> None:
        """Replies are listed in stored order, not by time."""
        comments = [
            make_comment("root", minutes=0),
            make_comment("r1", parent_id="root", minutes=9),
            make_comment("r2", parent_id="root", minutes=1),
            make_comment("r1a", parent_id="r1", minutes=10),
        ]
        view = build_thread(comments, {})

        assert ids(view.comments) == ["root"]
        root = view.comments[0]
        assert ids(root.replies) == ["r1", "r2"]
        assert ids(root.replies[0].replies) == ["r1a"]

    def test_reply_before_parent_in_storage(self) -> None:
        """A reply stored ahead of its parent still nests under it."""
        comments = [
            make_comment("child", parent_id="root", minutes=1),
            make_comment("root", minutes=0),
        ]
        view = build_thread(comments, {})
        assert ids(view.comments) == ["root"]
        assert ids(view.comments[0].replies) == ["child"]

    def test_orphan_becomes_root(self) -> None:
        """A reply whose parent is missing is shown at the top level."""
        comments = [
            make_comment("a", minutes=0),
            make_comment("orphan", parent_id="gone", minutes=1),
        ]
        assert ids(build_thread(comments, {}).comments) == ["orphan", "a"]

    def test_self_parent_becomes_root(self) -> None:
        """A comment pointing at itself does not vanish."""
        view = build_thread([make_comment("loop", parent_id="loop")], {})
        assert ids(view.comments) == ["loop"]
        assert view.comments[0].replies == []

    def test_cycle_is_broken(self) -> None:
        """Comments in a parent cycle all appear exactly once."""
        comments = [
            make_comment("x", parent_id="y", minutes=0),
            make_comment("y", parent_id="x", minutes=1),
            make_comment("z", minutes=2),
        ]
        view = build_thread(comments, {})
        assert count_nodes(view.comments) == 3
        assert "z" in ids(view.comments)

    def test_every_comment_appears_once(self) -> None:
        """Tree size equals the number of stored comments."""
        comments = [
            make_comment("a"),
            make_comment("b", parent_id="a"),
            make_comment("c", parent_id="b"),
            make_comment("d", parent_id="missing"),
            make_comment("e", parent_id="a"),
        ]
        assert count_nodes(build_thread(comments, {}).comments) == 5

    def test_upvotes_limited_to_movie(self) -> None:
        """Only votes on this movie's comments are returned."""
        comments = [make_comment("a"), make_comment("b", parent_id="a")]
        upvotes = {"a": ["u1", "u2"], "b": ["u3"], "other-movie": ["u1"]}
        view = build_thread(comments, upvotes)
        assert view.upvotes == {"a": ["u1", "u2"], "b": ["u3"]}


class TestToggleUpvote:
    """Tests for toggle_upvote."""

    def test_adds_vote(self) -> None:
        """First toggle adds the user."""
        ledger: dict[str, list[str]] = {}
        assert toggle_upvote(ledger, "c1", "u1") == ["u1"]
        assert ledger == {"c1": ["u1"]}

    def test_removes_vote(self) -> None:
        """Second toggle removes the user and other voters stay."""
        ledger = {"c1": ["u1", "u2"]}
        assert toggle_upvote(ledger, "c1", "u1") == ["u2"]
        assert ledger == {"c1": ["u2"]}

    def test_double_toggle_restores_ledger(self) -> None:
        """Toggling twice is a no-op on membership."""
        ledger = {"c1": ["u2"]}
        toggle_upvote(ledger, "c1", "u1")
        toggle_upvote(ledger, "c1", "u1")
        assert ledger == {"c1": ["u2"]}

    def test_last_vote_drops_entry(self) -> None:
        """Removing the only voter removes the comment's entry."""
        ledger = {"c1": ["u1"]}
        assert toggle_upvote(ledger, "c1", "u1") == []
        assert "c1" not in ledger

    def test_unknown_comment_is_accepted(self) -> None:
        """Votes are recorded even for ids with no comment."""
        ledger: dict[str, list[str]] = {}
        toggle_upvote(ledger, "no-such-comment", "u1")
        assert ledger == {"no-such-comment": ["u1"]}


class TestCollectDescendants:
    """Tests for collect_descendants."""

    def test_deep_chain(self) -> None:
        """All levels below the target are collected."""
        comments = [
            make_comment("a"),
            make_comment("b", parent_id="a"),
            make_comment("c", parent_id="b"),
            make_comment("d", parent_id="c"),
            make_comment("sibling"),
        ]
        assert collect_descendants(comments, "b") == {"b", "c", "d"}

    def test_unknown_id(self) -> None:
        """An unknown id yields only itself."""
        assert collect_descendants([make_comment("a")], "nope") == {"nope"}

    def test_cycle_terminates(self) -> None:
        """Cyclic parent links do not loop forever."""
        comments = [
            make_comment("x", parent_id="y"),
            make_comment("y", parent_id="x"),
        ]
        assert collect_descendants(comments, "x") == {"x", "y"}


class TestRemoveComments:
    """Tests for remove_comments."""

    def test_cascade_and_ledger_cleanup(self) -> None:
        """The closure and its votes go; everything else stays."""
        document = CommentDocument(
            comments={
                "m1": [
                    make_comment("a"),
                    make_comment("b", parent_id="a"),
                    make_comment("c", parent_id="b"),
                    make_comment("keep"),
                ],
                "m2": [make_comment("other", movie_id="m2")],
            },
            upvotes={"a": ["u1"], "c": ["u2"], "keep": ["u3"], "other": ["u1"]},
        )

        removed = remove_comments(document, "m1", "a")

        assert removed == {"a", "b", "c"}
        assert [c.id for c in document.comments["m1"]] == ["keep"]
        assert [c.id for c in document.comments["m2"]] == ["other"]
        assert document.upvotes == {"keep": ["u3"], "other": ["u1"]}

    def test_unknown_comment(self) -> None:
        """Removing an id that is not there changes nothing."""
        document = CommentDocument(
            comments={"m1": [make_comment("a")]},
            upvotes={"a": ["u1"]},
        )
        assert remove_comments(document, "m1", "zzz") == set()
        assert [c.id for c in document.comments["m1"]] == ["a"]
        assert document.upvotes == {"a": ["u1"]}

    def test_unknown_movie(self) -> None:
        """A movie with no comments is not created by a removal."""
        document = CommentDocument()
        assert remove_comments(document, "m9", "a") == set()
        assert document.comments == {}


class TestThreadScenarios:
    """End-to-end shape checks over small synthetic threads."""

    def test_nested_chain_with_newer_root(self) -> None:
        """A <- B <- C plus a later root D renders as [D, A[B[C]]]."""
        comments = [
            make_comment("A", minutes=0),
            make_comment("B", parent_id="A", minutes=1),
            make_comment("C", parent_id="B", minutes=2),
            make_comment("D", minutes=3),
        ]
        view = build_thread(comments, {})

        assert ids(view.comments) == ["D", "A"]
        a = view.comments[1]
        assert ids(a.replies) == ["B"]
        assert ids(a.replies[0].replies) == ["C"]
        assert a.replies[0].replies[0].replies == []
        assert view.comments[0].replies == []

    def test_cascade_removes_whole_subtree(self) -> None:
        """Deleting A takes B, C, B2 and all their votes with it."""
        document = CommentDocument(
            comments={
                "m1": [
                    make_comment("A"),
                    make_comment("B", parent_id="A"),
                    make_comment("C", parent_id="B"),
                    make_comment("B2", parent_id="A"),
                ]
            },
            upvotes={"A": ["u1"], "B": ["u2"], "C": ["u3"], "B2": ["u4"]},
        )

        removed = remove_comments(document, "m1", "A")

        assert removed == {"A", "B", "C", "B2"}
        assert document.comments["m1"] == []
        assert document.upvotes == {}
