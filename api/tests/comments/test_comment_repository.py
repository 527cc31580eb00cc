"""Tests for loading and saving the comments document."""

from datetime import UTC, datetime
from pathlib import Path

import orjson
import pytest

from cinemax.comments.models import CommentDocument, create_comment
from cinemax.comments.repository import CommentRepository
from cinemax.storage import AsyncDocumentStore


@pytest.fixture
def repository(document_store: AsyncDocumentStore) -> CommentRepository:
    return CommentRepository(document_store)


def write_raw(data_dir: Path, content: object) -> None:
    (data_dir / "comments.json").write_bytes(orjson.dumps(content))


class TestLoadDocument:
    """Tests for CommentRepository.load_document."""

    async def test_missing_file_is_empty(self, repository: CommentRepository) -> None:
        """No file means no comments and no votes."""
        document = await repository.load_document()
        assert document.comments == {}
        assert document.upvotes == {}

    async def test_corrupt_file_is_empty(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """A truncated file reads as empty."""
        (data_dir / "comments.json").write_text('{"comments": {')
        document = await repository.load_document()
        assert document.comments == {}

    async def test_wrong_top_level_type(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """A JSON list instead of an object reads as empty."""
        write_raw(data_dir, ["not", "a", "document"])
        document = await repository.load_document()
        assert document == CommentDocument()

    async def test_invalid_records_are_skipped(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """Broken comment records are left out, valid ones are kept."""
        write_raw(
            data_dir,
            {
                "comments": {
                    "m1": [
                        {
                            "id": "c1",
                            "authorId": "user-1",
                            "authorDisplayName": "Alice",
                            "body": "fine",
                            "createdAt": "2024-05-01T12:00:00+00:00",
                        },
                        {"id": "c2", "body": "no author or date"},
                        "not an object",
                    ],
                    "m2": "not a list",
                },
                "upvotes": {},
            },
        )
        document = await repository.load_document()
        assert [c.id for c in document.comments["m1"]] == ["c1"]
        assert document.comments["m1"][0].movie_id == "m1"
        assert "m2" not in document.comments

    async def test_naive_timestamps_are_utc(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """Timestamps without an offset are read as UTC."""
        write_raw(
            data_dir,
            {
                "comments": {
                    "m1": [
                        {
                            "id": "c1",
                            "authorId": "user-1",
                            "body": "hi",
                            "createdAt": "2024-05-01T12:00:00",
                        }
                    ]
                }
            },
        )
        document = await repository.load_document()
        assert document.comments["m1"][0].created_at == datetime(
            2024, 5, 1, 12, 0, tzinfo=UTC
        )

    async def test_reply_rating_is_dropped(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """A rating stored on a reply is ignored."""
        base = {"authorId": "u", "body": "x", "createdAt": "2024-05-01T12:00:00Z"}
        write_raw(
            data_dir,
            {
                "comments": {
                    "m1": [
                        {**base, "id": "root", "rating": 8},
                        {**base, "id": "reply", "parentId": "root", "rating": 3},
                    ]
                }
            },
        )
        document = await repository.load_document()
        root, reply = document.comments["m1"]
        assert root.rating == 8
        assert reply.rating is None

    async def test_upvotes_are_normalised(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """Duplicate voters collapse, empty and malformed entries disappear."""
        write_raw(
            data_dir,
            {
                "comments": {},
                "upvotes": {"c1": ["u1", "u2", "u1"], "c2": [], "c3": "u1"},
            },
        )
        document = await repository.load_document()
        assert document.upvotes == {"c1": ["u1", "u2"]}


class TestSaveDocument:
    """Tests for CommentRepository.save_document."""

    async def test_round_trip(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """Saved comments load back with the same fields."""
        root = create_comment("m1", "user-1", "Alice", "great", rating=9)
        reply = create_comment("m1", "user-2", "bob", "agreed", parent_id=root.id)
        document = CommentDocument(
            comments={"m1": [root, reply]}, upvotes={root.id: ["user-2"]}
        )

        await repository.save_document(document)
        loaded = await repository.load_document()

        assert loaded == document

    async def test_stored_shape(
        self, repository: CommentRepository, data_dir: Path
    ) -> None:
        """Keys are camelCase and an unset rating is not written."""
        reply = create_comment("m1", "user-2", "bob", "agreed", parent_id="p1")
        await repository.save_document(CommentDocument(comments={"m1": [reply]}))

        stored = orjson.loads((data_dir / "comments.json").read_bytes())
        record = stored["comments"]["m1"][0]
        assert set(record) == {
            "id",
            "movieId",
            "parentId",
            "authorId",
            "authorDisplayName",
            "body",
            "createdAt",
        }
        assert stored["upvotes"] == {}
