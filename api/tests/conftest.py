"""Shared fixtures.

Every test gets its own data directory with a small users collection:
- ``user-1`` Alice (role user)
- ``user-2`` only a username, ``bob`` (role user)
- ``user-3`` no name at all
- ``admin-1`` Root (role admin)
"""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import orjson
import pytest
from fastapi.testclient import TestClient

from cinemax.auth.service import AccessGuard
from cinemax.auth.session import now_ms
from cinemax.auth.users import UserDirectory
from cinemax.comments.repository import CommentRepository
from cinemax.comments.service import CommentService
from cinemax.config import get_settings
from cinemax.core.rate_limit import SlidingWindowRateLimiter
from cinemax.storage import AsyncDocumentStore, JsonFileDocumentStore


USERS = [
    {"id": "user-1", "name": "Alice", "email": "alice@example.com", "role": "user"},
    {"id": "user-2", "username": "bob", "role": "user"},
    {"id": "user-3", "role": "user"},
    {"id": "admin-1", "name": "Root", "role": "admin"},
]

SessionFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory seeded with the users collection."""
    path = tmp_path / "data"
    path.mkdir()
    (path / "users.json").write_bytes(orjson.dumps(USERS))
    return path


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch, data_dir: Path) -> Iterator[None]:
    """Point the settings at the test data directory."""
    monkeypatch.setenv("DATA_DIR", str(data_dir))
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("RATE_LIMIT_BACKEND", "memory")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client(settings_env: None) -> Iterator[TestClient]:
    """Test client with the application lifespan running."""
    from cinemax.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def session_for() -> SessionFactory:
    """Build a raw session object the way the login flow hands it out."""

    def factory(
        user_id: str = "user-1",
        *,
        token: str = "session-token-123",
        expires: float | None = None,
        **profile: Any,
    ) -> dict[str, Any]:
        return {
            "token": token,
            "user": {"id": user_id, **profile},
            "expires": now_ms() + 3_600_000 if expires is None else expires,
        }

    return factory


@pytest.fixture
def document_store(data_dir: Path) -> AsyncDocumentStore:
    """Async store over the test data directory."""
    return AsyncDocumentStore(JsonFileDocumentStore(data_dir))


@pytest.fixture
def rate_limiter() -> SlidingWindowRateLimiter:
    """Default budget: 20 mutations per 60 seconds."""
    return SlidingWindowRateLimiter(max_requests=20, window_seconds=60.0)


@pytest.fixture
def comment_service(
    document_store: AsyncDocumentStore,
    rate_limiter: SlidingWindowRateLimiter,
) -> CommentService:
    """CommentService wired to real storage in the test data directory."""
    guard = AccessGuard(users=UserDirectory(document_store))
    return CommentService(
        repository=CommentRepository(document_store),
        guard=guard,
        rate_limiter=rate_limiter,
    )
