"""Durable JSON document storage.

A document is one named JSON value stored as ``<base_dir>/<name>.json``.

Writes are crash safe: content goes to a temporary sibling file which is
fsynced and then renamed over the target, so readers only ever see the old
or the new document. Reads favour availability: a missing or corrupt file
yields the caller's default and a log entry instead of an error.

The store does no locking; callers serialise their read-modify-write cycles.
"""

import asyncio
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import orjson
import structlog

from cinemax.core.errors import PersistenceError


if TYPE_CHECKING:
    from cinemax.config.settings import Settings


logger = structlog.get_logger(__name__)

WRITE_CHECK_DOCUMENT = ".writetest"


@dataclass
class StorageCheck:
    """Result of a storage write check."""

    can_write: bool
    error: str | None = None


class DocumentStore(Protocol):
    """Persistence contract for whole-document reads and atomic replaces."""

    def read(self, name: str, default: Any) -> Any:
        """Return the stored document, or ``default`` if absent/unreadable."""
        ...

    def write(self, name: str, content: Any) -> None:
        """Atomically replace the stored document."""
        ...

    def delete(self, name: str) -> None:
        """Remove a document if it exists."""
        ...

    def check_write_access(self) -> StorageCheck:
        """Check whether documents can be written."""
        ...


class JsonFileDocumentStore:
    """Document store backed by one JSON file per document."""

    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir)

    def path_for(self, name: str) -> Path:
        """Filesystem path of document ``name``."""
        return self.base_dir / f"{name}.json"

    def read(self, name: str, default: Any) -> Any:
        path = self.path_for(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            logger.info("document_missing", document=name, path=str(path))
            return default
        except OSError as e:
            logger.warning(
                "document_unreadable",
                document=name,
                path=str(path),
                error=str(e),
            )
            return default

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.warning(
                "document_corrupt",
                document=name,
                path=str(path),
                error=str(e),
            )
            return default

    def write(self, name: str, content: Any) -> None:
        path = self.path_for(name)
        try:
            payload = orjson.dumps(content, option=orjson.OPT_INDENT_2)
        except TypeError as e:
            logger.error("document_serialize_failed", document=name, error=str(e))
            raise PersistenceError(f"Could not serialize document '{name}'") from e

        tmp_path: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as tmp_file:
                tmp_file.write(payload)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            logger.error(
                "document_write_failed",
                document=name,
                path=str(path),
                error=str(e),
            )
            raise PersistenceError(f"Could not write document '{name}'") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning("temp_file_cleanup_failed", path=tmp_path)

        logger.debug("document_written", document=name, size=len(payload))

    def delete(self, name: str) -> None:
        try:
            self.path_for(name).unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(f"Could not delete document '{name}'") from e

    def check_write_access(self) -> StorageCheck:
        sample = {"test": True}
        try:
            self.write(WRITE_CHECK_DOCUMENT, sample)
            can_write = self.read(WRITE_CHECK_DOCUMENT, None) == sample
            self.delete(WRITE_CHECK_DOCUMENT)
        except PersistenceError as e:
            return StorageCheck(can_write=False, error=e.message)
        return StorageCheck(can_write=can_write)


class AsyncDocumentStore:
    """Runs a blocking ``DocumentStore`` on worker threads."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def read(self, name: str, default: Any) -> Any:
        return await asyncio.to_thread(self.store.read, name, default)

    async def write(self, name: str, content: Any) -> None:
        await asyncio.to_thread(self.store.write, name, content)

    async def check_write_access(self) -> StorageCheck:
        return await asyncio.to_thread(self.store.check_write_access)


def create_document_store(settings: "Settings") -> DocumentStore:
    """Build the document store selected by ``settings.storage_type``."""
    storage_type = settings.storage_type.lower()
    if storage_type == "json":
        return JsonFileDocumentStore(settings.data_path)
    msg = f"Unsupported storage type: {settings.storage_type}"
    raise ValueError(msg)
