"""Document storage for comments and users."""

from cinemax.storage.service import (
    AsyncDocumentStore,
    DocumentStore,
    JsonFileDocumentStore,
    StorageCheck,
    create_document_store,
)


__all__ = [
    "AsyncDocumentStore",
    "DocumentStore",
    "JsonFileDocumentStore",
    "StorageCheck",
    "create_document_store",
]
