"""Infrastructure - Document store, storage, logging."""

from app.infra.document_store import (
    DocumentStore,
    MemoryDocumentStore,
    close_document_store,
    get_document_store,
)
from app.infra.storage import StorageClient, get_storage_client, ReferencePathError
from app.infra.logging import setup_logging, get_logger

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "close_document_store",
    "get_document_store",
    "StorageClient",
    "get_storage_client",
    "ReferencePathError",
    "setup_logging",
    "get_logger",
]
