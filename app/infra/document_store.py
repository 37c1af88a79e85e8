"""Document store adapter.

A thin async interface over a document database:
- create / get / partial-merge update
- atomic read-modify-write of one document
- field-equality and array-contains queries with a single ordering field
- push-based live subscriptions

`MemoryDocumentStore` backs local development and the test suite;
`app.infra.firestore.FirestoreDocumentStore` is the production backend.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from app.infra.logging import get_logger

logger = get_logger(__name__)

FilterOp = Literal["==", "array_contains"]


class DocumentNotFound(Exception):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document '{collection}/{doc_id}' not found")
        self.collection = collection
        self.doc_id = doc_id


class _ServerTimestamp:
    """Sentinel replaced by the backend's write time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP: Any = _ServerTimestamp()

_MISSING = object()


@dataclass(frozen=True)
class FieldFilter:
    """Single query condition on a (possibly dotted) field path."""

    field: str
    op: FilterOp
    value: Any

    def matches(self, data: dict[str, Any]) -> bool:
        actual = get_field(data, self.field, _MISSING)
        if actual is _MISSING:
            return False
        if self.op == "==":
            return actual == self.value
        if self.op == "array_contains":
            return isinstance(actual, list) and self.value in actual
        raise ValueError(f"Unsupported filter operator: {self.op}")


def where(field_path: str, op: FilterOp, value: Any) -> FieldFilter:
    """Shorthand for building a FieldFilter."""
    return FieldFilter(field=field_path, op=op, value=value)


def active_only() -> FieldFilter:
    """The filter every listing query applies."""
    return FieldFilter(field="isActive", op="==", value=True)


@dataclass(frozen=True)
class Document:
    """A document id with a detached copy of its data."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, field_path: str, default: Any = None) -> Any:
        return get_field(self.data, field_path, default)


SnapshotCallback = Callable[[list[Document]], None]


class Subscription:
    """Handle for a live query. `unsubscribe()` is idempotent.

    Once unsubscribed, the store never invokes the callback again.
    """

    def __init__(self, on_unsubscribe: Callable[[], None] | None = None) -> None:
        self._on_unsubscribe = on_unsubscribe
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_unsubscribe is not None:
            self._on_unsubscribe()


def get_field(data: dict[str, Any], field_path: str, default: Any = None) -> Any:
    """Read a dotted field path ("supplier.company") from nested dicts."""
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def set_field(data: dict[str, Any], field_path: str, value: Any) -> None:
    """Write a dotted field path, creating intermediate maps."""
    parts = field_path.split(".")
    current = data
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value


def parse_order_by(order_by: str | None) -> tuple[str | None, bool]:
    """Split "-createdAt" into ("createdAt", descending=True)."""
    if not order_by:
        return None, False
    if order_by.startswith("-"):
        return order_by[1:], True
    return order_by, False


class DocumentStore(ABC):
    """Async document database interface used by the catalog core."""

    @abstractmethod
    async def create(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return the id."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch a document by id regardless of its isActive flag."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge `fields` into an existing document.

        Keys may be dotted paths addressing nested map fields. Fields not
        named are left untouched.

        Raises:
            DocumentNotFound: If the document does not exist
        """

    @abstractmethod
    async def transform(
        self,
        collection: str,
        doc_id: str,
        build_fields: Callable[[Document], dict[str, Any]],
    ) -> None:
        """Atomically read a document and merge the fields built from it.

        No other `transform` of the same document interleaves between the
        read and the write.

        Raises:
            DocumentNotFound: If the document does not exist
        """

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
    ) -> list[Document]:
        """Run a one-shot query. `order_by` may be prefixed with '-' for descending."""

    @abstractmethod
    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
    ) -> Subscription:
        """Start a live query.

        `callback` receives the full ordered result set on every change.
        Returns after the initial snapshot has been delivered.
        """

    async def close(self) -> None:
        """Release backend resources."""


@dataclass
class _Listener:
    collection: str
    filters: tuple[FieldFilter, ...]
    order_by: str | None
    callback: SnapshotCallback
    subscription: Subscription | None = None


class MemoryDocumentStore(DocumentStore):
    """In-process document store with synchronous change notification.

    Every write re-runs the live queries registered on the written
    collection and pushes their result sets before the write returns.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: dict[int, _Listener] = {}
        self._next_listener_id = 0
        self._doc_locks: defaultdict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------ writes

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self._collections.setdefault(collection, {})[doc_id] = self._resolve(
            copy.deepcopy(data)
        )
        logger.debug("Document created", collection=collection, doc_id=doc_id)
        self._notify(collection)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collections.get(collection, {})
        if doc_id not in docs:
            raise DocumentNotFound(collection, doc_id)

        stored = docs[doc_id]
        for field_path, value in fields.items():
            set_field(stored, field_path, self._resolve(copy.deepcopy(value)))

        logger.debug(
            "Document updated",
            collection=collection,
            doc_id=doc_id,
            fields=sorted(fields.keys()),
        )
        self._notify(collection)

    async def transform(
        self,
        collection: str,
        doc_id: str,
        build_fields: Callable[[Document], dict[str, Any]],
    ) -> None:
        async with self._doc_locks[(collection, doc_id)]:
            doc = await self.get(collection, doc_id)
            if doc is None:
                raise DocumentNotFound(collection, doc_id)
            await self.update(collection, doc_id, build_fields(doc))

    # ------------------------------------------------------------------- reads

    async def get(self, collection: str, doc_id: str) -> Document | None:
        data = self._collections.get(collection, {}).get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, data=copy.deepcopy(data))

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
    ) -> list[Document]:
        return self._run(collection, tuple(filters), order_by)

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
    ) -> Subscription:
        listener_id = self._next_listener_id
        self._next_listener_id += 1

        listener = _Listener(
            collection=collection,
            filters=tuple(filters),
            order_by=order_by,
            callback=callback,
        )
        listener.subscription = Subscription(
            on_unsubscribe=lambda: self._listeners.pop(listener_id, None)
        )
        self._listeners[listener_id] = listener

        logger.debug(
            "Live query registered",
            collection=collection,
            listener_id=listener_id,
            filters=[(f.field, f.op, f.value) for f in listener.filters],
        )

        callback(self._run(collection, listener.filters, order_by))
        return listener.subscription

    async def close(self) -> None:
        for listener in list(self._listeners.values()):
            if listener.subscription is not None:
                listener.subscription.unsubscribe()
        self._listeners.clear()

    # ---------------------------------------------------------------- helpers

    @property
    def listener_count(self) -> int:
        """Number of live queries currently registered."""
        return len(self._listeners)

    def _run(
        self,
        collection: str,
        filters: tuple[FieldFilter, ...],
        order_by: str | None,
    ) -> list[Document]:
        docs = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
            if all(f.matches(data) for f in filters)
        ]

        field_path, descending = parse_order_by(order_by)
        if field_path is not None:
            # Documents missing the order field are excluded, as in Firestore
            docs = [d for d in docs if get_field(d.data, field_path, _MISSING) is not _MISSING]
            docs.sort(key=lambda d: d.id)
            docs.sort(key=lambda d: _sort_key(d.get(field_path)), reverse=descending)

        return docs

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners.values()):
            if listener.collection != collection:
                continue
            if listener.subscription is None or not listener.subscription.active:
                continue
            try:
                listener.callback(self._run(collection, listener.filters, listener.order_by))
            except Exception as e:
                logger.error(
                    "Live query callback failed",
                    collection=collection,
                    error=str(e),
                    exc_info=True,
                )

    def _resolve(self, value: Any) -> Any:
        if value is SERVER_TIMESTAMP:
            return datetime.now(timezone.utc)
        if isinstance(value, dict):
            return {k: self._resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve(v) for v in value]
        return value


def _sort_key(value: Any) -> tuple[int, Any]:
    # None sorts first; everything else compares within its own type
    if value is None:
        return (0, "")
    return (1, value)


# Singleton instance
_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """Get the configured document store singleton."""
    global _document_store
    if _document_store is None:
        from app.config import settings

        if settings.firestore_enabled:
            from app.infra.firestore import FirestoreDocumentStore

            _document_store = FirestoreDocumentStore()
        else:
            _document_store = MemoryDocumentStore()
        logger.info("Document store configured", backend=settings.document_store)
    return _document_store


async def close_document_store() -> None:
    """Close the document store singleton. Call during shutdown."""
    global _document_store
    if _document_store is not None:
        await _document_store.close()
        _document_store = None
