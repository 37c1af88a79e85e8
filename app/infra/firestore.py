"""Firestore-backed document store.

Reads and writes go through the async client; `transform` runs inside a
Firestore transaction, which retries on contention. Live queries use the sync
client's `on_snapshot` watch, whose callbacks arrive on a background
thread and are marshalled onto the event loop before reaching callers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

from google.api_core.exceptions import NotFound
from google.cloud import firestore
from google.cloud.firestore import async_transactional
from google.cloud.firestore_v1.base_query import FieldFilter as FirestoreFieldFilter

from app.config import settings
from app.infra.document_store import (
    SERVER_TIMESTAMP,
    Document,
    DocumentNotFound,
    DocumentStore,
    FieldFilter,
    SnapshotCallback,
    Subscription,
    parse_order_by,
)
from app.infra.logging import get_logger

logger = get_logger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """Document store on Cloud Firestore."""

    def __init__(self, project: str | None = None, database: str | None = None) -> None:
        """Initialize the store.

        Args:
            project: GCP project. Defaults to settings.firestore_project.
            database: Firestore database id. Defaults to settings.firestore_database.
        """
        self._project = project or settings.firestore_project or None
        self._database = database or settings.firestore_database
        self._client: firestore.AsyncClient | None = None
        self._watch_client: firestore.Client | None = None
        self._watches: list[Any] = []

    @property
    def client(self) -> firestore.AsyncClient:
        """Lazy-load the async Firestore client."""
        if self._client is None:
            self._client = firestore.AsyncClient(
                project=self._project,
                database=self._database,
            )
            logger.info(
                "Firestore client initialized",
                project=self._project,
                database=self._database,
            )
        return self._client

    @property
    def watch_client(self) -> firestore.Client:
        """Lazy-load the sync client used only for snapshot listeners."""
        if self._watch_client is None:
            self._watch_client = firestore.Client(
                project=self._project,
                database=self._database,
            )
        return self._watch_client

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_ref = self.client.collection(collection).document()
        await doc_ref.set(_to_firestore(data))
        logger.debug("Document created", collection=collection, doc_id=doc_ref.id)
        return doc_ref.id

    async def get(self, collection: str, doc_id: str) -> Document | None:
        snapshot = await self.client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return Document(id=snapshot.id, data=snapshot.to_dict() or {})

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        try:
            await self.client.collection(collection).document(doc_id).update(
                _to_firestore(fields)
            )
        except NotFound as e:
            raise DocumentNotFound(collection, doc_id) from e

    async def transform(
        self,
        collection: str,
        doc_id: str,
        build_fields: Callable[[Document], dict[str, Any]],
    ) -> None:
        doc_ref = self.client.collection(collection).document(doc_id)

        @async_transactional
        async def _apply(transaction: Any) -> None:
            snapshot = await doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentNotFound(collection, doc_id)
            fields = build_fields(Document(id=snapshot.id, data=snapshot.to_dict() or {}))
            transaction.update(doc_ref, _to_firestore(fields))

        await _apply(self.client.transaction())

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
    ) -> list[Document]:
        query = _build_query(self.client.collection(collection), filters, order_by)
        return [
            Document(id=snapshot.id, data=snapshot.to_dict() or {})
            async for snapshot in query.stream()
        ]

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
    ) -> Subscription:
        loop = asyncio.get_running_loop()
        first_snapshot = asyncio.Event()
        watch_holder: dict[str, Any] = {}

        def _stop() -> None:
            watch = watch_holder.pop("watch", None)
            if watch is not None:
                watch.unsubscribe()
                if watch in self._watches:
                    self._watches.remove(watch)

        subscription = Subscription(on_unsubscribe=_stop)

        def _deliver(docs: list[Document]) -> None:
            if subscription.active:
                try:
                    callback(docs)
                except Exception as e:
                    logger.error(
                        "Live query callback failed",
                        collection=collection,
                        error=str(e),
                        exc_info=True,
                    )
            first_snapshot.set()

        def _on_snapshot(snapshots: list[Any], changes: list[Any], read_time: Any) -> None:
            docs = [Document(id=s.id, data=s.to_dict() or {}) for s in snapshots]
            loop.call_soon_threadsafe(_deliver, docs)

        query = _build_query(self.watch_client.collection(collection), filters, order_by)
        watch = query.on_snapshot(_on_snapshot)
        watch_holder["watch"] = watch
        self._watches.append(watch)

        await first_snapshot.wait()
        logger.debug("Live query registered", collection=collection)
        return subscription

    async def close(self) -> None:
        for watch in list(self._watches):
            watch.unsubscribe()
        self._watches.clear()
        if self._client is not None:
            self._client.close()
            self._client = None
        if self._watch_client is not None:
            self._watch_client.close()
            self._watch_client = None
        logger.info("Firestore clients closed")


def _build_query(base: Any, filters: Sequence[FieldFilter], order_by: str | None) -> Any:
    query = base
    for f in filters:
        query = query.where(filter=FirestoreFieldFilter(f.field, f.op, f.value))

    field_path, descending = parse_order_by(order_by)
    if field_path is not None:
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        query = query.order_by(field_path, direction=direction)
    return query


def _to_firestore(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, dict):
        return {k: _to_firestore(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_firestore(v) for v in value]
    return value
