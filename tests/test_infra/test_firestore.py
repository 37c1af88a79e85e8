"""Tests for the Firestore document store with mocked clients."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core.exceptions import NotFound
from google.cloud import firestore

from app.infra.document_store import SERVER_TIMESTAMP, DocumentNotFound, where
from app.infra.firestore import FirestoreDocumentStore


def make_snapshot(doc_id: str, data: dict) -> MagicMock:
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = True
    snapshot.to_dict.return_value = data
    return snapshot


class TestFirestoreDocumentStore:
    @pytest.fixture
    def fs_store(self) -> FirestoreDocumentStore:
        fs_store = FirestoreDocumentStore(project="test-project", database="(default)")
        fs_store._client = MagicMock()
        fs_store._watch_client = MagicMock()
        return fs_store

    @pytest.mark.asyncio
    async def test_create_maps_server_timestamp(self, fs_store: FirestoreDocumentStore):
        doc_ref = MagicMock()
        doc_ref.id = "abc123"
        doc_ref.set = AsyncMock()
        fs_store._client.collection.return_value.document.return_value = doc_ref

        doc_id = await fs_store.create("suppliers", {"company": "Acme", "createdAt": SERVER_TIMESTAMP})

        assert doc_id == "abc123"
        fs_store._client.collection.assert_called_with("suppliers")
        doc_ref.set.assert_awaited_once_with(
            {"company": "Acme", "createdAt": firestore.SERVER_TIMESTAMP}
        )

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, fs_store: FirestoreDocumentStore):
        snapshot = MagicMock()
        snapshot.exists = False
        fs_store._client.collection.return_value.document.return_value.get = AsyncMock(
            return_value=snapshot
        )

        assert await fs_store.get("suppliers", "missing") is None

    @pytest.mark.asyncio
    async def test_get_existing(self, fs_store: FirestoreDocumentStore):
        fs_store._client.collection.return_value.document.return_value.get = AsyncMock(
            return_value=make_snapshot("s1", {"company": "Acme"})
        )

        doc = await fs_store.get("suppliers", "s1")

        assert doc.id == "s1"
        assert doc.data == {"company": "Acme"}

    @pytest.mark.asyncio
    async def test_update_not_found(self, fs_store: FirestoreDocumentStore):
        fs_store._client.collection.return_value.document.return_value.update = AsyncMock(
            side_effect=NotFound("no document")
        )

        with pytest.raises(DocumentNotFound):
            await fs_store.update("suppliers", "missing", {"company": "x"})

    @pytest.mark.asyncio
    async def test_transform_reads_and_writes_in_transaction(self, fs_store: FirestoreDocumentStore):
        doc_ref = fs_store._client.collection.return_value.document.return_value
        doc_ref.get = AsyncMock(
            return_value=make_snapshot("p1", {"categoryTypes": [{"categoryTypeName": "A"}]})
        )
        transaction = fs_store._client.transaction.return_value

        def build(doc):
            assert doc.id == "p1"
            return {"categoryTypes": [{"categoryTypeName": "A2"}], "updatedAt": SERVER_TIMESTAMP}

        with patch("app.infra.firestore.async_transactional", lambda fn: fn):
            await fs_store.transform("products", "p1", build)

        doc_ref.get.assert_awaited_once_with(transaction=transaction)
        transaction.update.assert_called_once_with(
            doc_ref,
            {"categoryTypes": [{"categoryTypeName": "A2"}], "updatedAt": firestore.SERVER_TIMESTAMP},
        )

    @pytest.mark.asyncio
    async def test_transform_missing_document(self, fs_store: FirestoreDocumentStore):
        snapshot = MagicMock()
        snapshot.exists = False
        doc_ref = fs_store._client.collection.return_value.document.return_value
        doc_ref.get = AsyncMock(return_value=snapshot)

        with patch("app.infra.firestore.async_transactional", lambda fn: fn):
            with pytest.raises(DocumentNotFound):
                await fs_store.transform("products", "missing", lambda doc: {})

        fs_store._client.transaction.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_builds_filters_and_order(self, fs_store: FirestoreDocumentStore):
        snapshots = [make_snapshot("n1", {"name": "B"}), make_snapshot("n2", {"name": "A"})]

        async def stream():
            for snapshot in snapshots:
                yield snapshot

        query = MagicMock()
        query.where.return_value = query
        query.order_by.return_value = query
        query.stream.side_effect = stream
        fs_store._client.collection.return_value = query

        docs = await fs_store.query(
            "taxonomyNodes",
            [where("level", "==", "classification"), where("ids", "array_contains", "x")],
            order_by="-name",
        )

        assert [d.id for d in docs] == ["n1", "n2"]
        assert query.where.call_count == 2
        first_filter = query.where.call_args_list[0].kwargs["filter"]
        assert first_filter.field_path == "level"
        assert first_filter.op_string == "=="
        assert first_filter.value == "classification"
        query.order_by.assert_called_once_with("name", direction=firestore.Query.DESCENDING)

    @pytest.mark.asyncio
    async def test_subscribe_waits_for_first_snapshot(self, fs_store: FirestoreDocumentStore):
        watch = MagicMock()
        captured = {}

        def on_snapshot(callback):
            captured["callback"] = callback
            callback([make_snapshot("n1", {"name": "Lighting"})], [], None)
            return watch

        query = MagicMock()
        query.where.return_value = query
        query.order_by.return_value = query
        query.on_snapshot.side_effect = on_snapshot
        fs_store._watch_client.collection.return_value = query

        seen: list[list[str]] = []
        subscription = await fs_store.subscribe(
            "taxonomyNodes",
            lambda docs: seen.append([d.id for d in docs]),
            [where("level", "==", "classification")],
            order_by="name",
        )
        assert seen == [["n1"]]

        subscription.unsubscribe()
        watch.unsubscribe.assert_called_once()

        captured["callback"]([make_snapshot("n2", {"name": "Late"})], [], None)
        await asyncio.sleep(0)
        assert seen == [["n1"]]

    @pytest.mark.asyncio
    async def test_close_stops_watches(self, fs_store: FirestoreDocumentStore):
        watch = MagicMock()

        def on_snapshot(callback):
            callback([], [], None)
            return watch

        fs_store._watch_client.collection.return_value.on_snapshot.side_effect = on_snapshot
        await fs_store.subscribe("suppliers", lambda docs: None)

        await fs_store.close()

        watch.unsubscribe.assert_called_once()
        assert fs_store._client is None
