"""Tests for the product image storage client."""

from unittest.mock import MagicMock

import pytest

from app.infra.storage import ReferencePathError, StorageClient, get_storage_client


class TestStorageClient:
    @pytest.fixture
    def storage(self) -> StorageClient:
        storage = StorageClient(bucket_name="catalog-images-test")
        storage._bucket = MagicMock()
        return storage

    def test_product_image_path_is_scoped_and_flat(self, storage: StorageClient):
        path = storage.product_image_path("REF-001", "../../etc/lamp.png")

        assert path.startswith("REF-001/products/")
        assert path.endswith("_lamp.png")
        assert ".." not in path

    def test_foreign_reference_rejected(self, storage: StorageClient):
        with pytest.raises(ReferencePathError):
            storage.validate_reference_path("REF-002/products/x.png", "REF-001")

    @pytest.mark.asyncio
    async def test_upload_product_image(self, storage: StorageClient):
        url = await storage.upload_product_image(b"bytes", "lamp.png", "REF-001", "image/png")

        assert url.startswith("gs://catalog-images-test/REF-001/products/")
        blob = storage._bucket.blob.return_value
        blob.upload_from_string.assert_called_once_with(b"bytes", content_type="image/png")

    def test_disabled_by_default(self):
        assert get_storage_client() is None
