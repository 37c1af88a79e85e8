"""Cloud Storage for product main images.

Blobs live under ``{referenceID}/products/``; every write is checked against
the acting user's ReferenceID before it reaches the bucket.
"""

import asyncio
import uuid
from pathlib import PurePosixPath

from google.cloud import storage
from google.cloud.storage import Bucket

from app.config import settings
from app.infra.logging import get_logger

logger = get_logger(__name__)

PRODUCT_IMAGE_DIR = "products"


class ReferencePathError(Exception):
    """Raised when a blob path lies outside the acting reference's prefix."""


class StorageClient:
    """Product image uploads to one GCS bucket."""

    def __init__(self, bucket_name: str | None = None) -> None:
        self._client: storage.Client | None = None
        self._bucket: Bucket | None = None
        self._bucket_name = bucket_name or settings.gcs_bucket

    @property
    def bucket(self) -> Bucket:
        """Bucket handle; the GCS client is created on first use."""
        if self._bucket is None:
            if self._client is None:
                self._client = storage.Client()
            self._bucket = self._client.bucket(self._bucket_name)
            logger.info("GCS bucket configured", bucket=self._bucket_name)
        return self._bucket

    def product_image_path(self, reference_id: str, filename: str) -> str:
        """``{reference_id}/products/{random12}_{basename}``.

        Directory parts of `filename` are discarded.
        """
        basename = PurePosixPath(filename).name or "image"
        return f"{reference_id}/{PRODUCT_IMAGE_DIR}/{uuid.uuid4().hex[:12]}_{basename}"

    def validate_reference_path(self, blob_path: str, reference_id: str) -> None:
        """Raises ReferencePathError unless `blob_path` sits under `reference_id/`."""
        if not blob_path.lstrip("/").startswith(f"{reference_id}/"):
            logger.warning(
                "Blob path outside reference prefix",
                blob_path=blob_path,
                reference_id=reference_id,
            )
            raise ReferencePathError(
                f"Path '{blob_path}' does not belong to reference '{reference_id}'"
            )

    async def upload_bytes(
        self,
        data: bytes,
        blob_path: str,
        reference_id: str,
        content_type: str = "image/jpeg",
    ) -> str:
        """Write `data` to `blob_path` and return its gs:// URL.

        The blocking GCS upload runs in a worker thread.
        """
        self.validate_reference_path(blob_path, reference_id)

        blob = self.bucket.blob(blob_path)
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)

        logger.info("Product image uploaded", blob_path=blob_path, size=len(data))
        return self.get_blob_url(blob_path)

    async def upload_product_image(
        self,
        data: bytes,
        filename: str,
        reference_id: str,
        content_type: str = "image/jpeg",
    ) -> str:
        blob_path = self.product_image_path(reference_id, filename)
        return await self.upload_bytes(data, blob_path, reference_id, content_type)

    def get_blob_url(self, blob_path: str) -> str:
        return f"gs://{self._bucket_name}/{blob_path}"


_storage_client: StorageClient | None = None


def get_storage_client() -> StorageClient | None:
    """Shared storage client, or None when `use_blob_storage` is off."""
    global _storage_client
    if not settings.use_blob_storage:
        return None
    if _storage_client is None:
        _storage_client = StorageClient()
    return _storage_client
