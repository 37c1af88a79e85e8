"""Product fan-out writer.

A Product is written once, embedding a snapshot of the names it was
composed from: classification, category types, product types and supplier
company. Later renames reach these copies through `app.core.cascade`.
"""

import base64
import binascii
import random

from app.core.cascade import PRODUCTS
from app.core.codes import generate_product_code
from app.core.errors import (
    EmptyName,
    MissingParentSelection,
    ProductNotFound,
    ReferenceNotLoaded,
    SupplierNotFound,
    UnsupportedUploadFile,
)
from app.core.selection import ProductSelection
from app.core.suppliers import SUPPLIERS
from app.infra.document_store import SERVER_TIMESTAMP, DocumentStore, active_only
from app.infra.logging import get_logger
from app.infra.storage import StorageClient
from app.schemas.product import Product, ProductCreate
from app.schemas.user import ActingUser

logger = get_logger(__name__)


class ProductFanoutWriter:
    """Writes Products from a selection and reads them back."""

    def __init__(
        self,
        store: DocumentStore,
        storage: StorageClient | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            store: Document store holding products and suppliers
            storage: Blob store for main images; None keeps only the file name
            rng: Random source for product codes (tests pass a seeded one)
        """
        self.store = store
        self.storage = storage
        self.rng = rng

    async def _supplier_ref(self, supplier_id: str) -> dict[str, str]:
        doc = await self.store.get(SUPPLIERS, supplier_id)
        if doc is None or not doc.get("isActive", False):
            raise SupplierNotFound(supplier_id)
        return {"supplierId": doc.id, "company": doc.get("company", "")}

    async def _main_image(self, data: ProductCreate, reference_id: str) -> str | None:
        if not data.main_image_base64:
            return data.main_image_filename

        try:
            content = base64.b64decode(data.main_image_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UnsupportedUploadFile("Main image is not valid base64") from e

        filename = data.main_image_filename or "image.jpg"
        if self.storage is None:
            return filename
        return await self.storage.upload_product_image(
            content, filename, reference_id, data.main_image_content_type
        )

    async def create_product(
        self,
        data: ProductCreate,
        selection: ProductSelection,
        user: ActingUser,
    ) -> Product:
        """Write one Product embedding the selection's current names.

        Args:
            data: Product name, supplier, specifications and image
            selection: Snapshot from the selection state machine
            user: Acting user; its ReferenceID is stamped on the Product

        Returns:
            The stored Product

        Raises:
            EmptyName: If the product name is blank
            MissingParentSelection: If no classification is selected
            ReferenceNotLoaded: If the user has no ReferenceID
            SupplierNotFound: If the supplier is missing or inactive
        """
        product_name = (data.product_name or "").strip()
        if not product_name:
            raise EmptyName("Product name")
        if selection.classification is None:
            raise MissingParentSelection("Select a classification first")
        if not user.reference_id:
            raise ReferenceNotLoaded()

        supplier = await self._supplier_ref(data.supplier_id) if data.supplier_id else None

        document = {
            "productName": product_name,
            "productCode": generate_product_code(product_name, rng=self.rng),
            "classificationId": selection.classification.id,
            "classificationName": selection.classification.name,
            "supplier": supplier,
            "categoryTypes": [
                {"categoryTypeId": n.id, "categoryTypeName": n.name}
                for n in selection.category_types
            ],
            "categoryTypeIds": [n.id for n in selection.category_types],
            "productTypes": [
                {
                    "productTypeId": n.id,
                    "productTypeName": n.name,
                    "categoryTypeId": n.category_type_id,
                }
                for n in selection.product_types
            ],
            "productTypeIds": [n.id for n in selection.product_types],
            "technicalSpecifications": [
                {"key": s.key.strip(), "value": s.value.strip()}
                for s in data.technical_specifications
                if s.key.strip() or s.value.strip()
            ],
            "mainImage": await self._main_image(data, user.reference_id),
            "createdBy": user.reference_id,
            "referenceID": user.reference_id,
            "isActive": True,
            "createdAt": SERVER_TIMESTAMP,
        }

        product_id = await self.store.create(PRODUCTS, document)
        logger.info(
            "Product created",
            product_id=product_id,
            product_code=document["productCode"],
            classification_id=selection.classification.id,
            category_types=len(selection.category_types),
            product_types=len(selection.product_types),
        )
        return await self.get_product(product_id)

    async def get_product(self, product_id: str) -> Product:
        doc = await self.store.get(PRODUCTS, product_id)
        if doc is None:
            raise ProductNotFound(product_id)
        return Product.from_document(doc)

    async def list_products(self) -> list[Product]:
        """Active products, newest first."""
        docs = await self.store.query(PRODUCTS, [active_only()], order_by="-createdAt")
        return [Product.from_document(d) for d in docs]
