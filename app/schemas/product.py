"""Product document schemas.

Names inside `categoryTypes`, `productTypes`, `classificationName` and
`supplier.company` are snapshots taken when the product was written; the
cascade functions keep them in step with renames.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.infra.document_store import Document


class CategoryTypeRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category_type_id: str = Field(alias="categoryTypeId")
    category_type_name: str = Field(alias="categoryTypeName")


class ProductTypeRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_type_id: str = Field(alias="productTypeId")
    product_type_name: str = Field(alias="productTypeName")
    category_type_id: str = Field(alias="categoryTypeId")


class SupplierRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    supplier_id: str = Field(alias="supplierId")
    company: str


class TechnicalSpecification(BaseModel):
    key: str = ""
    value: str = ""


class Product(BaseModel):
    """A stored product document."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    product_name: str = Field(alias="productName")
    product_code: str = Field(alias="productCode")
    classification_id: str = Field(alias="classificationId")
    classification_name: str = Field(alias="classificationName")
    supplier: SupplierRef | None = None
    category_types: list[CategoryTypeRef] = Field(default_factory=list, alias="categoryTypes")
    product_types: list[ProductTypeRef] = Field(default_factory=list, alias="productTypes")
    technical_specifications: list[TechnicalSpecification] = Field(
        default_factory=list, alias="technicalSpecifications"
    )
    main_image: str | None = Field(default=None, alias="mainImage")
    created_by: str | None = Field(default=None, alias="createdBy")
    reference_id: str | None = Field(default=None, alias="referenceID")
    is_active: bool = Field(default=True, alias="isActive")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @classmethod
    def from_document(cls, doc: Document) -> "Product":
        return cls.model_validate({"id": doc.id, **doc.data})


class ProductCreate(BaseModel):
    """Request body for composing a product from a taxonomy selection.

    The image, when present, travels base64-encoded like the other JSON
    fields.
    """

    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(alias="productName")
    classification_id: str | None = Field(default=None, alias="classificationId")
    category_type_ids: list[str] = Field(default_factory=list, alias="categoryTypeIds")
    product_type_ids: list[str] = Field(default_factory=list, alias="productTypeIds")
    supplier_id: str | None = Field(default=None, alias="supplierId")
    technical_specifications: list[TechnicalSpecification] = Field(
        default_factory=list, alias="technicalSpecifications"
    )
    main_image_filename: str | None = Field(default=None, alias="mainImageFilename")
    main_image_content_type: str = Field(default="image/jpeg", alias="mainImageContentType")
    main_image_base64: str | None = Field(default=None, alias="mainImageBase64")
