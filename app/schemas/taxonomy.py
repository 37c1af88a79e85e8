"""Taxonomy node schemas.

All three levels share one flat shape; `parentId` is null for
classifications, a classification id for category types and a category
type id for product types.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.infra.document_store import Document
from app.schemas.common import CascadeSummary


class TaxonomyLevel(str, Enum):
    """Tree level, stored as the node's `level` field."""

    CLASSIFICATION = "classification"
    CATEGORY_TYPE = "categoryType"
    PRODUCT_TYPE = "productType"

    @property
    def parent_level(self) -> "TaxonomyLevel | None":
        if self is TaxonomyLevel.CATEGORY_TYPE:
            return TaxonomyLevel.CLASSIFICATION
        if self is TaxonomyLevel.PRODUCT_TYPE:
            return TaxonomyLevel.CATEGORY_TYPE
        return None

    @property
    def label(self) -> str:
        return {
            TaxonomyLevel.CLASSIFICATION: "Classification",
            TaxonomyLevel.CATEGORY_TYPE: "Category type",
            TaxonomyLevel.PRODUCT_TYPE: "Product type",
        }[self]


class TaxonomyNode(BaseModel):
    """A classification, category type or product type."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    level: TaxonomyLevel
    parent_id: str | None = Field(default=None, alias="parentId")
    name: str
    is_active: bool = Field(default=True, alias="isActive")
    reference_id: str | None = Field(default=None, alias="referenceID")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    deleted_by: str | None = Field(default=None, alias="deletedBy")
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")

    @property
    def category_type_id(self) -> str | None:
        """Owning category type, for product types only."""
        if self.level is TaxonomyLevel.PRODUCT_TYPE:
            return self.parent_id
        return None

    @classmethod
    def from_document(cls, doc: Document) -> "TaxonomyNode":
        return cls.model_validate({"id": doc.id, **doc.data})


class NodeCreate(BaseModel):
    """Request body for adding a node."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    parent_id: str | None = Field(default=None, alias="parentId")


class NodeRename(BaseModel):
    """Request body for renaming a node."""

    name: str


class RenameResponse(BaseModel):
    """Result of a rename, including the product cascade."""

    model_config = ConfigDict(populate_by_name=True)

    node: TaxonomyNode
    changed: bool
    cascade: CascadeSummary | None = None
