"""Supplier schemas, including bulk-upload reporting."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.infra.document_store import Document


class Contact(BaseModel):
    name: str = ""
    phone: str = ""


class Supplier(BaseModel):
    """A stored supplier document."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    supplier_id: str | None = Field(default=None, alias="supplierId")
    company: str
    company_code: str | None = Field(default=None, alias="companyCode")
    internal_code: str | None = Field(default=None, alias="internalCode")
    addresses: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)
    website: str | None = None
    contacts: list[Contact] = Field(default_factory=list)
    forte_products: list[str] = Field(default_factory=list, alias="forteProducts")
    products: list[str] = Field(default_factory=list)
    certificates: list[str] = Field(default_factory=list)
    is_active: bool = Field(default=True, alias="isActive")
    created_by: str | None = Field(default=None, alias="createdBy")
    reference_id: str | None = Field(default=None, alias="referenceID")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    deleted_by: str | None = Field(default=None, alias="deletedBy")
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")

    @classmethod
    def from_document(cls, doc: Document) -> "Supplier":
        return cls.model_validate({"id": doc.id, **doc.data})


class SupplierInput(BaseModel):
    """Add/edit form payload."""

    model_config = ConfigDict(populate_by_name=True)

    company: str
    internal_code: str = Field(default="", alias="internalCode")
    addresses: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)
    website: str = ""
    contacts: list[Contact] = Field(default_factory=list)
    forte_products: list[str] = Field(default_factory=list, alias="forteProducts")
    products: list[str] = Field(default_factory=list)
    certificates: list[str] = Field(default_factory=list)


class SupplierFilter(BaseModel):
    """Listing filters; empty strings and None mean "any"."""

    model_config = ConfigDict(populate_by_name=True)

    company: str = ""
    internal_code: str = Field(default="", alias="internalCode")
    email: str = ""
    has_contacts: bool | None = Field(default=None, alias="hasContacts")
    sort_alpha: Literal["asc", "desc", ""] = Field(default="", alias="sortAlpha")


class RowOutcome(str, Enum):
    INSERTED = "inserted"
    REACTIVATED = "reactivated"
    SKIPPED_INVALID = "skipped_invalid"
    SKIPPED_DUPLICATE = "skipped_duplicate_active"


class RowResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_number: int = Field(alias="rowNumber")
    company: str
    outcome: RowOutcome
    supplier_id: str | None = Field(default=None, alias="supplierId")


class UploadReport(BaseModel):
    """Aggregate result of one supplier upload batch."""

    model_config = ConfigDict(populate_by_name=True)

    rows: list[RowResult] = Field(default_factory=list)
    stale_product_ids: list[str] = Field(
        default_factory=list,
        alias="staleProductIds",
        description="Products whose supplier name could not be refreshed",
    )

    def count(self, outcome: RowOutcome) -> int:
        return sum(1 for r in self.rows if r.outcome is outcome)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def inserted(self) -> int:
        return self.count(RowOutcome.INSERTED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reactivated(self) -> int:
        return self.count(RowOutcome.REACTIVATED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped(self) -> int:
        return self.count(RowOutcome.SKIPPED_INVALID) + self.count(RowOutcome.SKIPPED_DUPLICATE)

    @computed_field(alias="nothingUploaded")  # type: ignore[prop-decorator]
    @property
    def nothing_uploaded(self) -> bool:
        return self.inserted + self.reactivated == 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        if self.nothing_uploaded:
            return f"Nothing uploaded: all {len(self.rows)} rows were skipped"
        return (
            f"Upload completed. Inserted: {self.inserted}, "
            f"Reactivated: {self.reactivated}, Skipped: {self.skipped}"
        )
