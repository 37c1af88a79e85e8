"""Pydantic schemas for request/response validation."""

from app.schemas.common import CascadeSummary, ErrorResponse, HealthResponse
from app.schemas.product import Product, ProductCreate
from app.schemas.supplier import (
    RowOutcome,
    Supplier,
    SupplierFilter,
    SupplierInput,
    UploadReport,
)
from app.schemas.taxonomy import TaxonomyLevel, TaxonomyNode
from app.schemas.user import ActingUser

__all__ = [
    "ActingUser",
    "CascadeSummary",
    "ErrorResponse",
    "HealthResponse",
    "Product",
    "ProductCreate",
    "RowOutcome",
    "Supplier",
    "SupplierFilter",
    "SupplierInput",
    "TaxonomyLevel",
    "TaxonomyNode",
    "UploadReport",
]
