"""Supplier endpoints, including spreadsheet upload."""

from typing import Annotated, Literal

from fastapi import APIRouter, Query, UploadFile, status

from app.api.deps import CurrentUser, Reconciler, Suppliers
from app.infra.logging import get_logger
from app.schemas.supplier import Supplier, SupplierFilter, SupplierInput, UploadReport
from app.services.spreadsheet import read_rows

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=list[Supplier])
async def list_suppliers(
    service: Suppliers,
    company: str = "",
    internal_code: Annotated[str, Query(alias="internalCode")] = "",
    email: str = "",
    has_contacts: Annotated[bool | None, Query(alias="hasContacts")] = None,
    sort_alpha: Annotated[Literal["asc", "desc", ""], Query(alias="sortAlpha")] = "",
) -> list[Supplier]:
    """List active suppliers with optional filters."""
    filters = SupplierFilter(
        company=company,
        internal_code=internal_code,
        email=email,
        has_contacts=has_contacts,
        sort_alpha=sort_alpha,
    )
    return await service.list_suppliers(filters)


@router.post("", response_model=Supplier, status_code=status.HTTP_201_CREATED)
async def create_supplier(body: SupplierInput, service: Suppliers, user: CurrentUser) -> Supplier:
    return await service.create_supplier(body, user)


@router.post("/upload", response_model=UploadReport)
async def upload_suppliers(
    file: UploadFile,
    reconciler: Reconciler,
    user: CurrentUser,
) -> UploadReport:
    """Insert or reactivate suppliers from an .xlsx or .csv file."""
    content = await file.read()
    rows = read_rows(file.filename or "", content)

    logger.info("Supplier upload received", filename=file.filename, rows=len(rows))
    return await reconciler.reconcile(rows, user)


@router.get("/{supplier_id}", response_model=Supplier)
async def get_supplier(supplier_id: str, service: Suppliers) -> Supplier:
    return await service.get_supplier(supplier_id)


@router.put("/{supplier_id}", response_model=Supplier)
async def update_supplier(
    supplier_id: str,
    body: SupplierInput,
    service: Suppliers,
    user: CurrentUser,
) -> Supplier:
    """Edit a supplier; a company rename is pushed into its Products."""
    return await service.update_supplier(supplier_id, body, user)


@router.delete("/{supplier_id}", response_model=Supplier)
async def delete_supplier(supplier_id: str, service: Suppliers, user: CurrentUser) -> Supplier:
    return await service.soft_delete_supplier(supplier_id, user)
