"""Bulk supplier upload reconciliation.

Each uploaded row is matched by company name (case-insensitive) against a
snapshot of the whole `suppliers` collection taken once per batch:

- blank company            -> skipped as invalid
- matches an active one    -> skipped as duplicate
- matches an inactive one  -> reactivated with the row's fields
- no match                 -> inserted

The snapshot is updated as rows are written, so a company repeated later in
the same file is skipped as a duplicate.
"""

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from app.core.cascade import cascade_supplier_company
from app.core.codes import generate_supplier_code
from app.core.errors import ReferenceNotLoaded
from app.core.suppliers import SUPPLIERS, supplier_fields
from app.infra.document_store import SERVER_TIMESTAMP, DocumentStore
from app.infra.logging import get_logger
from app.schemas.supplier import (
    Contact,
    RowOutcome,
    RowResult,
    SupplierInput,
    UploadReport,
)
from app.schemas.user import ActingUser

logger = get_logger(__name__)

COMPANY_HEADERS = ("Company Name", "Company", "company", "Supplier", "Supplier Name")

FIELD_HEADERS: dict[str, tuple[str, ...]] = {
    "internal_code": ("Internal Code", "internal code", "internalCode"),
    "addresses": ("Addresses", "Address", "addresses", "address"),
    "emails": ("Emails", "Email", "emails", "email"),
    "website": ("Website", "website"),
    "contact_names": ("Contact Name(s)", "Contact Names", "Contact Name", "contact name"),
    "phones": ("Phone Number(s)", "Phone Numbers", "Phone Number", "phone number"),
    "forte_products": ("Forte Product(s)", "Forte Products", "Forte Product", "forte products"),
    "products": ("Product(s)", "Products", "Product", "products"),
    "certificates": ("Certificate(s)", "Certificates", "Certificate", "certificates"),
}


def _first_value(row: Mapping[str, Any], headers: Iterable[str]) -> str:
    for header in headers:
        value = row.get(header)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def split_pipe(value: str) -> list[str]:
    """Split a pipe-delimited cell, trimming parts and dropping empties."""
    return [part.strip() for part in value.split("|") if part.strip()]


def split_cells(value: str) -> list[str]:
    """Split a pipe-delimited cell, trimming parts but keeping empty positions."""
    if not value:
        return []
    return [part.strip() for part in value.split("|")]


def pair_contacts(names: list[str], phones: list[str]) -> list[Contact]:
    """Pair contact names with phones by position; missing phones are ''."""
    return [
        Contact(name=name, phone=phones[i] if i < len(phones) else "")
        for i, name in enumerate(names)
    ]


def parse_row(row: Mapping[str, Any]) -> SupplierInput:
    """Map one spreadsheet row onto supplier input, using header fallbacks."""

    def cell(key: str) -> str:
        return _first_value(row, FIELD_HEADERS[key])

    return SupplierInput(
        company=_first_value(row, COMPANY_HEADERS),
        internal_code=cell("internal_code"),
        addresses=split_pipe(cell("addresses")),
        emails=split_pipe(cell("emails")),
        website=cell("website"),
        contacts=pair_contacts(split_cells(cell("contact_names")), split_cells(cell("phones"))),
        forte_products=split_pipe(cell("forte_products")),
        products=split_pipe(cell("products")),
        certificates=split_pipe(cell("certificates")),
    )


@dataclass
class _KnownSupplier:
    id: str
    company: str
    is_active: bool


class SupplierReconciler:
    """Inserts, reactivates or skips uploaded supplier rows."""

    def __init__(self, store: DocumentStore, rng: random.Random | None = None) -> None:
        self.store = store
        self.rng = rng

    async def _snapshot(self) -> dict[str, _KnownSupplier]:
        known: dict[str, _KnownSupplier] = {}
        for doc in await self.store.query(SUPPLIERS):
            company = str(doc.get("company") or "").strip()
            if not company:
                continue
            entry = _KnownSupplier(
                id=doc.id, company=company, is_active=bool(doc.get("isActive", False))
            )
            key = company.lower()
            current = known.get(key)
            if current is None or (entry.is_active and not current.is_active):
                known[key] = entry
        return known

    async def reconcile(
        self, rows: Iterable[Mapping[str, Any]], user: ActingUser
    ) -> UploadReport:
        """Reconcile one uploaded batch in file order.

        Args:
            rows: Rows keyed by header
            user: Acting user; its ReferenceID is stamped on written suppliers

        Returns:
            Per-row outcomes and counts

        Raises:
            ReferenceNotLoaded: If the user has no ReferenceID
        """
        if not user.reference_id:
            raise ReferenceNotLoaded()

        known = await self._snapshot()
        report = UploadReport()

        for row_number, row in enumerate(rows, start=1):
            data = parse_row(row)
            result = await self._reconcile_row(row_number, data, known, user, report)
            report.rows.append(result)
            logger.debug(
                "Supplier row reconciled",
                row=row_number,
                company=data.company,
                outcome=result.outcome.value,
            )

        logger.info(
            "Supplier upload reconciled",
            rows=len(report.rows),
            inserted=report.inserted,
            reactivated=report.reactivated,
            skipped=report.skipped,
            stale_products=len(report.stale_product_ids),
        )
        return report

    async def _reconcile_row(
        self,
        row_number: int,
        data: SupplierInput,
        known: dict[str, _KnownSupplier],
        user: ActingUser,
        report: UploadReport,
    ) -> RowResult:
        fields = supplier_fields(data)
        company = fields["company"]
        if not company:
            return RowResult(row_number=row_number, company="", outcome=RowOutcome.SKIPPED_INVALID)

        match = known.get(company.lower())
        if match is not None and match.is_active:
            return RowResult(
                row_number=row_number,
                company=company,
                outcome=RowOutcome.SKIPPED_DUPLICATE,
                supplier_id=match.id,
            )

        if match is not None:
            await self.store.update(
                SUPPLIERS,
                match.id,
                {
                    **fields,
                    "supplierId": match.id,
                    "isActive": True,
                    "referenceID": user.reference_id,
                    "updatedAt": SERVER_TIMESTAMP,
                },
            )
            if match.company != company:
                cascade = await cascade_supplier_company(self.store, match.id, company)
                report.stale_product_ids.extend(cascade.failed_ids)
            known[company.lower()] = _KnownSupplier(id=match.id, company=company, is_active=True)
            return RowResult(
                row_number=row_number,
                company=company,
                outcome=RowOutcome.REACTIVATED,
                supplier_id=match.id,
            )

        supplier_id = await self.store.create(
            SUPPLIERS,
            {
                **fields,
                "companyCode": generate_supplier_code(company, rng=self.rng),
                "isActive": True,
                "createdBy": user.reference_id,
                "referenceID": user.reference_id,
                "createdAt": SERVER_TIMESTAMP,
            },
        )
        await self.store.update(SUPPLIERS, supplier_id, {"supplierId": supplier_id})
        known[company.lower()] = _KnownSupplier(id=supplier_id, company=company, is_active=True)
        return RowResult(
            row_number=row_number,
            company=company,
            outcome=RowOutcome.INSERTED,
            supplier_id=supplier_id,
        )
