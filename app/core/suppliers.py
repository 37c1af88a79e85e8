"""Supplier add / edit / delete / list.

Company names are unique among active suppliers, compared
case-insensitively. Renaming a company cascades into the `supplier.company`
snapshot of every Product that references the supplier.
"""

import random
from typing import Any

from app.core.cascade import cascade_supplier_company
from app.core.codes import generate_supplier_code
from app.core.errors import (
    DuplicateName,
    EmptyName,
    InvalidSupplierInput,
    ReferenceNotLoaded,
    SupplierNotFound,
)
from app.infra.document_store import SERVER_TIMESTAMP, Document, DocumentStore, active_only
from app.infra.logging import get_logger
from app.schemas.supplier import Supplier, SupplierFilter, SupplierInput
from app.schemas.user import ActingUser

logger = get_logger(__name__)

SUPPLIERS = "suppliers"


def _clean_list(values: list[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


def supplier_fields(data: SupplierInput) -> dict[str, Any]:
    """Editable supplier fields with blanks trimmed away."""
    return {
        "company": data.company.strip(),
        "internalCode": data.internal_code.strip(),
        "addresses": _clean_list(data.addresses),
        "emails": _clean_list(data.emails),
        "website": data.website.strip(),
        "contacts": [
            {"name": c.name.strip(), "phone": c.phone.strip()}
            for c in data.contacts
            if c.name.strip() or c.phone.strip()
        ],
        "forteProducts": _clean_list(data.forte_products),
        "products": _clean_list(data.products),
        "certificates": _clean_list(data.certificates),
    }


def validate_supplier_input(data: SupplierInput) -> dict[str, Any]:
    """Validate form input and return the cleaned fields.

    Raises:
        EmptyName: If the company is blank
        InvalidSupplierInput: If no address is given or an email has no '@'
    """
    fields = supplier_fields(data)
    if not fields["company"]:
        raise EmptyName("Company")
    if not fields["addresses"]:
        raise InvalidSupplierInput("At least one address is required")
    bad_emails = [e for e in fields["emails"] if "@" not in e]
    if bad_emails:
        raise InvalidSupplierInput(f"Invalid email address: {bad_emails[0]}")
    return fields


class SupplierService:
    """Form-driven supplier operations."""

    def __init__(self, store: DocumentStore, rng: random.Random | None = None) -> None:
        self.store = store
        self.rng = rng

    async def _find_active_company(
        self, company: str, exclude_id: str | None = None
    ) -> Document | None:
        wanted = company.strip().lower()
        for doc in await self.store.query(SUPPLIERS, [active_only()]):
            if doc.id != exclude_id and str(doc.get("company", "")).strip().lower() == wanted:
                return doc
        return None

    async def _get_active(self, supplier_id: str) -> Document:
        doc = await self.store.get(SUPPLIERS, supplier_id)
        if doc is None or not doc.get("isActive", False):
            raise SupplierNotFound(supplier_id)
        return doc

    async def get_supplier(self, supplier_id: str) -> Supplier:
        doc = await self.store.get(SUPPLIERS, supplier_id)
        if doc is None:
            raise SupplierNotFound(supplier_id)
        return Supplier.from_document(doc)

    async def create_supplier(self, data: SupplierInput, user: ActingUser) -> Supplier:
        """Add a supplier and write its id back as `supplierId`.

        Raises:
            ReferenceNotLoaded: If the user has no ReferenceID
            EmptyName: If the company is blank
            InvalidSupplierInput: If addresses or emails are invalid
            DuplicateName: If an active supplier has the same company
        """
        if not user.reference_id:
            raise ReferenceNotLoaded()
        fields = validate_supplier_input(data)

        if await self._find_active_company(fields["company"]) is not None:
            raise DuplicateName(fields["company"], "suppliers")

        supplier_id = await self.store.create(
            SUPPLIERS,
            {
                **fields,
                "companyCode": generate_supplier_code(fields["company"], rng=self.rng),
                "isActive": True,
                "createdBy": user.reference_id,
                "referenceID": user.reference_id,
                "createdAt": SERVER_TIMESTAMP,
            },
        )
        await self.store.update(SUPPLIERS, supplier_id, {"supplierId": supplier_id})

        logger.info("Supplier created", supplier_id=supplier_id, company=fields["company"])
        return await self.get_supplier(supplier_id)

    async def update_supplier(
        self, supplier_id: str, data: SupplierInput, user: ActingUser
    ) -> Supplier:
        """Overwrite a supplier's fields, cascading a company rename.

        Raises:
            ReferenceNotLoaded: If the user has no ReferenceID
            SupplierNotFound: If the supplier is missing or inactive
            EmptyName: If the company is blank
            InvalidSupplierInput: If addresses or emails are invalid
            DuplicateName: If another active supplier has the same company
            FanoutPartialFailure: If the update committed but some Products
                kept the old company name
        """
        if not user.reference_id:
            raise ReferenceNotLoaded()
        existing = await self._get_active(supplier_id)
        fields = validate_supplier_input(data)

        if await self._find_active_company(fields["company"], exclude_id=supplier_id) is not None:
            raise DuplicateName(fields["company"], "suppliers")

        await self.store.update(
            SUPPLIERS,
            supplier_id,
            {
                **fields,
                "supplierId": supplier_id,
                "referenceID": user.reference_id,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        logger.info("Supplier updated", supplier_id=supplier_id, company=fields["company"])

        if existing.get("company") != fields["company"]:
            cascade = await cascade_supplier_company(self.store, supplier_id, fields["company"])
            cascade.raise_for_failures()

        return await self.get_supplier(supplier_id)

    async def soft_delete_supplier(self, supplier_id: str, user: ActingUser) -> Supplier:
        """Mark a supplier inactive. Products keep their supplier snapshot.

        Raises:
            ReferenceNotLoaded: If the user has no ReferenceID
            SupplierNotFound: If the supplier does not exist
        """
        if not user.reference_id:
            raise ReferenceNotLoaded()
        await self.get_supplier(supplier_id)

        await self.store.update(
            SUPPLIERS,
            supplier_id,
            {
                "isActive": False,
                "deletedBy": user.reference_id,
                "deletedAt": SERVER_TIMESTAMP,
            },
        )
        logger.info("Supplier deleted", supplier_id=supplier_id)
        return await self.get_supplier(supplier_id)

    async def list_suppliers(self, filters: SupplierFilter | None = None) -> list[Supplier]:
        """Active suppliers matching the filters.

        Text filters are case-insensitive substring matches.
        """
        filters = filters or SupplierFilter()
        suppliers = [
            Supplier.from_document(d) for d in await self.store.query(SUPPLIERS, [active_only()])
        ]

        company = filters.company.strip().lower()
        internal_code = filters.internal_code.strip().lower()
        email = filters.email.strip().lower()

        if company:
            suppliers = [s for s in suppliers if company in s.company.lower()]
        if internal_code:
            suppliers = [s for s in suppliers if internal_code in (s.internal_code or "").lower()]
        if email:
            suppliers = [s for s in suppliers if any(email in e.lower() for e in s.emails)]
        if filters.has_contacts is not None:
            suppliers = [s for s in suppliers if bool(s.contacts) == filters.has_contacts]
        if filters.sort_alpha:
            suppliers.sort(
                key=lambda s: s.company.lower(), reverse=filters.sort_alpha == "desc"
            )

        return suppliers
