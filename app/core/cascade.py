"""Propagation of renamed names into the Products that embed them.

Each helper finds the Products referencing one source entity and rewrites
only the embedded name field(s). Per-Product writes run concurrently and
are joined; each one re-reads its Product inside `DocumentStore.transform`,
so concurrent renames of sibling entries in the same array both land. A
failed write is recorded, never retried. Running a helper
twice with the same name leaves Products unchanged, so a partial failure
is healed by running it again.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.core.errors import FanoutPartialFailure
from app.infra.document_store import Document, DocumentStore, where
from app.infra.logging import get_logger
from app.schemas.common import CascadeSummary

logger = get_logger(__name__)

PRODUCTS = "products"


@dataclass(frozen=True)
class CascadeResult:
    """Counts from one cascade run."""

    source: str
    matched: int
    updated: int
    failed_ids: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.failed_ids

    def raise_for_failures(self) -> None:
        """Raise FanoutPartialFailure if any Product write failed."""
        if self.failed_ids:
            raise FanoutPartialFailure(
                source=self.source,
                matched=self.matched,
                updated=self.updated,
                failed_ids=list(self.failed_ids),
            )

    def to_summary(self) -> CascadeSummary:
        return CascadeSummary(
            source=self.source,
            matched=self.matched,
            updated=self.updated,
            failed_ids=list(self.failed_ids),
        )


async def _fan_out(
    store: DocumentStore,
    source: str,
    products: list[Document],
    build_fields: Callable[[Document], dict[str, Any]],
) -> CascadeResult:
    logger.info("Cascade dispatched", source=source, matched=len(products))

    results = await asyncio.gather(
        *(store.transform(PRODUCTS, doc.id, build_fields) for doc in products),
        return_exceptions=True,
    )

    failed_ids: list[str] = []
    for doc, result in zip(products, results):
        if isinstance(result, BaseException):
            failed_ids.append(doc.id)
            logger.warning(
                "Cascade write failed",
                source=source,
                product_id=doc.id,
                error=str(result),
            )

    cascade = CascadeResult(
        source=source,
        matched=len(products),
        updated=len(products) - len(failed_ids),
        failed_ids=tuple(failed_ids),
    )

    if cascade.complete:
        logger.info("Cascade completed", source=source, updated=cascade.updated)
    else:
        logger.error(
            "Cascade partially failed",
            source=source,
            matched=cascade.matched,
            updated=cascade.updated,
            failed=len(failed_ids),
        )
    return cascade


def _rewrite_entries(
    entries: list[dict[str, Any]],
    id_key: str,
    name_key: str,
    source_id: str,
    new_name: str,
) -> list[dict[str, Any]]:
    return [
        {**entry, name_key: new_name} if entry.get(id_key) == source_id else entry
        for entry in entries
    ]


async def cascade_classification_name(
    store: DocumentStore, classification_id: str, new_name: str
) -> CascadeResult:
    products = await store.query(PRODUCTS, [where("classificationId", "==", classification_id)])
    return await _fan_out(
        store,
        f"classification:{classification_id}",
        products,
        lambda doc: {"classificationName": new_name},
    )


async def cascade_category_type_name(
    store: DocumentStore, category_type_id: str, new_name: str
) -> CascadeResult:
    products = await store.query(
        PRODUCTS, [where("categoryTypeIds", "array_contains", category_type_id)]
    )
    return await _fan_out(
        store,
        f"categoryType:{category_type_id}",
        products,
        lambda doc: {
            "categoryTypes": _rewrite_entries(
                doc.get("categoryTypes") or [],
                "categoryTypeId",
                "categoryTypeName",
                category_type_id,
                new_name,
            )
        },
    )


async def cascade_product_type_name(
    store: DocumentStore, product_type_id: str, new_name: str
) -> CascadeResult:
    products = await store.query(
        PRODUCTS, [where("productTypeIds", "array_contains", product_type_id)]
    )
    return await _fan_out(
        store,
        f"productType:{product_type_id}",
        products,
        lambda doc: {
            "productTypes": _rewrite_entries(
                doc.get("productTypes") or [],
                "productTypeId",
                "productTypeName",
                product_type_id,
                new_name,
            )
        },
    )


async def cascade_supplier_company(
    store: DocumentStore, supplier_id: str, new_company: str
) -> CascadeResult:
    products = await store.query(PRODUCTS, [where("supplier.supplierId", "==", supplier_id)])
    return await _fan_out(
        store,
        f"supplier:{supplier_id}",
        products,
        lambda doc: {"supplier.company": new_company},
    )
