"""Catalog error kinds.

Validation errors are raised before any write and are recoverable by
correcting input. `FanoutPartialFailure` is raised after the authoritative
write has committed; it is reported, never rolled back.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog errors."""


class DuplicateName(CatalogError):
    """An active sibling with the same name already exists."""

    def __init__(self, name: str, scope: str) -> None:
        super().__init__(f"'{name}' already exists in {scope}")
        self.name = name
        self.scope = scope


class EmptyName(CatalogError):
    """A create or rename was attempted with a blank name."""

    def __init__(self, what: str = "Name") -> None:
        super().__init__(f"{what} cannot be empty")
        self.what = what


class MissingParentSelection(CatalogError):
    """A child node was added without a usable parent."""


class InvalidSelection(CatalogError):
    """A node that is not currently selectable was chosen."""


class ReferenceNotLoaded(CatalogError):
    """The acting user's ReferenceID has not been resolved."""

    def __init__(self, message: str = "User reference not loaded") -> None:
        super().__init__(message)


class NodeNotFound(CatalogError):
    """No taxonomy node exists with the given id."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Taxonomy node '{node_id}' not found")
        self.node_id = node_id


class ProductNotFound(CatalogError):
    """No product exists with the given id."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product '{product_id}' not found")
        self.product_id = product_id


class SupplierNotFound(CatalogError):
    """No supplier exists with the given id."""

    def __init__(self, supplier_id: str) -> None:
        super().__init__(f"Supplier '{supplier_id}' not found")
        self.supplier_id = supplier_id


class InvalidSupplierInput(CatalogError):
    """Supplier form input failed validation."""


class UnsupportedUploadFile(CatalogError):
    """Uploaded file is not a readable spreadsheet."""


class FanoutPartialFailure(CatalogError):
    """The source rename committed but some Product updates failed.

    Attributes:
        source: What was renamed, e.g. "categoryType:abc123"
        matched: Products found referencing the source
        updated: Products successfully rewritten
        failed_ids: Product ids left with a stale embedded name
    """

    def __init__(
        self,
        source: str,
        matched: int,
        updated: int,
        failed_ids: list[str],
    ) -> None:
        super().__init__(
            f"Renamed {source} but {len(failed_ids)} of {matched} products "
            f"could not be updated"
        )
        self.source = source
        self.matched = matched
        self.updated = updated
        self.failed_ids = failed_ids
