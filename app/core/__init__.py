"""Core module - Taxonomy tree, selection, product fan-out and suppliers."""

from app.core.cascade import CascadeResult
from app.core.fanout import ProductFanoutWriter
from app.core.reconciler import SupplierReconciler
from app.core.selection import ProductSelection, SelectionStateMachine
from app.core.suppliers import SupplierService
from app.core.taxonomy import RenameResult, TaxonomyTreeManager

__all__ = [
    "CascadeResult",
    "ProductFanoutWriter",
    "ProductSelection",
    "RenameResult",
    "SelectionStateMachine",
    "SupplierReconciler",
    "SupplierService",
    "TaxonomyTreeManager",
]
