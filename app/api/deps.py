"""FastAPI dependencies for dependency injection.

Provides:
- Document store and the catalog services built on it
- Storage client for product images
- The acting user, resolved through the users API
"""

from typing import Annotated

from fastapi import Cookie, Depends, Header

from app.core.errors import ReferenceNotLoaded
from app.core.fanout import ProductFanoutWriter
from app.core.reconciler import SupplierReconciler
from app.core.suppliers import SupplierService
from app.core.taxonomy import TaxonomyTreeManager
from app.infra.document_store import DocumentStore, get_document_store
from app.infra.logging import bind_request_context, get_logger
from app.infra.storage import StorageClient, get_storage_client
from app.schemas.user import ActingUser
from app.services.user_client import UserClient, get_user_client

logger = get_logger(__name__)


async def get_store() -> DocumentStore:
    """Get document store dependency."""
    return get_document_store()


async def get_storage() -> StorageClient | None:
    """Get storage client dependency (None when blob storage is disabled)."""
    return get_storage_client()


async def get_users() -> UserClient:
    """Get users API client dependency."""
    return get_user_client()


Store = Annotated[DocumentStore, Depends(get_store)]
Storage = Annotated[StorageClient | None, Depends(get_storage)]
Users = Annotated[UserClient, Depends(get_users)]


# Add locks live on the manager, so it is shared across requests
_tree: TaxonomyTreeManager | None = None


async def get_tree(store: Store) -> TaxonomyTreeManager:
    """Get the taxonomy tree manager bound to the current store."""
    global _tree
    if _tree is None or _tree.store is not store:
        _tree = TaxonomyTreeManager(store)
    return _tree


async def get_supplier_service(store: Store) -> SupplierService:
    return SupplierService(store)


async def get_reconciler(store: Store) -> SupplierReconciler:
    return SupplierReconciler(store)


async def get_product_writer(store: Store, storage: Storage) -> ProductFanoutWriter:
    return ProductFanoutWriter(store, storage=storage)


Tree = Annotated[TaxonomyTreeManager, Depends(get_tree)]
Suppliers = Annotated[SupplierService, Depends(get_supplier_service)]
Reconciler = Annotated[SupplierReconciler, Depends(get_reconciler)]
ProductWriter = Annotated[ProductFanoutWriter, Depends(get_product_writer)]


async def get_acting_user(
    users: Users,
    user_id: Annotated[str | None, Cookie(alias="userId")] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> ActingUser:
    """Resolve the logged-in user from the `userId` cookie.

    The X-User-Id header is accepted for local development and tooling.

    Raises:
        ReferenceNotLoaded: If no user id is present or the user cannot be loaded
    """
    resolved = user_id or x_user_id
    if not resolved:
        logger.debug("Request without user id")
        raise ReferenceNotLoaded("Not logged in")
    user = await users.get_user(resolved)
    bind_request_context(user_id=user.user_id, reference_id=user.reference_id or None)
    return user


CurrentUser = Annotated[ActingUser, Depends(get_acting_user)]


async def get_reference_id(user: CurrentUser) -> str:
    """The acting user's ReferenceID, required for taxonomy writes."""
    if not user.reference_id:
        raise ReferenceNotLoaded()
    return user.reference_id


ReferenceId = Annotated[str, Depends(get_reference_id)]
