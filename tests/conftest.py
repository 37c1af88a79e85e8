"""Shared fixtures: in-memory store, catalog services and an ASGI client."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_storage, get_store, get_users
from app.core.fanout import ProductFanoutWriter
from app.core.reconciler import SupplierReconciler
from app.core.suppliers import SupplierService
from app.core.taxonomy import TaxonomyTreeManager
from app.infra.document_store import MemoryDocumentStore
from app.main import app
from app.schemas.taxonomy import TaxonomyLevel
from app.schemas.user import ActingUser


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def tree(store: MemoryDocumentStore) -> TaxonomyTreeManager:
    return TaxonomyTreeManager(store)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def writer(store: MemoryDocumentStore, rng: random.Random) -> ProductFanoutWriter:
    return ProductFanoutWriter(store, rng=rng)


@pytest.fixture
def supplier_service(store: MemoryDocumentStore, rng: random.Random) -> SupplierService:
    return SupplierService(store, rng=rng)


@pytest.fixture
def reconciler(store: MemoryDocumentStore, rng: random.Random) -> SupplierReconciler:
    return SupplierReconciler(store, rng=rng)


@pytest.fixture
def acting_user() -> ActingUser:
    return ActingUser(
        user_id="665f1c2e9b1e8a0012345678",
        first_name="Dana",
        last_name="Reyes",
        role="Admin",
        email="dana@example.com",
        reference_id="REF-001",
    )


@pytest.fixture
def anonymous_user() -> ActingUser:
    """A user whose ReferenceID has not been loaded."""
    return ActingUser(user_id="665f1c2e9b1e8a0087654321")


@pytest_asyncio.fixture
async def lighting_tree(tree: TaxonomyTreeManager, acting_user: ActingUser) -> dict[str, str]:
    """Lighting > Indoor > {Downlight, Spotlight}, Lighting > Outdoor > Bollard."""
    ref = acting_user.reference_id
    lighting = await tree.add(TaxonomyLevel.CLASSIFICATION, None, "Lighting", ref)
    furniture = await tree.add(TaxonomyLevel.CLASSIFICATION, None, "Furniture", ref)
    indoor = await tree.add(TaxonomyLevel.CATEGORY_TYPE, lighting.id, "Indoor", ref)
    outdoor = await tree.add(TaxonomyLevel.CATEGORY_TYPE, lighting.id, "Outdoor", ref)
    seating = await tree.add(TaxonomyLevel.CATEGORY_TYPE, furniture.id, "Seating", ref)
    downlight = await tree.add(TaxonomyLevel.PRODUCT_TYPE, indoor.id, "Downlight", ref)
    spotlight = await tree.add(TaxonomyLevel.PRODUCT_TYPE, indoor.id, "Spotlight", ref)
    bollard = await tree.add(TaxonomyLevel.PRODUCT_TYPE, outdoor.id, "Bollard", ref)
    chair = await tree.add(TaxonomyLevel.PRODUCT_TYPE, seating.id, "Chair", ref)
    return {
        "lighting": lighting.id,
        "furniture": furniture.id,
        "indoor": indoor.id,
        "outdoor": outdoor.id,
        "seating": seating.id,
        "downlight": downlight.id,
        "spotlight": spotlight.id,
        "bollard": bollard.id,
        "chair": chair.id,
    }


@pytest.fixture
def users_api(acting_user: ActingUser) -> MagicMock:
    users = MagicMock()
    users.get_user = AsyncMock(return_value=acting_user)
    return users


@pytest_asyncio.fixture
async def client(store: MemoryDocumentStore, users_api: MagicMock):
    """ASGI client against the app, wired to the in-memory store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_storage] = lambda: None
    app.dependency_overrides[get_users] = lambda: users_api

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": "665f1c2e9b1e8a0012345678"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
