"""Health checks for Cloud Run.

`/health` and `/health/live` only prove the process answers. `/health/ready`
also performs a point read against the document store.
"""

from fastapi import APIRouter

from app import __version__
from app.api.deps import Store
from app.config import settings
from app.core.taxonomy import TAXONOMY_NODES
from app.infra.document_store import DocumentStore
from app.infra.logging import get_logger
from app.schemas.common import HealthResponse

router = APIRouter()
logger = get_logger(__name__)

# Never written; reading it exercises credentials and connectivity only
HEALTH_DOCUMENT_ID = "_health"


def _report(checks: dict[str, bool]) -> HealthResponse:
    return HealthResponse(
        status="healthy" if all(checks.values()) else "degraded",
        version=__version__,
        environment=settings.environment,
        checks=checks,
    )


async def _document_store_reachable(store: DocumentStore) -> bool:
    try:
        await store.get(TAXONOMY_NODES, HEALTH_DOCUMENT_ID)
    except Exception as e:
        logger.warning(
            "Document store health check failed",
            backend=settings.document_store,
            error=str(e),
            error_type=type(e).__name__,
        )
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Startup check."""
    return _report({})


@router.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness check."""
    return _report({"alive": True})


@router.get("/health/ready", response_model=HealthResponse)
async def health_ready(store: Store) -> HealthResponse:
    """Readiness check; reports `degraded` while the document store is unreachable."""
    return _report({"document_store": await _document_store_reachable(store)})
