"""FastAPI application entry point.

Catalog service: product taxonomy, product composition with denormalized
name snapshots, and supplier management with bulk upload.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.core.errors import (
    CatalogError,
    DuplicateName,
    EmptyName,
    FanoutPartialFailure,
    InvalidSelection,
    InvalidSupplierInput,
    MissingParentSelection,
    NodeNotFound,
    ProductNotFound,
    ReferenceNotLoaded,
    SupplierNotFound,
    UnsupportedUploadFile,
)
from app.infra.document_store import close_document_store, get_document_store
from app.infra.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from app.schemas.common import ErrorResponse
from app.services.user_client import close_user_client

# Import routers
from app.api.routes.health import router as health_router
from app.api.routes.products import router as products_router
from app.api.routes.suppliers import router as suppliers_router
from app.api.routes.taxonomy import router as taxonomy_router

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Configure the document store backend

    Shutdown:
    - Close live queries and store clients
    - Close the users API client
    """
    logger.info(
        "Catalog service starting",
        environment=settings.environment,
        document_store=settings.document_store,
    )

    get_document_store()

    yield

    logger.info("Catalog service shutting down")
    await close_document_store()
    await close_user_client()
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Catalog Service",
    description="Product taxonomy, product composition and supplier management",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# CORS middleware (mainly for local development)
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# =============================================================================
# Request Context Middleware
# =============================================================================


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Bind a request id to every log line emitted while serving the request."""
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    clear_request_context()
    bind_request_context(request_id=request_id, method=request.method, path=request.url.path)

    response = await call_next(request)

    response.headers["X-Request-Id"] = request_id
    if request.method != "GET":
        logger.info("Request handled", status_code=response.status_code)
    return response


# =============================================================================
# Exception Handlers
# =============================================================================

# First match wins, so subclasses must come before their bases
ERROR_STATUS: list[tuple[type[CatalogError], int]] = [
    (DuplicateName, 409),
    (EmptyName, 422),
    (MissingParentSelection, 422),
    (InvalidSelection, 422),
    (InvalidSupplierInput, 422),
    (UnsupportedUploadFile, 422),
    (ReferenceNotLoaded, 401),
    (NodeNotFound, 404),
    (SupplierNotFound, 404),
    (ProductNotFound, 404),
    (FanoutPartialFailure, 207),
]


def status_for(exc: CatalogError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Translate catalog errors into structured JSON responses."""
    status_code = status_for(exc)

    detail = None
    if isinstance(exc, FanoutPartialFailure):
        detail = {
            "source": exc.source,
            "matched": exc.matched,
            "updated": exc.updated,
            "failedIds": exc.failed_ids,
        }

    logger.warning(
        "Request failed",
        error=str(exc),
        error_type=type(exc).__name__,
        status_code=status_code,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=str(exc),
            error_type=type(exc).__name__,
            detail=detail,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            error_type=type(exc).__name__,
        ).model_dump(),
    )


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router, tags=["Health"])
app.include_router(taxonomy_router, prefix=f"{settings.api_prefix}/taxonomy", tags=["Taxonomy"])
app.include_router(products_router, prefix=f"{settings.api_prefix}/products", tags=["Products"])
app.include_router(
    suppliers_router, prefix=f"{settings.api_prefix}/suppliers", tags=["Suppliers"]
)


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/")
async def root() -> dict:
    """Root endpoint - basic service info."""
    return {
        "service": "Catalog Service",
        "version": __version__,
        "environment": settings.environment,
    }
