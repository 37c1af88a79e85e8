"""API routes module."""

from app.api.routes.health import router as health_router
from app.api.routes.products import router as products_router
from app.api.routes.suppliers import router as suppliers_router
from app.api.routes.taxonomy import router as taxonomy_router

__all__ = ["health_router", "products_router", "suppliers_router", "taxonomy_router"]
