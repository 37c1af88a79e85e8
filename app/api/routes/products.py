"""Product endpoints.

Creation replays the submitted ids through the selection state machine, so
only nodes that are currently selectable (and belong to the chosen branch)
end up embedded in the Product.
"""

from fastapi import APIRouter, status

from app.api.deps import CurrentUser, ProductWriter, Tree
from app.core.selection import SelectionStateMachine
from app.infra.logging import get_logger
from app.schemas.product import Product, ProductCreate

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=list[Product])
async def list_products(writer: ProductWriter) -> list[Product]:
    """List active products, newest first."""
    return await writer.list_products()


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, writer: ProductWriter) -> Product:
    return await writer.get_product(product_id)


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    tree: Tree,
    writer: ProductWriter,
    user: CurrentUser,
) -> Product:
    """Compose a Product from a classification, category types and product types."""
    machine = SelectionStateMachine(tree)
    try:
        await machine.start()
        if body.classification_id:
            await machine.select_classification(body.classification_id)
        for category_type_id in body.category_type_ids:
            await machine.toggle_category_type(category_type_id)
        for product_type_id in body.product_type_ids:
            await machine.toggle_product_type(product_type_id)

        return await writer.create_product(body, machine.snapshot(), user)
    finally:
        machine.close()
