"""Taxonomy endpoints.

Listing, add, rename (with product cascade), soft delete and resync for
classifications, category types and product types.
"""

from fastapi import APIRouter, status

from app.api.deps import ReferenceId, Tree
from app.schemas.common import CascadeSummary
from app.schemas.taxonomy import (
    NodeCreate,
    NodeRename,
    RenameResponse,
    TaxonomyLevel,
    TaxonomyNode,
)

router = APIRouter()


@router.get("/nodes/{node_id}", response_model=TaxonomyNode)
async def get_node(node_id: str, tree: Tree) -> TaxonomyNode:
    """Fetch a node by id, including soft-deleted ones."""
    return await tree.get(node_id)


@router.patch("/nodes/{node_id}", response_model=RenameResponse)
async def rename_node(
    node_id: str,
    body: NodeRename,
    tree: Tree,
    reference_id: ReferenceId,
) -> RenameResponse:
    """Rename a node and update the Products embedding its name."""
    node = await tree.get(node_id)
    result = await tree.rename(node.level, node_id, body.name)
    return RenameResponse(
        node=result.node,
        changed=result.changed,
        cascade=result.cascade.to_summary() if result.cascade else None,
    )


@router.delete("/nodes/{node_id}", response_model=TaxonomyNode)
async def delete_node(node_id: str, tree: Tree, reference_id: ReferenceId) -> TaxonomyNode:
    """Soft-delete a node. Its children and Products are left untouched."""
    node = await tree.get(node_id)
    return await tree.soft_delete(node.level, node_id, reference_id)


@router.post("/nodes/{node_id}/resync", response_model=CascadeSummary)
async def resync_node(node_id: str, tree: Tree, reference_id: ReferenceId) -> CascadeSummary:
    """Re-apply the node's current name to every embedding Product."""
    node = await tree.get(node_id)
    cascade = await tree.resync(node.level, node_id)
    return cascade.to_summary()


@router.get("/{level}", response_model=list[TaxonomyNode])
async def list_nodes(
    level: TaxonomyLevel,
    tree: Tree,
    parent_id: str | None = None,
) -> list[TaxonomyNode]:
    """List active nodes of a level under `parent_id`, ordered by name."""
    return await tree.list_active(level, parent_id)


@router.post("/{level}", response_model=TaxonomyNode, status_code=status.HTTP_201_CREATED)
async def add_node(
    level: TaxonomyLevel,
    body: NodeCreate,
    tree: Tree,
    reference_id: ReferenceId,
) -> TaxonomyNode:
    """Add a node under `parentId` (omitted for classifications)."""
    return await tree.add(level, body.parent_id, body.name, reference_id)
