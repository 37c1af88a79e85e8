"""Taxonomy tree manager.

Classifications, category types and product types live in one flat
`taxonomyNodes` collection, each node pointing at its parent by id.
Renames cascade into Products; soft deletes never do, and children of a
soft-deleted node stay active.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from app.core.cascade import (
    CascadeResult,
    cascade_category_type_name,
    cascade_classification_name,
    cascade_product_type_name,
)
from app.core.errors import (
    DuplicateName,
    EmptyName,
    MissingParentSelection,
    NodeNotFound,
    ReferenceNotLoaded,
)
from app.infra.document_store import (
    SERVER_TIMESTAMP,
    Document,
    DocumentStore,
    Subscription,
    active_only,
    where,
)
from app.infra.logging import get_logger
from app.schemas.taxonomy import TaxonomyLevel, TaxonomyNode

logger = get_logger(__name__)

TAXONOMY_NODES = "taxonomyNodes"

NodeListCallback = Callable[[list[TaxonomyNode]], None]


@dataclass(frozen=True)
class RenameResult:
    node: TaxonomyNode
    changed: bool
    cascade: CascadeResult | None = None


class TaxonomyTreeManager:
    """Add, rename, soft-delete and list nodes of the three-level tree."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._add_locks: dict[tuple[TaxonomyLevel, str | None], asyncio.Lock] = {}

    def _filters(self, level: TaxonomyLevel, parent_id: str | None) -> list:
        return [
            where("level", "==", level.value),
            where("parentId", "==", parent_id),
            active_only(),
        ]

    async def list_active(
        self, level: TaxonomyLevel, parent_id: str | None = None
    ) -> list[TaxonomyNode]:
        """Active children of `parent_id` at `level`, ordered by name."""
        docs = await self.store.query(
            TAXONOMY_NODES, self._filters(level, parent_id), order_by="name"
        )
        return [TaxonomyNode.from_document(d) for d in docs]

    async def subscribe_active(
        self,
        level: TaxonomyLevel,
        parent_id: str | None,
        callback: NodeListCallback,
    ) -> Subscription:
        """Live version of `list_active`.

        The callback receives the full ordered list each time it changes,
        starting with the current list before this method returns.
        """

        def on_snapshot(docs: list[Document]) -> None:
            callback([TaxonomyNode.from_document(d) for d in docs])

        subscription = await self.store.subscribe(
            TAXONOMY_NODES,
            on_snapshot,
            self._filters(level, parent_id),
            order_by="name",
        )
        logger.debug("Subscribed to nodes", level=level.value, parent_id=parent_id)
        return subscription

    async def get(self, node_id: str) -> TaxonomyNode:
        """Fetch a node by id, active or not.

        Raises:
            NodeNotFound: If no node has this id
        """
        doc = await self.store.get(TAXONOMY_NODES, node_id)
        if doc is None:
            raise NodeNotFound(node_id)
        return TaxonomyNode.from_document(doc)

    async def _get_at_level(self, level: TaxonomyLevel, node_id: str) -> TaxonomyNode:
        node = await self.get(node_id)
        if node.level is not level:
            raise NodeNotFound(node_id)
        return node

    async def _check_parent(self, level: TaxonomyLevel, parent_id: str | None) -> None:
        parent_level = level.parent_level
        if parent_level is None:
            return
        if not parent_id:
            raise MissingParentSelection(f"{level.label} requires a {parent_level.label.lower()}")

        parent = await self.store.get(TAXONOMY_NODES, parent_id)
        if (
            parent is None
            or parent.get("level") != parent_level.value
            or not parent.get("isActive", False)
        ):
            raise MissingParentSelection(
                f"'{parent_id}' is not an active {parent_level.label.lower()}"
            )

    async def add(
        self,
        level: TaxonomyLevel,
        parent_id: str | None,
        name: str,
        acting_reference_id: str | None,
    ) -> TaxonomyNode:
        """Create an active node under `parent_id`.

        Names are trimmed and compared case-sensitively against active
        siblings. Adds under the same parent are serialized, so two
        concurrent adds of one name yield one node and one DuplicateName.

        Raises:
            EmptyName: If the name is blank
            ReferenceNotLoaded: If the acting user has no ReferenceID
            MissingParentSelection: If the parent is missing or not an active
                node of the parent level
            DuplicateName: If an active sibling already has the name
        """
        clean_name = (name or "").strip()
        if not clean_name:
            raise EmptyName(f"{level.label} name")
        if not acting_reference_id:
            raise ReferenceNotLoaded()
        if level.parent_level is None:
            parent_id = None

        await self._check_parent(level, parent_id)

        lock = self._add_locks.setdefault((level, parent_id), asyncio.Lock())
        async with lock:
            siblings = await self.list_active(level, parent_id)
            if any(s.name == clean_name for s in siblings):
                raise DuplicateName(clean_name, level.label.lower())

            node_id = await self.store.create(
                TAXONOMY_NODES,
                {
                    "level": level.value,
                    "parentId": parent_id,
                    "name": clean_name,
                    "isActive": True,
                    "referenceID": acting_reference_id,
                    "createdAt": SERVER_TIMESTAMP,
                },
            )

        logger.info(
            "Node added",
            level=level.value,
            node_id=node_id,
            parent_id=parent_id,
            name=clean_name,
        )
        return await self.get(node_id)

    async def _cascade(self, node: TaxonomyNode) -> CascadeResult:
        if node.level is TaxonomyLevel.CLASSIFICATION:
            return await cascade_classification_name(self.store, node.id, node.name)
        if node.level is TaxonomyLevel.CATEGORY_TYPE:
            return await cascade_category_type_name(self.store, node.id, node.name)
        return await cascade_product_type_name(self.store, node.id, node.name)

    async def rename(self, level: TaxonomyLevel, node_id: str, new_name: str) -> RenameResult:
        """Rename a node and propagate the name into embedding Products.

        The node write commits first. If some Product writes fail the
        rename stays in place and FanoutPartialFailure is raised; `resync`
        repairs the stale Products.

        Raises:
            EmptyName: If the new name is blank
            NodeNotFound: If no node of `level` has this id, or it is soft-deleted
            FanoutPartialFailure: If any Product write failed
        """
        clean_name = (new_name or "").strip()
        if not clean_name:
            raise EmptyName(f"{level.label} name")

        node = await self._get_at_level(level, node_id)
        if not node.is_active:
            raise NodeNotFound(node_id)
        if node.name == clean_name:
            return RenameResult(node=node, changed=False)

        await self.store.update(
            TAXONOMY_NODES, node_id, {"name": clean_name, "updatedAt": SERVER_TIMESTAMP}
        )
        logger.info(
            "Node renamed",
            level=level.value,
            node_id=node_id,
            old_name=node.name,
            new_name=clean_name,
        )

        renamed = await self.get(node_id)
        cascade = await self._cascade(renamed)
        cascade.raise_for_failures()
        return RenameResult(node=renamed, changed=True, cascade=cascade)

    async def resync(self, level: TaxonomyLevel, node_id: str) -> CascadeResult:
        """Re-run the Product cascade with the node's current name.

        Raises:
            NodeNotFound: If no node of `level` has this id
            FanoutPartialFailure: If any Product write failed again
        """
        node = await self._get_at_level(level, node_id)
        cascade = await self._cascade(node)
        cascade.raise_for_failures()
        return cascade

    async def soft_delete(
        self, level: TaxonomyLevel, node_id: str, acting_reference_id: str | None
    ) -> TaxonomyNode:
        """Mark a node inactive. Products and child nodes are left as they are.

        Raises:
            ReferenceNotLoaded: If the acting user has no ReferenceID
            NodeNotFound: If no node of `level` has this id
        """
        if not acting_reference_id:
            raise ReferenceNotLoaded()

        await self._get_at_level(level, node_id)
        await self.store.update(
            TAXONOMY_NODES,
            node_id,
            {
                "isActive": False,
                "deletedBy": acting_reference_id,
                "deletedAt": SERVER_TIMESTAMP,
            },
        )
        logger.info("Node deleted", level=level.value, node_id=node_id)
        return await self.get(node_id)
