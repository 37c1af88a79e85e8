"""Selection state machine for composing a Product.

Tracks one selected classification, a set of its category types and a set
of product types belonging to the selected category types. Every choice is
checked against the live "available" lists, so a node from another branch
of the tree can never be selected.

Live subscriptions:
- active classifications (from `start()` until `close()`)
- active category types of the selected classification
- one product-type subscription per selected category type, each owning
  its own slice of the available product types
"""

from dataclasses import dataclass

from app.core.errors import InvalidSelection, MissingParentSelection
from app.core.taxonomy import TaxonomyTreeManager
from app.infra.document_store import Subscription
from app.infra.logging import get_logger
from app.schemas.taxonomy import TaxonomyLevel, TaxonomyNode

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProductSelection:
    """Immutable snapshot of the current selection."""

    classification: TaxonomyNode | None = None
    category_types: tuple[TaxonomyNode, ...] = ()
    product_types: tuple[TaxonomyNode, ...] = ()


class SelectionStateMachine:
    def __init__(self, tree: TaxonomyTreeManager) -> None:
        self.tree = tree

        self._classifications: list[TaxonomyNode] = []
        self._category_types: list[TaxonomyNode] = []
        self._product_type_slices: dict[str, list[TaxonomyNode]] = {}

        self._classification_id: str | None = None
        self._category_type_ids: list[str] = []
        self._product_type_ids: list[str] = []

        self._classification_sub: Subscription | None = None
        self._category_sub: Subscription | None = None
        self._category_token: object | None = None
        self._product_type_subs: dict[str, Subscription] = {}
        self._product_type_tokens: dict[str, object] = {}

    # ------------------------------------------------------------ available

    @property
    def available_classifications(self) -> list[TaxonomyNode]:
        return list(self._classifications)

    @property
    def available_category_types(self) -> list[TaxonomyNode]:
        return list(self._category_types)

    @property
    def available_product_types(self) -> list[TaxonomyNode]:
        nodes: list[TaxonomyNode] = []
        for category_type_id in self._category_type_ids:
            nodes.extend(self._product_type_slices.get(category_type_id, []))
        return nodes

    @property
    def selected_classification_id(self) -> str | None:
        return self._classification_id

    @property
    def selected_category_type_ids(self) -> list[str]:
        return list(self._category_type_ids)

    @property
    def selected_product_type_ids(self) -> list[str]:
        return list(self._product_type_ids)

    # ------------------------------------------------------- subscriptions

    async def start(self) -> None:
        """Subscribe to the active classifications."""
        if self._classification_sub is not None:
            self._classification_sub.unsubscribe()
        self._classification_sub = await self.tree.subscribe_active(
            TaxonomyLevel.CLASSIFICATION, None, self._on_classifications
        )

    def _on_classifications(self, nodes: list[TaxonomyNode]) -> None:
        self._classifications = nodes
        if self._classification_id and not any(n.id == self._classification_id for n in nodes):
            logger.debug("Selected classification vanished", node_id=self._classification_id)
            self._clear_classification()

    def _on_category_types(self, token: object, nodes: list[TaxonomyNode]) -> None:
        if token is not self._category_token:
            return
        self._category_types = nodes
        available = {n.id for n in nodes}
        for category_type_id in [c for c in self._category_type_ids if c not in available]:
            self._deselect_category_type(category_type_id)

    def _on_product_types(
        self, category_type_id: str, token: object, nodes: list[TaxonomyNode]
    ) -> None:
        if self._product_type_tokens.get(category_type_id) is not token:
            return
        previous = {n.id for n in self._product_type_slices.get(category_type_id, [])}
        self._product_type_slices[category_type_id] = nodes
        available = {n.id for n in nodes}
        self._product_type_ids = [
            pid for pid in self._product_type_ids if pid in available or pid not in previous
        ]

    def _drop_product_type_subscription(self, category_type_id: str) -> None:
        self._product_type_tokens.pop(category_type_id, None)
        subscription = self._product_type_subs.pop(category_type_id, None)
        if subscription is not None:
            subscription.unsubscribe()
        stale = {n.id for n in self._product_type_slices.pop(category_type_id, [])}
        self._product_type_ids = [pid for pid in self._product_type_ids if pid not in stale]

    def _deselect_category_type(self, category_type_id: str) -> None:
        if category_type_id in self._category_type_ids:
            self._category_type_ids.remove(category_type_id)
        self._drop_product_type_subscription(category_type_id)

    def _clear_classification(self) -> None:
        for category_type_id in list(self._product_type_subs):
            self._drop_product_type_subscription(category_type_id)
        self._category_token = None
        if self._category_sub is not None:
            self._category_sub.unsubscribe()
            self._category_sub = None
        self._classification_id = None
        self._category_types = []
        self._category_type_ids = []
        self._product_type_ids = []
        self._product_type_slices = {}

    async def _sync_product_type_subscriptions(self) -> None:
        for category_type_id in list(self._product_type_subs):
            if category_type_id not in self._category_type_ids:
                self._drop_product_type_subscription(category_type_id)

        for category_type_id in self._category_type_ids:
            if category_type_id in self._product_type_subs:
                continue
            token = object()
            self._product_type_tokens[category_type_id] = token
            self._product_type_subs[category_type_id] = await self.tree.subscribe_active(
                TaxonomyLevel.PRODUCT_TYPE,
                category_type_id,
                lambda nodes, c=category_type_id, t=token: self._on_product_types(c, t, nodes),
            )

    # ---------------------------------------------------------- transitions

    async def select_classification(self, classification_id: str) -> None:
        """Select a classification, clearing everything below it.

        Raises:
            InvalidSelection: If the id is not an available classification
        """
        if not any(n.id == classification_id for n in self._classifications):
            raise InvalidSelection(f"'{classification_id}' is not an available classification")

        self._clear_classification()
        self._classification_id = classification_id

        token = object()
        self._category_token = token
        self._category_sub = await self.tree.subscribe_active(
            TaxonomyLevel.CATEGORY_TYPE,
            classification_id,
            lambda nodes: self._on_category_types(token, nodes),
        )
        logger.debug("Classification selected", node_id=classification_id)

    async def toggle_category_type(self, category_type_id: str) -> None:
        """Add or remove a category type of the selected classification.

        Raises:
            InvalidSelection: If the id is not an available category type
        """
        if not any(n.id == category_type_id for n in self._category_types):
            raise InvalidSelection(f"'{category_type_id}' is not an available category type")

        if category_type_id in self._category_type_ids:
            self._category_type_ids.remove(category_type_id)
        else:
            self._category_type_ids.append(category_type_id)

        await self._sync_product_type_subscriptions()

    async def toggle_product_type(self, product_type_id: str) -> None:
        """Add or remove a product type of a selected category type.

        Raises:
            InvalidSelection: If the id is not an available product type
        """
        if not any(n.id == product_type_id for n in self.available_product_types):
            raise InvalidSelection(f"'{product_type_id}' is not an available product type")

        if product_type_id in self._product_type_ids:
            self._product_type_ids.remove(product_type_id)
        else:
            self._product_type_ids.append(product_type_id)

    async def add_category_type(self, name: str, acting_reference_id: str | None) -> TaxonomyNode:
        """Add a category type under the selected classification."""
        if self._classification_id is None:
            raise MissingParentSelection("Select a classification first")
        return await self.tree.add(
            TaxonomyLevel.CATEGORY_TYPE, self._classification_id, name, acting_reference_id
        )

    async def add_product_type(self, name: str, acting_reference_id: str | None) -> TaxonomyNode:
        """Add a product type under the single selected category type."""
        if len(self._category_type_ids) != 1:
            raise MissingParentSelection("Select exactly one category type first")
        return await self.tree.add(
            TaxonomyLevel.PRODUCT_TYPE, self._category_type_ids[0], name, acting_reference_id
        )

    def snapshot(self) -> ProductSelection:
        classification = next(
            (n for n in self._classifications if n.id == self._classification_id), None
        )
        category_types = tuple(
            n for cid in self._category_type_ids for n in self._category_types if n.id == cid
        )
        available = {n.id: n for n in self.available_product_types}
        product_types = tuple(
            available[pid] for pid in self._product_type_ids if pid in available
        )
        return ProductSelection(
            classification=classification,
            category_types=category_types,
            product_types=product_types,
        )

    def close(self) -> None:
        """Tear down every live subscription."""
        self._clear_classification()
        if self._classification_sub is not None:
            self._classification_sub.unsubscribe()
            self._classification_sub = None
        self._classifications = []
