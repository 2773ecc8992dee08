import enum
import logging
from decimal import Decimal
from typing import FrozenSet, List, Optional, Set

from storefront.core.config import settings
from storefront.core.errors import EmptyState, OperationResult, ValidationFailed
from storefront.schemas.cart import Cart, CartItem
from storefront.services.cart_store import CartStore
from storefront.services.pricing import AUTO_GIFT, FREE_GIFT_PRODUCTS, GiftEntry, subtotal

logger = logging.getLogger(__name__)


class GiftChange(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"


class SelectionLayer:
    """
    Which cart lines take part in the next checkout.

    Purely client-side. The selection is a view over the Cart Store: whenever
    the cart is replaced, ids that are no longer in it are dropped.
    """

    def __init__(
        self,
        cart_store: CartStore,
        gift_threshold: Optional[Decimal] = None,
        gift_offer: GiftEntry = AUTO_GIFT,
        gift_choices: List[GiftEntry] = FREE_GIFT_PRODUCTS
    ):
        self.cart_store = cart_store
        self.gift_threshold = Decimal(str(gift_threshold)) if gift_threshold is not None else settings.FREE_GIFT_THRESHOLD
        self.gift_offer = gift_offer
        self.gift_choices = gift_choices
        self.gift: Optional[GiftEntry] = None
        self.last_gift_change: Optional[GiftChange] = None
        self._selected: Set[int] = set()

        cart_store.subscribe(self._on_cart_changed)

    def _on_cart_changed(self, cart: Cart):
        dropped = self._selected - set(cart.item_ids())
        if dropped:
            logger.debug(f"Dropping selection for items no longer in cart: {sorted(dropped)}")
            self._selected -= dropped
        self.refresh_gift()

    @property
    def selected_ids(self) -> FrozenSet[int]:
        return frozenset(self._selected)

    def is_selected(self, product_id: int) -> bool:
        return product_id in self._selected

    def toggle(self, product_id: int) -> Optional[GiftChange]:
        if product_id in self._selected:
            self._selected.discard(product_id)
        elif product_id in self.cart_store.cart.item_ids():
            self._selected.add(product_id)
        return self.refresh_gift()

    def select_all(self) -> Optional[GiftChange]:
        self._selected = set(self.cart_store.cart.item_ids())
        return self.refresh_gift()

    def clear_all(self) -> Optional[GiftChange]:
        self._selected = set()
        return self.refresh_gift()

    def toggle_all(self) -> Optional[GiftChange]:
        """Select every line, or clear the selection if every line is already selected."""
        items = self.cart_store.cart.items
        if items and len(self._selected) == len(items):
            return self.clear_all()
        return self.select_all()

    @property
    def selected_items(self) -> List[CartItem]:
        return [item for item in self.cart_store.cart.items if item.product_id in self._selected]

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    @property
    def selected_subtotal(self) -> Decimal:
        return subtotal(self.selected_items)

    @property
    def is_gift_eligible(self) -> bool:
        return self.selected_subtotal >= self.gift_threshold

    @property
    def amount_to_free_gift(self) -> Decimal:
        return max(Decimal("0"), self.gift_threshold - self.selected_subtotal)

    @property
    def gift_progress(self) -> Decimal:
        if self.gift_threshold <= 0:
            return Decimal("100")
        return min(self.selected_subtotal / self.gift_threshold * 100, Decimal("100"))

    def refresh_gift(self) -> Optional[GiftChange]:
        """Add or drop the free gift after a change; reports the transition, if any."""
        change = None
        eligible = self.is_gift_eligible

        if eligible and self.gift is None and self._selected:
            self.gift = self.gift_offer
            change = GiftChange.ADDED
            logger.info(f"Free gift added: {self.gift.name}")
        elif not eligible and self.gift is not None:
            self.gift = None
            change = GiftChange.REMOVED
            logger.info(f"Free gift removed (selection below {self.gift_threshold})")

        self.last_gift_change = change
        return change

    def choose_gift(self, gift_id: str) -> OperationResult:
        """
        Swap the unlocked gift for another one from ``gift_choices``.

        Only one gift applies per order. Dropping below the threshold removes
        the choice, and the next crossing starts again from ``gift_offer``.
        """
        if self.gift is None:
            return OperationResult.from_exception(
                EmptyState(f"Add {self.amount_to_free_gift} more to unlock a free gift")
            )

        chosen = next((gift for gift in self.gift_choices if gift.id == gift_id), None)
        if chosen is None:
            return OperationResult.from_exception(ValidationFailed("gift", "Please choose a gift from the list"))

        self.gift = chosen
        logger.info(f"Free gift changed to {chosen.name}")
        return OperationResult.ok(f"Free gift selected: {chosen.name}", data=chosen)
