"""
Cart Store: the storefront's copy of the customer's persisted cart.

The shop API owns the cart. Every successful mutation replaces local state
with the cart the server sent back; a failed one leaves it exactly as it was.
Visitors who are not logged in get an empty, non-persisted placeholder.
"""
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set, Tuple, Union

from storefront.core.backend_client import BackendClient
from storefront.core.errors import BackendError, ErrorKind, NotAuthenticated, OperationResult, ValidationFailed
from storefront.schemas.auth import AuthState
from storefront.schemas.cart import Cart, ProductSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Persisted:
    """Cart as last confirmed by the shop API."""
    cart: Cart


@dataclass(frozen=True)
class Ephemeral:
    """Placeholder shown when there is no persisted cart to display."""
    cart: Cart = field(default_factory=Cart.empty)


CartSource = Union[Persisted, Ephemeral]

CartListener = Callable[[Cart], None]


class CartStore:
    """Single source of truth for cart contents on the client."""

    CLEAR_KEY = "__clear__"

    def __init__(self, client: BackendClient):
        self.client = client
        self.auth = AuthState()
        self.source: CartSource = Ephemeral()
        self._listeners: List[CartListener] = []
        self._in_flight: Set[object] = set()

    @property
    def cart(self) -> Cart:
        return self.source.cart

    @property
    def is_persisted(self) -> bool:
        return isinstance(self.source, Persisted)

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.cart.items)

    def is_busy(self, product_id: int) -> bool:
        return product_id in self._in_flight or self.CLEAR_KEY in self._in_flight

    def subscribe(self, listener: CartListener):
        self._listeners.append(listener)

    def _replace(self, source: CartSource):
        self.source = source
        for listener in self._listeners:
            listener(source.cart)

    async def initialize(self, auth: AuthState) -> CartSource:
        """
        Load the customer's cart. Never raises: a missing cart, a failed
        request or a visitor without credentials all end in an empty placeholder.
        """
        self.auth = auth
        self.client.set_token(auth.access_token)

        if not auth.is_authenticated:
            self._replace(Ephemeral())
            return self.source

        try:
            cart = await self.client.get_cart()
        except BackendError as e:
            logger.warning(f"Could not fetch cart, showing an empty one: {e.message}")
            self._replace(Ephemeral())
            return self.source

        if cart is None:
            self._replace(Ephemeral())
        else:
            logger.info(f"Restored cart with {len(cart.items)} line(s)")
            self._replace(Persisted(cart))
        return self.source

    def logout(self):
        """Forget the local copy and the credential; the server-side cart stays."""
        self.auth = AuthState()
        self.client.set_token(None)
        self._replace(Ephemeral())

    async def _mutate(
        self,
        key: object,
        login_message: str,
        failure_message: str,
        call: Callable[[], Awaitable[Tuple[Optional[Cart], Optional[str]]]]
    ) -> OperationResult:
        if not self.is_authenticated or not self.client.has_token:
            return OperationResult.from_exception(NotAuthenticated(login_message))

        if self.is_busy(key) or (key == self.CLEAR_KEY and self._in_flight):
            return OperationResult.fail(ErrorKind.BUSY, "Please wait for the current update to finish")

        self._in_flight.add(key)
        try:
            cart, message = await call()
        except BackendError as e:
            return OperationResult.fail(ErrorKind.NETWORK_OR_SERVER_ERROR, e.message or failure_message)
        finally:
            self._in_flight.discard(key)

        if cart is None:
            return OperationResult.fail(ErrorKind.NETWORK_OR_SERVER_ERROR, failure_message)

        self._replace(Persisted(cart))
        return OperationResult.ok(message)

    async def add_item(
        self,
        product_id: int,
        quantity: int = 1,
        product: Optional[ProductSnapshot] = None
    ) -> OperationResult:
        if quantity < 1:
            return OperationResult.from_exception(ValidationFailed("quantity", "Quantity must be at least 1"))

        async def call():
            details = product
            if details is None:
                try:
                    details = await self.client.get_product(product_id)
                except BackendError as e:
                    logger.warning(f"Could not fetch product {product_id} details: {e.message}")
                    details = ProductSnapshot(id=product_id)
            return await self.client.add_to_cart(product_id, quantity, details)

        return await self._mutate(
            product_id,
            "Please log in to add items to cart",
            "Failed to add item to cart",
            call
        )

    async def update_item_quantity(self, product_id: int, quantity: int) -> OperationResult:
        if quantity < 1:
            return OperationResult.from_exception(ValidationFailed("quantity", "Quantity must be at least 1"))

        item = self.cart.get_item(product_id)
        if item is not None and item.product.stock is not None and quantity > item.product.stock:
            quantity = max(1, item.product.stock)

        return await self._mutate(
            product_id,
            "Authentication required to update cart",
            "Failed to update cart item",
            lambda: self.client.update_cart_item(product_id, quantity)
        )

    async def remove_item(self, product_id: int) -> OperationResult:
        return await self._mutate(
            product_id,
            "Authentication required to remove from cart",
            "Failed to remove item from cart",
            lambda: self.client.remove_from_cart(product_id)
        )

    async def clear(self) -> OperationResult:
        return await self._mutate(
            self.CLEAR_KEY,
            "Authentication required to clear cart",
            "Failed to clear cart",
            self.client.clear_cart
        )
