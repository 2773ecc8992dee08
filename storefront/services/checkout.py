import enum
import logging
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from storefront.core.backend_client import BackendClient
from storefront.core.config import settings
from storefront.core.errors import BackendError, EmptyState, ErrorKind, NotAuthenticated, OperationResult, ValidationFailed
from storefront.schemas.order import (
    CardDetails,
    OrderDraft,
    OrderDraftItem,
    PaymentMethod,
    ShippingAddress,
    UpiDetails
)
from storefront.services.cart_store import CartStore
from storefront.services.payment import build_payment_details, validate_payment, validate_shipping_address
from storefront.services.pricing import GiftEntry, shipping_cost
from storefront.services.selection import SelectionLayer

logger = logging.getLogger(__name__)


class CheckoutState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TRANSITIONS = {
    CheckoutState.IDLE: {CheckoutState.VALIDATING},
    CheckoutState.VALIDATING: {CheckoutState.IDLE, CheckoutState.SUBMITTING},
    CheckoutState.SUBMITTING: {CheckoutState.CONFIRMED, CheckoutState.FAILED},
    CheckoutState.FAILED: {CheckoutState.IDLE},
    CheckoutState.CONFIRMED: set(),
}


class InvalidTransition(RuntimeError):
    def __init__(self, current: CheckoutState, target: CheckoutState):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move checkout from {current.value} to {target.value}")


class CheckoutSummary(BaseModel):
    selected_count: int
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    gift: Optional[GiftEntry] = None


class CheckoutFlow:
    """
    Turns the current selection into an order.

    One flow per checkout page. ``CONFIRMED`` is terminal; after ``FAILED``
    the next ``submit`` starts over from ``IDLE``. The cart is never modified.
    """

    def __init__(
        self,
        client: BackendClient,
        cart_store: CartStore,
        selection: SelectionLayer,
        charge_shipping: Optional[bool] = None,
        shipping_mode: Optional[str] = None
    ):
        self.client = client
        self.cart_store = cart_store
        self.selection = selection
        self.charge_shipping = settings.CHARGE_SHIPPING if charge_shipping is None else charge_shipping
        self.shipping_mode = shipping_mode or settings.SHIPPING_MODE
        self.state = CheckoutState.IDLE

    def _transition(self, target: CheckoutState):
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        logger.debug(f"Checkout {self.state.value} -> {target.value}")
        self.state = target

    def summary(self) -> CheckoutSummary:
        subtotal = self.selection.selected_subtotal
        shipping = shipping_cost(self.selection.selected_items, self.shipping_mode) if self.charge_shipping else Decimal("0")
        return CheckoutSummary(
            selected_count=self.selection.selected_count,
            subtotal=subtotal,
            shipping=shipping,
            total=subtotal + shipping,
            gift=self.selection.gift
        )

    def build_draft(
        self,
        shipping_address: ShippingAddress,
        payment_method: PaymentMethod,
        card: Optional[CardDetails] = None,
        upi: Optional[UpiDetails] = None
    ) -> OrderDraft:
        return OrderDraft(
            items=[
                OrderDraftItem(product_id=item.product_id, quantity=item.quantity)
                for item in self.selection.selected_items
            ],
            shipping_address=shipping_address.model_copy(),
            payment_method=payment_method,
            payment_details=build_payment_details(payment_method, card, upi)
        )

    async def submit(
        self,
        shipping_address: ShippingAddress,
        payment_method: PaymentMethod,
        card: Optional[CardDetails] = None,
        upi: Optional[UpiDetails] = None
    ) -> OperationResult:
        if self.state == CheckoutState.CONFIRMED:
            return OperationResult.fail(ErrorKind.BUSY, "This order has already been placed")
        if self.state in (CheckoutState.VALIDATING, CheckoutState.SUBMITTING):
            return OperationResult.fail(ErrorKind.BUSY, "Your order is already being placed")
        if self.state == CheckoutState.FAILED:
            self._transition(CheckoutState.IDLE)

        if not self.selection.selected_items:
            logger.debug("Checkout refused: nothing selected")
            return OperationResult.from_exception(EmptyState("Please select at least one item to proceed"))

        if not self.cart_store.is_authenticated:
            return OperationResult.from_exception(NotAuthenticated("Please log in to place an order"))

        self._transition(CheckoutState.VALIDATING)
        try:
            validate_shipping_address(shipping_address)
            validate_payment(payment_method, card, upi)
        except ValidationFailed as e:
            self._transition(CheckoutState.IDLE)
            return OperationResult.from_exception(e)

        draft = self.build_draft(shipping_address, payment_method, card, upi)

        self._transition(CheckoutState.SUBMITTING)
        try:
            order, message = await self.client.create_order(draft)
        except BackendError as e:
            self._transition(CheckoutState.FAILED)
            return OperationResult.fail(ErrorKind.NETWORK_OR_SERVER_ERROR, e.message or "Failed to place order")

        self._transition(CheckoutState.CONFIRMED)
        return OperationResult.ok(message or "Order placed successfully", data=order)
