import logging
from datetime import datetime, timezone
from typing import List, Optional

from storefront.core.backend_client import BackendClient
from storefront.core.config import settings
from storefront.core.errors import BackendError, ErrorKind, OperationResult
from storefront.schemas.order import Order

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class OrderHistory:
    """The customer's past orders and the online cancellation window."""

    def __init__(self, client: BackendClient, window_hours: Optional[int] = None):
        self.client = client
        self.window_hours = window_hours or settings.CANCELLATION_WINDOW_HOURS
        self.orders: List[Order] = []

    def hours_elapsed(self, order: Order, now: Optional[datetime] = None) -> float:
        now = _naive_utc(now or datetime.utcnow())
        return (now - _naive_utc(order.created_at)).total_seconds() / 3600

    def hours_remaining(self, order: Order, now: Optional[datetime] = None) -> float:
        return max(0.0, self.window_hours - self.hours_elapsed(order, now))

    def can_cancel(self, order: Order, now: Optional[datetime] = None) -> bool:
        return order.status == "pending" and self.hours_elapsed(order, now) <= self.window_hours

    async def fetch(self) -> OperationResult:
        if not self.client.has_token:
            self.orders = []
            return OperationResult.fail(ErrorKind.NOT_AUTHENTICATED, "Please log in to view your orders")

        try:
            self.orders = await self.client.get_my_orders()
        except BackendError as e:
            logger.warning(f"Could not load orders: {e.message}")
            self.orders = []
            return OperationResult.fail(ErrorKind.NETWORK_OR_SERVER_ERROR, e.message or "Failed to load orders")

        return OperationResult.ok(data=self.orders)

    async def cancel(self, order_id: int) -> OperationResult:
        if not self.client.has_token:
            return OperationResult.fail(ErrorKind.NOT_AUTHENTICATED, "Please log in to cancel an order")

        try:
            order, message = await self.client.cancel_order(order_id)
        except BackendError as e:
            return OperationResult.fail(ErrorKind.NETWORK_OR_SERVER_ERROR, e.message or "Failed to cancel order")

        if order is not None:
            self.orders = [order if o.id == order.id else o for o in self.orders]
        return OperationResult.ok(message or "Order cancelled successfully", data=order)
