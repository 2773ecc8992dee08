import logging
import httpx
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from pydantic import ValidationError

from storefront.core.config import settings
from storefront.core.errors import BackendError
from storefront.schemas.cart import Cart, CartItem, ProductSnapshot
from storefront.schemas.order import Order, OrderDraft, OrderLine

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Raised by the parse_* helpers on a body that does not match the wire format
PARSE_ERRORS = (AttributeError, KeyError, TypeError, ValueError, InvalidOperation, ValidationError)


def _decimal(value: Any, default: str = "0") -> Decimal:
    if value is None:
        return Decimal(default)
    return Decimal(str(value))


def _error_message(response: httpx.Response) -> str:
    """Pull the server's own message out of an error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = data.get("message") or data.get("detail")
        if isinstance(message, str) and message:
            return message
        if message:
            return str(message)

    return response.text or f"Request failed with status {response.status_code}"


def parse_product(data: Dict[str, Any]) -> ProductSnapshot:
    return ProductSnapshot(
        id=int(data.get("id", data.get("_id"))),
        name=data.get("name") or "Product",
        brand=data.get("brand") or "",
        image=data.get("image") or "",
        price=_decimal(data.get("price")),
        stock=data.get("stock"),
        weight=_decimal(data["weight"]) if data.get("weight") is not None else None
    )


def parse_cart(data: Dict[str, Any], known_products: Optional[Dict[int, ProductSnapshot]] = None) -> Cart:
    """
    Map the shop's cart JSON onto a Cart.

    Lines whose product came back unpopulated (a bare id) are filled from
    ``known_products`` or with a placeholder snapshot.
    """
    known_products = known_products or {}
    items = []

    for raw in data.get("items", []):
        product = raw.get("product")
        if isinstance(product, dict):
            snapshot = parse_product(product)
        else:
            product_id = int(product if product is not None else raw.get("productId"))
            snapshot = known_products.get(product_id) or ProductSnapshot(
                id=product_id,
                price=_decimal(raw.get("price"))
            )

        items.append(CartItem(
            product_id=snapshot.id,
            quantity=raw["quantity"],
            unit_price=_decimal(raw.get("price"), str(snapshot.price)),
            product=snapshot
        ))

    total = data.get("totalAmount")
    return Cart(
        owner_user_id=data.get("user"),
        items=items,
        total_amount=_decimal(total) if total is not None else sum((i.line_total for i in items), Decimal("0"))
    )


def parse_order(data: Dict[str, Any]) -> Order:
    return Order(
        id=data["id"],
        order_number=data.get("orderNumber", str(data["id"])),
        status=data.get("orderStatus", "pending"),
        payment_method=data.get("paymentMethod"),
        total_amount=_decimal(data.get("totalAmount")),
        created_at=data["createdAt"],
        items=[
            OrderLine(
                product_id=item["product"],
                name=item.get("name", "Product"),
                quantity=item["quantity"],
                price=_decimal(item.get("price"))
            )
            for item in data.get("items", [])
        ]
    )


class BackendClient:
    """HTTP client for communicating with the shop API."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: httpx.AsyncBaseTransport = None
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self.transport = transport
        self.access_token: Optional[str] = None
        self.client = None

    def set_token(self, access_token: Optional[str]):
        self.access_token = access_token

    @property
    def has_token(self) -> bool:
        return bool(self.access_token)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self.client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        client = await self._get_client()
        url = f"{self.base_url}{path}"

        try:
            logger.info(f"API request: {method} {path} {'(with auth)' if self.access_token else '(no auth)'}")
            response = await client.request(method, url, headers=self._headers(), **kwargs)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.warning(f"{method} {path} failed with status {e.response.status_code}: {message}")
            raise BackendError(message, e.response.status_code)
        except httpx.TimeoutException:
            logger.warning(f"{method} {path} timed out after {self.timeout}s")
            raise BackendError("The request timed out. Please try again.")
        except httpx.RequestError as e:
            logger.error(f"{method} {path} could not reach the shop: {str(e)}")
            raise BackendError("Could not reach the shop. Please check your connection.")
        except ValueError:
            logger.error(f"{method} {path} returned a body that is not JSON")
            raise BackendError("Unexpected response from the shop")

        if not isinstance(data, dict):
            logger.error(f"{method} {path} returned {type(data).__name__} instead of an object")
            raise BackendError("Unexpected response from the shop")
        return data

    def _read(self, what: str, build: Callable[[], T]) -> T:
        """Run a parse_* mapping, turning a malformed body into BackendError."""
        try:
            return build()
        except PARSE_ERRORS as e:
            logger.error(f"Could not read {what} from the shop response: {e}")
            raise BackendError("Unexpected response from the shop")

    async def get_cart(self) -> Optional[Cart]:
        """GET /cart; None when the customer has no persisted cart yet."""
        data = await self._request("GET", "/cart")
        cart = data.get("cart")
        return self._read("cart", lambda: parse_cart(cart)) if cart else None

    async def add_to_cart(
        self,
        product_id: int,
        quantity: int,
        known_product: Optional[ProductSnapshot] = None
    ) -> Tuple[Optional[Cart], Optional[str]]:
        data = await self._request("POST", "/cart/add", json={"productId": product_id, "quantity": quantity})
        known = {product_id: known_product} if known_product else None
        cart = data.get("cart")
        return (self._read("cart", lambda: parse_cart(cart, known)) if cart else None), data.get("message")

    async def update_cart_item(self, product_id: int, quantity: int) -> Tuple[Optional[Cart], Optional[str]]:
        data = await self._request("PUT", "/cart/update", json={"productId": product_id, "quantity": quantity})
        cart = data.get("cart")
        return (self._read("cart", lambda: parse_cart(cart)) if cart else None), data.get("message")

    async def remove_from_cart(self, product_id: int) -> Tuple[Optional[Cart], Optional[str]]:
        data = await self._request("DELETE", f"/cart/remove/{product_id}")
        cart = data.get("cart")
        return (self._read("cart", lambda: parse_cart(cart)) if cart else None), data.get("message")

    async def clear_cart(self) -> Tuple[Optional[Cart], Optional[str]]:
        data = await self._request("DELETE", "/cart/clear")
        cart = data.get("cart")
        return (self._read("cart", lambda: parse_cart(cart)) if cart else None), data.get("message")

    async def get_product(self, product_id: int) -> ProductSnapshot:
        data = await self._request("GET", f"/products/{product_id}")
        product = data.get("product") or data.get("data")
        if not product:
            raise BackendError("Product not found", 404)
        return self._read("product", lambda: parse_product(product))

    async def create_order(self, draft: OrderDraft) -> Tuple[Optional[Order], Optional[str]]:
        """
        Create order on the shop API.

        POST /orders
        {
          "items": [{"product": 1, "quantity": 2}],
          "shippingAddress": {"name": "...", "phone": "...", "street": "...", ...},
          "paymentMethod": "Credit Card",
          "paymentDetails": {"creditCard": {"cardholderName": "...", "cardNumber": "3456", "expiryDate": "01/30"}}
        }

        Returns the placed order and the server's message. A body with
        ``success: false`` raises BackendError. Once the shop has accepted the
        order an unreadable ``order`` is logged and returned as None.
        """
        payload = draft.to_payload()
        logger.info(f"Placing order with {len(draft.items)} item(s), payment={draft.payment_method.value}")
        logger.debug(f"Order payload: {payload}")

        result = await self._request("POST", "/orders", json=payload)
        if not result.get("success"):
            raise BackendError(result.get("message") or "Failed to place order")

        order = None
        if result.get("order"):
            try:
                order = self._read("order", lambda: parse_order(result["order"]))
            except BackendError:
                logger.error("Order was accepted but its details could not be read")

        logger.info(f"Order placed: {order.order_number if order else 'number unknown'}")
        return order, result.get("message")

    async def get_my_orders(self) -> List[Order]:
        data = await self._request("GET", "/orders/myorders")
        return self._read("orders", lambda: [parse_order(order) for order in data.get("orders") or []])

    async def cancel_order(self, order_id: int) -> Tuple[Optional[Order], Optional[str]]:
        data = await self._request("PUT", f"/orders/{order_id}/cancel")
        order = data.get("order")
        return (self._read("order", lambda: parse_order(order)) if order else None), data.get("message")

    async def close(self):
        """Close HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None
