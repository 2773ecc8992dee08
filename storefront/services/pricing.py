from decimal import Decimal
from typing import Iterable, List

from pydantic import BaseModel

from storefront.schemas.cart import CartItem


class GiftEntry(BaseModel):
    """Promotional product shown as free in the order summary; never part of the cart."""
    id: str
    name: str
    description: str
    original_price: Decimal
    price: Decimal = Decimal("0")


FREE_GIFT_PRODUCTS: List[GiftEntry] = [
    GiftEntry(
        id="gift-led-bulb",
        name="9W LED Bulb",
        description="Energy-efficient LED bulb",
        original_price=Decimal("299")
    ),
    GiftEntry(
        id="gift-extension-box",
        name="4-Socket Extension Box",
        description="Surge protected extension",
        original_price=Decimal("399")
    ),
    GiftEntry(
        id="gift-mobile-charger",
        name="USB Mobile Charger",
        description="Fast charging adapter",
        original_price=Decimal("249")
    ),
    GiftEntry(
        id="gift-mini-torch",
        name="LED Mini Torch",
        description="Rechargeable torch light",
        original_price=Decimal("199")
    ),
]

AUTO_GIFT = FREE_GIFT_PRODUCTS[0]


def subtotal(items: Iterable[CartItem]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0"))


def amount_based_shipping(amount: Decimal) -> Decimal:
    if amount == 0:
        return Decimal("0")
    if amount < 500:
        return Decimal("50")
    if amount < 1000:
        return Decimal("30")
    return Decimal("20")


def weight_based_shipping(items: Iterable[CartItem]) -> Decimal:
    """Tiered by total weight in kg; items without weight data count as zero."""
    total_weight = sum(
        ((item.product.weight or Decimal("0")) * item.quantity for item in items),
        Decimal("0")
    )

    if total_weight == 0:
        return Decimal("0")
    if total_weight <= 1:
        return Decimal("40")
    if total_weight <= 3:
        return Decimal("70")
    return Decimal("120")


def shipping_cost(items: List[CartItem], mode: str = "amount") -> Decimal:
    """Shipping for the given lines; ``mode`` is ``"amount"`` or ``"weight"``."""
    if mode == "weight":
        return weight_based_shipping(items)
    if mode != "amount":
        raise ValueError(f"Unknown shipping mode: {mode}")
    return amount_based_shipping(subtotal(items))
