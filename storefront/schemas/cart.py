"""
Client-side cart models.
Redefined here rather than imported from the shop API so the storefront only depends on the wire format.
"""
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List, Optional


class ProductSnapshot(BaseModel):
    id: int
    name: str = "Product"
    brand: str = ""
    image: str = ""
    price: Decimal = Decimal("0")
    stock: Optional[int] = None
    weight: Optional[Decimal] = None


class CartItem(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)
    unit_price: Decimal
    product: ProductSnapshot

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    owner_user_id: Optional[int] = None
    items: List[CartItem] = []
    total_amount: Decimal = Decimal("0")

    @classmethod
    def empty(cls) -> "Cart":
        return cls()

    def item_ids(self) -> List[int]:
        return [item.product_id for item in self.items]

    def get_item(self, product_id: int) -> Optional[CartItem]:
        return next((item for item in self.items if item.product_id == product_id), None)
