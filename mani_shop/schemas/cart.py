from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime
from typing import List, Optional

from mani_shop.schemas.product import ProductResponse


class CartItemAdd(BaseModel):
    product_id: int = Field(alias="productId")
    quantity: int = Field(1, ge=1)

    class Config:
        populate_by_name = True


class CartItemUpdate(BaseModel):
    product_id: int = Field(alias="productId")
    quantity: int = Field(ge=1)

    class Config:
        populate_by_name = True


class CartItemResponse(BaseModel):
    product: ProductResponse
    quantity: int
    price: Decimal


class CartOut(BaseModel):
    id: int
    user: int
    items: List[CartItemResponse]
    total_amount: Decimal = Field(alias="totalAmount")
    updated_at: datetime = Field(alias="updatedAt")

    class Config:
        populate_by_name = True


class CartResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    cart: Optional[CartOut] = None
