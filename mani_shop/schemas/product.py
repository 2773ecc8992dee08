from pydantic import BaseModel
from decimal import Decimal
from typing import List, Optional


class ProductResponse(BaseModel):
    id: int
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    price: Decimal
    stock: int
    weight: Optional[Decimal] = None

    class Config:
        from_attributes = True


class ProductEnvelope(BaseModel):
    success: bool = True
    product: ProductResponse


class ProductListResponse(BaseModel):
    success: bool = True
    count: int
    products: List[ProductResponse]
