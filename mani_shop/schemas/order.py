from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime
from typing import List, Optional

from mani_shop.db.models import OrderStatus, PaymentMethod, PaymentStatus


class ShippingAddress(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(alias="zipCode", min_length=1)
    country: str = "India"

    class Config:
        populate_by_name = True


class CardDetails(BaseModel):
    cardholder_name: str = Field(alias="cardholderName")
    # Only the last four digits ever reach the shop
    card_number: str = Field(alias="cardNumber", pattern=r"^\d{4}$")
    expiry_date: str = Field(alias="expiryDate")

    class Config:
        populate_by_name = True


class UpiDetails(BaseModel):
    upi_id: str = Field(alias="upiId")
    provider: str = "gpay"

    class Config:
        populate_by_name = True


class PaymentDetails(BaseModel):
    credit_card: Optional[CardDetails] = Field(None, alias="creditCard")
    debit_card: Optional[CardDetails] = Field(None, alias="debitCard")
    upi: Optional[UpiDetails] = None

    class Config:
        populate_by_name = True


class OrderItemCreate(BaseModel):
    product: int
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = []
    shipping_address: ShippingAddress = Field(alias="shippingAddress")
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    payment_details: PaymentDetails = Field(default_factory=PaymentDetails, alias="paymentDetails")

    class Config:
        populate_by_name = True


class OrderItemResponse(BaseModel):
    product: int
    name: str
    image: Optional[str] = None
    quantity: int
    price: Decimal


class OrderOut(BaseModel):
    id: int
    order_number: str = Field(alias="orderNumber")
    user: int
    items: List[OrderItemResponse]
    shipping_address: dict = Field(alias="shippingAddress")
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    payment_status: PaymentStatus = Field(alias="paymentStatus")
    total_amount: Decimal = Field(alias="totalAmount")
    status: OrderStatus = Field(alias="orderStatus")
    created_at: datetime = Field(alias="createdAt")

    class Config:
        populate_by_name = True


class OrderResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    order: OrderOut


class OrderListResponse(BaseModel):
    success: bool = True
    count: int
    orders: List[OrderOut]
