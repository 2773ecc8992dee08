import enum
from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional


class PaymentMethod(str, enum.Enum):
    CASH_ON_DELIVERY = "Cash on Delivery"
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    UPI = "UPI"


class UpiProvider(str, enum.Enum):
    GPAY = "gpay"
    PHONEPE = "phonepe"
    PAYTM = "paytm"
    BHIM = "bhim"


class ShippingAddress(BaseModel):
    name: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = Field("", alias="zipCode")
    country: str = "India"

    class Config:
        populate_by_name = True


class CardDetails(BaseModel):
    cardholder_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


class UpiDetails(BaseModel):
    upi_id: str = ""
    provider: UpiProvider = UpiProvider.GPAY


class OrderDraftItem(BaseModel):
    product_id: int
    quantity: int


class OrderDraft(BaseModel):
    items: List[OrderDraftItem]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_details: Dict[str, Any] = {}

    def to_payload(self) -> dict:
        """Wire form expected by ``POST /orders``; prices are never sent."""
        return {
            "items": [
                {"product": item.product_id, "quantity": item.quantity}
                for item in self.items
            ],
            "shippingAddress": self.shipping_address.model_dump(by_alias=True),
            "paymentMethod": self.payment_method.value,
            "paymentDetails": self.payment_details
        }


class OrderLine(BaseModel):
    product_id: int
    name: str
    quantity: int
    price: Decimal


class Order(BaseModel):
    id: int
    order_number: str
    status: str
    payment_method: Optional[str] = None
    total_amount: Decimal
    created_at: datetime
    items: List[OrderLine] = []
