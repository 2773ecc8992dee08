"""
Client-side checks on checkout input, run before anything is sent.
Each check raises ValidationFailed naming the offending field.
"""
import re
from typing import Optional

from storefront.core.errors import ValidationFailed
from storefront.schemas.order import CardDetails, PaymentMethod, ShippingAddress, UpiDetails

CARD_SEPARATORS = re.compile(r"[\s-]")
CARD_NUMBER_PATTERN = re.compile(r"^[0-9]{16}$")
CVV_PATTERN = re.compile(r"^[0-9]{3,4}$")
EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/[0-9]{2}$")
UPI_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z]+$")

CARD_METHODS = (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)

REQUIRED_ADDRESS_FIELDS = (
    ("name", "Full name"),
    ("phone", "Phone number"),
    ("street", "Street address"),
    ("city", "City"),
    ("state", "State"),
    ("zip_code", "ZIP code"),
)


def normalize_card_number(card_number: str) -> str:
    return CARD_SEPARATORS.sub("", card_number or "")


def validate_card_number(card_number: str):
    if not CARD_NUMBER_PATTERN.match(normalize_card_number(card_number)):
        raise ValidationFailed("card_number", "Card number must be 16 digits")


def validate_cvv(cvv: str):
    if not CVV_PATTERN.match(cvv or ""):
        raise ValidationFailed("cvv", "CVV must be 3-4 digits")


def validate_expiry(expiry_date: str):
    if not EXPIRY_PATTERN.match(expiry_date or ""):
        raise ValidationFailed("expiry_date", "Expiry date must be in MM/YY format")


def validate_card(card: Optional[CardDetails]):
    if card is None:
        raise ValidationFailed("card", "Please fill all card details")
    if not card.cardholder_name.strip():
        raise ValidationFailed("cardholder_name", "Please enter the cardholder name")
    validate_card_number(card.card_number)
    validate_cvv(card.cvv)
    validate_expiry(card.expiry_date)


def validate_upi(upi: Optional[UpiDetails]):
    if upi is None or not upi.upi_id:
        raise ValidationFailed("upi_id", "Please enter UPI ID")
    if not UPI_PATTERN.match(upi.upi_id):
        raise ValidationFailed("upi_id", "Please enter valid UPI ID (e.g., username@upi)")


def validate_shipping_address(address: ShippingAddress):
    for field, label in REQUIRED_ADDRESS_FIELDS:
        if not (getattr(address, field) or "").strip():
            raise ValidationFailed(field, f"{label} is required")


def validate_payment(
    method: PaymentMethod,
    card: Optional[CardDetails] = None,
    upi: Optional[UpiDetails] = None
):
    if method in CARD_METHODS:
        validate_card(card)
    elif method == PaymentMethod.UPI:
        validate_upi(upi)


def _card_payload(card: CardDetails) -> dict:
    # Only the last four digits leave the client
    return {
        "cardholderName": card.cardholder_name.strip(),
        "cardNumber": normalize_card_number(card.card_number)[-4:],
        "expiryDate": card.expiry_date
    }


def build_payment_details(
    method: PaymentMethod,
    card: Optional[CardDetails] = None,
    upi: Optional[UpiDetails] = None
) -> dict:
    """Payment metadata for the order draft. The CVV is never included."""
    return {
        "creditCard": _card_payload(card) if method == PaymentMethod.CREDIT_CARD else None,
        "debitCard": _card_payload(card) if method == PaymentMethod.DEBIT_CARD else None,
        "upi": {"upiId": upi.upi_id, "provider": upi.provider.value} if method == PaymentMethod.UPI else None
    }
