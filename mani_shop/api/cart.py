from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mani_shop.api.dependencies import get_current_customer, to_http_exception
from mani_shop.core.exceptions import ShopError
from mani_shop.db.session import get_db
from mani_shop.db.models import Customer
from mani_shop.schemas.cart import CartItemAdd, CartItemUpdate, CartResponse
from mani_shop.services import cart as cart_service

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    """Return the customer's persisted cart; ``cart`` is null until the first mutation."""
    cart = await cart_service.get_cart(db, customer.id)
    if cart is None:
        return CartResponse(message="No cart yet", cart=None)
    return CartResponse(
        message="Persistent cart restored",
        cart=cart_service.cart_to_response(cart)
    )


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item: CartItemAdd,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    try:
        cart = await cart_service.add_item(db, customer.id, item.product_id, item.quantity)
    except ShopError as e:
        raise to_http_exception(e)
    return CartResponse(message="Item added to cart", cart=cart_service.cart_to_response(cart))


@router.put("/update", response_model=CartResponse)
async def update_cart_item(
    item: CartItemUpdate,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    try:
        cart = await cart_service.update_item(db, customer.id, item.product_id, item.quantity)
    except ShopError as e:
        raise to_http_exception(e)
    return CartResponse(message="Cart updated", cart=cart_service.cart_to_response(cart))


@router.delete("/remove/{product_id}", response_model=CartResponse)
async def remove_from_cart(
    product_id: int,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    try:
        cart = await cart_service.remove_item(db, customer.id, product_id)
    except ShopError as e:
        raise to_http_exception(e)
    return CartResponse(message="Item removed from cart", cart=cart_service.cart_to_response(cart))


@router.delete("/clear", response_model=CartResponse)
async def clear_cart(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    cart = await cart_service.clear_cart(db, customer.id)
    return CartResponse(message="Cart cleared", cart=cart_service.cart_to_response(cart))
