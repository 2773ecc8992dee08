import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from mani_shop.core.exceptions import NotFoundError, InsufficientStockError
from mani_shop.db.models import Cart, CartItem
from mani_shop.schemas.cart import CartItemResponse, CartOut
from mani_shop.services.product import get_product, product_to_response

logger = logging.getLogger(__name__)


def cart_to_response(cart: Cart) -> CartOut:
    items = []
    total = Decimal("0.00")

    for item in cart.items:
        items.append(CartItemResponse(
            product=product_to_response(item.product),
            quantity=item.quantity,
            price=item.price
        ))
        total += item.price * item.quantity

    return CartOut(
        id=cart.id,
        user=cart.customer_id,
        items=items,
        total_amount=total,
        updated_at=cart.updated_at
    )


async def get_cart(db: AsyncSession, customer_id: int) -> Optional[Cart]:
    """Load the persisted cart with its lines and products, or None if never created."""
    result = await db.execute(
        select(Cart)
        .where(Cart.customer_id == customer_id)
        .options(selectinload(Cart.items).selectinload(CartItem.product))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_or_create_cart(db: AsyncSession, customer_id: int) -> Cart:
    cart = await get_cart(db, customer_id)
    if cart is None:
        cart = Cart(customer_id=customer_id, items=[])
        db.add(cart)
        await db.flush()
        logger.info(f"Created cart for customer {customer_id}")
    return cart


async def _require_cart(db: AsyncSession, customer_id: int) -> Cart:
    cart = await get_cart(db, customer_id)
    if cart is None:
        raise NotFoundError("Cart not found")
    return cart


async def add_item(db: AsyncSession, customer_id: int, product_id: int, quantity: int) -> Cart:
    """
    Add a product to the customer's cart, creating the cart on first use.
    Existing lines are merged; the line keeps the price captured when it was first added.
    """
    product = await get_product(db, product_id)
    cart = await get_cart(db, customer_id)

    existing = None
    if cart is not None:
        existing = next((item for item in cart.items if item.product_id == product_id), None)
    new_quantity = existing.quantity + quantity if existing else quantity

    if product.stock < new_quantity:
        raise InsufficientStockError(f"Insufficient stock. Only {product.stock} units available")

    if cart is None:
        cart = await _get_or_create_cart(db, customer_id)

    if existing:
        existing.quantity = new_quantity
    else:
        cart.items.append(CartItem(
            product_id=product.id,
            quantity=quantity,
            price=product.price
        ))

    cart.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"Added to cart: customer={customer_id}, product_id={product_id}, quantity={quantity}")

    return await get_cart(db, customer_id)


async def update_item(db: AsyncSession, customer_id: int, product_id: int, quantity: int) -> Cart:
    cart = await _require_cart(db, customer_id)

    item = next((item for item in cart.items if item.product_id == product_id), None)
    if not item:
        raise NotFoundError("Item not found in cart")

    product = await get_product(db, product_id)
    if product.stock < quantity:
        raise InsufficientStockError(f"Insufficient stock. Only {product.stock} units available")

    # Refresh the snapshot in case the price changed since the line was added
    item.quantity = quantity
    item.price = product.price
    cart.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"Updated cart item: customer={customer_id}, product_id={product_id}, quantity={quantity}")

    return await get_cart(db, customer_id)


async def remove_item(db: AsyncSession, customer_id: int, product_id: int) -> Cart:
    cart = await _require_cart(db, customer_id)

    item = next((item for item in cart.items if item.product_id == product_id), None)
    if item:
        cart.items.remove(item)
        cart.updated_at = datetime.utcnow()
        await db.commit()
        logger.info(f"Removed from cart: customer={customer_id}, product_id={product_id}")

    return await get_cart(db, customer_id)


async def clear_cart(db: AsyncSession, customer_id: int) -> Cart:
    cart = await _get_or_create_cart(db, customer_id)
    cart.items.clear()
    cart.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"Cart cleared for customer {customer_id}")

    return await get_cart(db, customer_id)
