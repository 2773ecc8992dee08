import logging
import time
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from mani_shop.core.config import settings
from mani_shop.core.exceptions import (
    NotFoundError,
    InsufficientStockError,
    ForbiddenError,
    InvalidStateError,
    ValidationError
)
from mani_shop.db.models import Order, OrderItem, Product, OrderStatus, PaymentStatus
from mani_shop.schemas.order import OrderCreate, OrderOut, OrderItemResponse

logger = logging.getLogger(__name__)

NON_CANCELLABLE_STATUSES = {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def order_to_response(order: Order) -> OrderOut:
    return OrderOut(
        id=order.id,
        order_number=order.order_number,
        user=order.customer_id,
        items=[
            OrderItemResponse(
                product=item.product_id,
                name=item.name,
                image=item.image,
                quantity=item.quantity,
                price=item.price
            )
            for item in order.items
        ],
        shipping_address=order.shipping_address,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        total_amount=order.total_amount,
        status=order.status,
        created_at=order.created_at
    )


async def _load_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _next_order_number(db: AsyncSession) -> str:
    count_result = await db.execute(select(func.count(Order.id)))
    count = count_result.scalar() or 0
    return f"ORD{int(time.time() * 1000)}{count + 1}"


async def create_order(db: AsyncSession, customer_id: int, data: OrderCreate) -> Order:
    """
    Place an order for the given items.

    Prices come from the current product records, never from the client.
    Stock is checked for every line before any of it is decremented.
    The customer's cart is not touched.
    """
    if not data.items:
        raise ValidationError("No items in order")

    requested = defaultdict(int)
    for item in data.items:
        requested[item.product] += item.quantity

    result = await db.execute(select(Product).where(Product.id.in_(list(requested))))
    products = {product.id: product for product in result.scalars().all()}

    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if not product:
            raise NotFoundError(f"Product not found: {product_id}")
        if product.stock < quantity:
            raise InsufficientStockError(f"Insufficient stock for {product.name}")

    order_items = []
    total = Decimal("0.00")

    for item in data.items:
        product = products[item.product]
        order_items.append(OrderItem(
            product_id=product.id,
            name=product.name,
            image=product.image,
            quantity=item.quantity,
            price=product.price
        ))
        total += product.price * item.quantity
        product.stock -= item.quantity

    order = Order(
        order_number=await _next_order_number(db),
        customer_id=customer_id,
        shipping_address=data.shipping_address.model_dump(by_alias=True),
        payment_method=data.payment_method,
        payment_details=data.payment_details.model_dump(by_alias=True, exclude_none=True),
        payment_status=PaymentStatus.PENDING,
        total_amount=total,
        status=OrderStatus.PENDING,
        items=order_items
    )
    db.add(order)
    await db.commit()

    logger.info(f"Order placed: number={order.order_number}, customer={customer_id}, total={total}")

    return await _load_order(db, order.id)


async def get_customer_orders(db: AsyncSession, customer_id: int) -> List[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.customer_id == customer_id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())


async def get_order(db: AsyncSession, customer_id: int, order_id: int) -> Order:
    order = await _load_order(db, order_id)

    if not order:
        raise NotFoundError("Order not found")
    if order.customer_id != customer_id:
        raise ForbiddenError("Not authorized to access this order")

    return order


async def cancel_order(
    db: AsyncSession,
    customer_id: int,
    order_id: int,
    now: Optional[datetime] = None
) -> Order:
    """Cancel a pending/confirmed order inside the cancellation window and restore stock."""
    order = await get_order(db, customer_id, order_id)

    if order.status == OrderStatus.CANCELLED:
        raise InvalidStateError("Order is already cancelled")
    if order.status in NON_CANCELLABLE_STATUSES:
        raise InvalidStateError("Cannot cancel order at this stage")

    window = timedelta(hours=settings.CANCELLATION_WINDOW_HOURS)
    if (now or datetime.utcnow()) - order.created_at > window:
        raise InvalidStateError(
            f"Orders can only be cancelled within {settings.CANCELLATION_WINDOW_HOURS} hours. "
            "Please contact support for assistance."
        )

    product_ids = [item.product_id for item in order.items]
    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {product.id: product for product in result.scalars().all()}

    for item in order.items:
        product = products.get(item.product_id)
        if product:
            product.stock += item.quantity

    order.status = OrderStatus.CANCELLED
    await db.commit()

    logger.info(f"Order cancelled: number={order.order_number}, customer={customer_id}")

    return await _load_order(db, order.id)
