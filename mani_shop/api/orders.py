from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mani_shop.api.dependencies import get_current_customer, to_http_exception
from mani_shop.core.exceptions import ShopError
from mani_shop.db.session import get_db
from mani_shop.db.models import Customer
from mani_shop.schemas.order import OrderCreate, OrderResponse, OrderListResponse
from mani_shop.services import order as order_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    """
    Place an order for the submitted items.
    The cart is left as it is so the same items can be ordered again.
    """
    try:
        order = await order_service.create_order(db, customer.id, order_data)
    except ShopError as e:
        raise to_http_exception(e)
    return OrderResponse(
        message="Order placed successfully",
        order=order_service.order_to_response(order)
    )


@router.get("/myorders", response_model=OrderListResponse)
async def list_my_orders(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    orders = await order_service.get_customer_orders(db, customer.id)
    return OrderListResponse(
        count=len(orders),
        orders=[order_service.order_to_response(o) for o in orders]
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    try:
        order = await order_service.get_order(db, customer.id, order_id)
    except ShopError as e:
        raise to_http_exception(e)
    return OrderResponse(order=order_service.order_to_response(order))


@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db)
):
    try:
        order = await order_service.cancel_order(db, customer.id, order_id)
    except ShopError as e:
        raise to_http_exception(e)
    return OrderResponse(
        message="Order cancelled successfully",
        order=order_service.order_to_response(order)
    )
