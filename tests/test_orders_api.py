import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select

from mani_shop.core.security import create_access_token
from mani_shop.db.models import Order, OrderStatus


SHIPPING_ADDRESS = {
    "name": "Ravi Kumar",
    "phone": "9876543210",
    "street": "12 MG Road",
    "city": "Chennai",
    "state": "Tamil Nadu",
    "zipCode": "600001"
}


def order_payload(*items, method="Cash on Delivery", details=None):
    return {
        "items": [{"product": product_id, "quantity": quantity} for product_id, quantity in items],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": method,
        "paymentDetails": details or {}
    }


@pytest.mark.asyncio
async def test_order_prices_from_catalogue_and_decrements_stock(api, auth_headers, products):
    switch, cable = products["switch"], products["cable"]

    response = await api.post(
        "/api/orders",
        json=order_payload((switch.id, 2), (cable.id, 1)),
        headers=auth_headers
    )

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Order placed successfully"
    order = data["order"]
    assert order["orderNumber"].startswith("ORD")
    assert order["orderStatus"] == "pending"
    assert order["paymentMethod"] == "Cash on Delivery"
    assert Decimal(order["totalAmount"]) == Decimal("250")
    assert order["shippingAddress"]["country"] == "India"
    assert switch.stock == 8
    assert cable.stock == 4


@pytest.mark.asyncio
async def test_order_leaves_cart_untouched(api, auth_headers, products):
    switch = products["switch"]
    await api.post("/api/cart/add", json={"productId": switch.id, "quantity": 2}, headers=auth_headers)

    await api.post("/api/orders", json=order_payload((switch.id, 2)), headers=auth_headers)

    cart = (await api.get("/api/cart", headers=auth_headers)).json()["cart"]
    assert cart["items"][0]["quantity"] == 2


@pytest.mark.asyncio
async def test_order_with_no_items(api, auth_headers, products):
    response = await api.post("/api/orders", json=order_payload(), headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "No items in order"}


@pytest.mark.asyncio
async def test_order_insufficient_stock_changes_nothing(api, auth_headers, products):
    switch, inverter = products["switch"], products["inverter"]

    response = await api.post(
        "/api/orders",
        json=order_payload((switch.id, 1), (inverter.id, 4)),
        headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Insufficient stock for Home Inverter 900VA"
    assert switch.stock == 10
    assert inverter.stock == 3


@pytest.mark.asyncio
async def test_order_stores_only_last_four_digits(api, auth_headers, products, db_session):
    details = {"creditCard": {"cardholderName": "Ravi Kumar", "cardNumber": "3456", "expiryDate": "01/30"}}

    response = await api.post(
        "/api/orders",
        json=order_payload((products["switch"].id, 1), method="Credit Card", details=details),
        headers=auth_headers
    )

    assert response.status_code == 201
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.payment_details == {"creditCard": {"cardholderName": "Ravi Kumar", "cardNumber": "3456", "expiryDate": "01/30"}}

    full_number = {"creditCard": {"cardholderName": "Ravi Kumar", "cardNumber": "1234567890123456", "expiryDate": "01/30"}}
    rejected = await api.post(
        "/api/orders",
        json=order_payload((products["switch"].id, 1), method="Credit Card", details=full_number),
        headers=auth_headers
    )
    assert rejected.status_code == 422


@pytest.mark.asyncio
async def test_my_orders_and_ownership(api, auth_headers, products, other_customer):
    placed = await api.post("/api/orders", json=order_payload((products["switch"].id, 1)), headers=auth_headers)
    order_id = placed.json()["order"]["id"]

    mine = await api.get("/api/orders/myorders", headers=auth_headers)
    assert mine.json()["count"] == 1
    assert mine.json()["orders"][0]["id"] == order_id

    other_headers = {"Authorization": f"Bearer {create_access_token({'sub': str(other_customer.id)})}"}
    forbidden = await api.get(f"/api/orders/{order_id}", headers=other_headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_cancel_restores_stock(api, auth_headers, products):
    switch = products["switch"]
    placed = await api.post("/api/orders", json=order_payload((switch.id, 3)), headers=auth_headers)
    order_id = placed.json()["order"]["id"]
    assert switch.stock == 7

    response = await api.put(f"/api/orders/{order_id}/cancel", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["order"]["orderStatus"] == "cancelled"
    assert switch.stock == 10

    again = await api.put(f"/api/orders/{order_id}/cancel", headers=auth_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Order is already cancelled"


@pytest.mark.asyncio
async def test_cancel_refused_after_window(api, auth_headers, products, db_session):
    placed = await api.post("/api/orders", json=order_payload((products["switch"].id, 1)), headers=auth_headers)
    order = (await db_session.execute(select(Order).where(Order.id == placed.json()["order"]["id"]))).scalar_one()
    order.created_at = datetime.utcnow() - timedelta(hours=25)
    await db_session.commit()

    response = await api.put(f"/api/orders/{order.id}/cancel", headers=auth_headers)

    assert response.status_code == 400
    assert "within 24 hours" in response.json()["message"]


@pytest.mark.asyncio
async def test_cancel_refused_once_shipped(api, auth_headers, products, db_session):
    placed = await api.post("/api/orders", json=order_payload((products["switch"].id, 1)), headers=auth_headers)
    order = (await db_session.execute(select(Order).where(Order.id == placed.json()["order"]["id"]))).scalar_one()
    order.status = OrderStatus.SHIPPED
    await db_session.commit()

    response = await api.put(f"/api/orders/{order.id}/cancel", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot cancel order at this stage"
