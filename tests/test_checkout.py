import json

import pytest
from decimal import Decimal

from storefront.core.errors import ErrorKind
from storefront.schemas.auth import AuthState
from storefront.schemas.order import CardDetails, PaymentMethod, ShippingAddress, UpiDetails
from storefront.services.cart_store import CartStore
from storefront.services.checkout import CheckoutFlow, CheckoutState, InvalidTransition
from storefront.services.selection import SelectionLayer


ADDRESS = ShippingAddress(
    name="Ravi Kumar",
    phone="9876543210",
    street="12 MG Road",
    city="Chennai",
    state="Tamil Nadu",
    zip_code="600001"
)

CARD = CardDetails(
    cardholder_name="Ravi Kumar",
    card_number="1234 5678 9012 3456",
    expiry_date="01/30",
    cvv="123"
)

PLACED = {
    "success": True,
    "message": "Order placed successfully",
    "order": {
        "id": 11,
        "orderNumber": "ORD17000000000001",
        "orderStatus": "pending",
        "paymentMethod": "Credit Card",
        "totalAmount": "200.00",
        "createdAt": "2026-10-19T10:00:00",
        "items": [{"product": 1, "name": "Product 1", "quantity": 2, "price": "100.00"}]
    }
}


async def checkout_for(make_store, *lines):
    store = await make_store(*lines)
    selection = SelectionLayer(store)
    return CheckoutFlow(store.client, store, selection), selection, store


@pytest.mark.asyncio
async def test_empty_selection_is_refused_locally(fake_shop, make_store):
    flow, _, _ = await checkout_for(make_store, (1, 2, "100", 10))
    calls_before = list(fake_shop.calls)

    result = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    assert result.success is False
    assert result.error == ErrorKind.EMPTY_STATE
    assert result.message == "Please select at least one item to proceed"
    assert fake_shop.calls == calls_before
    assert flow.state == CheckoutState.IDLE


@pytest.mark.asyncio
async def test_validation_failure_returns_to_idle_without_calling(fake_shop, make_store):
    flow, selection, _ = await checkout_for(make_store, (1, 2, "100", 10))
    selection.toggle(1)
    calls_before = list(fake_shop.calls)

    result = await flow.submit(
        ADDRESS,
        PaymentMethod.CREDIT_CARD,
        card=CARD.model_copy(update={"card_number": "1234 5678 9012"})
    )

    assert result.error == ErrorKind.VALIDATION_FAILED
    assert result.field == "card_number"
    assert flow.state == CheckoutState.IDLE
    assert fake_shop.calls == calls_before


@pytest.mark.asyncio
async def test_submits_only_selected_items_without_prices(fake_shop, make_store):
    flow, selection, store = await checkout_for(make_store, (1, 2, "100", 10), (2, 1, "50", 5))
    selection.toggle(1)
    fake_shop.on("POST", "/orders", status_code=201, json=PLACED)

    result = await flow.submit(ADDRESS, PaymentMethod.CREDIT_CARD, card=CARD)

    assert result.success is True
    assert result.message == "Order placed successfully"
    assert result.data.order_number == "ORD17000000000001"
    assert flow.state == CheckoutState.CONFIRMED

    payload = json.loads(fake_shop.requests[-1].content)
    assert payload["items"] == [{"product": 1, "quantity": 2}]
    assert payload["paymentMethod"] == "Credit Card"
    assert payload["paymentDetails"]["creditCard"]["cardNumber"] == "3456"
    assert "cvv" not in json.dumps(payload).lower()
    assert payload["shippingAddress"]["zipCode"] == "600001"

    # The cart is left alone after a successful order
    assert store.cart.item_ids() == [1, 2]
    assert not any(call.startswith("DELETE /cart") for call in fake_shop.calls)


@pytest.mark.asyncio
async def test_draft_is_a_copy_of_the_selection(make_store):
    flow, selection, store = await checkout_for(make_store, (1, 2, "100", 10))
    selection.toggle(1)

    draft = flow.build_draft(ADDRESS, PaymentMethod.UPI, upi=UpiDetails(upi_id="ravi@ybl"))
    store.logout()

    assert [(i.product_id, i.quantity) for i in draft.items] == [(1, 2)]


@pytest.mark.asyncio
async def test_server_failure_surfaces_message_and_allows_retry(fake_shop, make_store):
    flow, selection, _ = await checkout_for(make_store, (1, 2, "100", 10))
    selection.toggle(1)
    fake_shop.on("POST", "/orders", status_code=400, json={"success": False, "message": "Insufficient stock for Product 1"})

    result = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    assert result.success is False
    assert result.error == ErrorKind.NETWORK_OR_SERVER_ERROR
    assert result.message == "Insufficient stock for Product 1"
    assert flow.state == CheckoutState.FAILED
    assert fake_shop.calls.count("POST /orders") == 1

    fake_shop.on("POST", "/orders", status_code=201, json=PLACED)
    retry = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    assert retry.success is True
    assert flow.state == CheckoutState.CONFIRMED


@pytest.mark.asyncio
async def test_confirmed_checkout_is_terminal(fake_shop, make_store):
    flow, selection, _ = await checkout_for(make_store, (1, 2, "100", 10))
    selection.toggle(1)
    fake_shop.on("POST", "/orders", status_code=201, json=PLACED)
    await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    again = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    assert again.error == ErrorKind.BUSY
    assert fake_shop.calls.count("POST /orders") == 1
    with pytest.raises(InvalidTransition):
        flow._transition(CheckoutState.IDLE)


@pytest.mark.asyncio
async def test_logged_out_checkout_has_nothing_to_submit(fake_shop):
    store = CartStore(fake_shop.client())
    await store.initialize(AuthState())
    selection = SelectionLayer(store)
    flow = CheckoutFlow(store.client, store, selection)

    result = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    # Nothing can be selected without a persisted cart
    assert result.error == ErrorKind.EMPTY_STATE
    assert fake_shop.calls == []


@pytest.mark.asyncio
async def test_summary_reports_gift_and_shipping(make_store):
    store = await make_store((1, 1, "9800", 3), (2, 2, "300", 10))
    selection = SelectionLayer(store)
    selection.select_all()

    summary = CheckoutFlow(store.client, store, selection).summary()
    assert summary.subtotal == Decimal("10400")
    assert summary.shipping == Decimal("0")
    assert summary.total == Decimal("10400")
    assert summary.gift.name == "9W LED Bulb"

    selection.toggle(1)
    charged = CheckoutFlow(store.client, store, selection, charge_shipping=True).summary()
    assert charged.subtotal == Decimal("600")
    assert charged.shipping == Decimal("30")
    assert charged.total == Decimal("630")
    assert charged.gift is None


@pytest.mark.asyncio
async def test_checkout_end_to_end_against_shop(shop_client, token, products):
    store = CartStore(shop_client)
    await store.initialize(AuthState(access_token=token))
    await store.add_item(products["switch"].id, 2)
    await store.add_item(products["cable"].id, 1)
    selection = SelectionLayer(store)
    selection.toggle(products["switch"].id)
    flow = CheckoutFlow(shop_client, store, selection)

    result = await flow.submit(ADDRESS, PaymentMethod.CREDIT_CARD, card=CARD)

    assert result.success is True
    assert result.data.total_amount == Decimal("200")
    assert [(line.product_id, line.quantity) for line in result.data.items] == [(products["switch"].id, 2)]
    assert products["switch"].stock == 8

    await store.initialize(AuthState(access_token=token))
    assert len(store.cart.items) == 2


@pytest.mark.asyncio
async def test_unsuccessful_body_with_ok_status_fails(fake_shop, make_store):
    flow, selection, _ = await checkout_for(make_store, (1, 2, "100", 10))
    selection.toggle(1)
    fake_shop.on("POST", "/orders", json={"success": False, "message": "Payment details are incomplete"})

    result = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    assert result.error == ErrorKind.NETWORK_OR_SERVER_ERROR
    assert result.message == "Payment details are incomplete"
    assert flow.state == CheckoutState.FAILED


@pytest.mark.asyncio
async def test_accepted_order_with_unreadable_body_is_still_confirmed(fake_shop, make_store):
    flow, selection, _ = await checkout_for(make_store, (1, 2, "100", 10))
    selection.toggle(1)
    fake_shop.on("POST", "/orders", status_code=201, json={
        "success": True,
        "message": "Order placed successfully",
        "order": {"orderNumber": "ORD17000000000001", "totalAmount": "not a number"}
    })

    result = await flow.submit(ADDRESS, PaymentMethod.CASH_ON_DELIVERY)

    assert result.success is True
    assert result.data is None
    assert flow.state == CheckoutState.CONFIRMED


@pytest.mark.asyncio
async def test_summary_with_weight_based_shipping(shop_client, token, products):
    store = CartStore(shop_client)
    await store.initialize(AuthState(access_token=token))
    await store.add_item(products["cable"].id, 2)
    selection = SelectionLayer(store)
    selection.select_all()

    summary = CheckoutFlow(shop_client, store, selection, charge_shipping=True, shipping_mode="weight").summary()

    # 2 x 1.2 kg
    assert summary.subtotal == Decimal("100")
    assert summary.shipping == Decimal("70")
    assert summary.total == Decimal("170")
