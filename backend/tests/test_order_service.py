from datetime import timedelta

import pytest

from cornshop.adapters.mock_kitchen import MockKitchen
from cornshop.models.loyalty import LoyaltyAccount
from cornshop.schemas.cart_schema import CartLineItem
from cornshop.schemas.order_schema import CheckoutIn
from cornshop.services.cart_store import CartStore
from cornshop.services.loyalty_service import LoyaltyService
from cornshop.services.order_lifecycle import InvalidTransition, OrderStatus
from cornshop.services.order_service import (
    OrderNotFound,
    OrderService,
    OrderServiceException,
)
from cornshop.utils.clock import utcnow


def items():
    return [
        CartLineItem(id="A", name="Butter Corn", unit_price="RM 7.90", quantity=2),
        CartLineItem(id="B", name="Corn Drink", unit_price=5.00, quantity=1),
    ]


def checkout(**overrides):
    data = {
        "customer_info": {
            "name": "Aisyah",
            "email": "aisyah@gmail.com",
            "phone": "+60123456789",
            "address": "12 Jalan Jagung",
        },
        "payment_method": "card",
    }
    data.update(overrides)
    return CheckoutIn(**data)


def statuses(order):
    return [e.status for e in order.events]


def test_submit_creates_pending_order_with_snapshot(db):
    order = OrderService(db).submit_order(items(), checkout(), user_id="u-snap")
    assert order.order_number.startswith("ORD-")
    assert order.tracking_number.startswith("TRK-")
    assert order.status == "pending"
    assert statuses(order) == ["pending"]
    assert order.subtotal == pytest.approx(20.80)
    assert order.delivery_fee == 5.0
    assert order.total == pytest.approx(27.048)
    assert order.payment["status"] == "captured"
    assert OrderService.to_out(order).formatted_total == "RM 27.05"


def test_order_is_decoupled_from_live_cart(db):
    store = CartStore(items())
    svc = OrderService(db)
    order = svc.submit_order(store.items(), checkout())
    store.add_item(CartLineItem(id="A", name="Butter Corn", unit_price=7.90), quantity=5)
    store.clear()

    db.expire_all()
    fresh = svc.get_order(order.order_number)
    assert {l.item_id: l.qty for l in fresh.lines} == {"A": 2, "B": 1}
    assert fresh.subtotal == pytest.approx(20.80)


def test_empty_cart_is_rejected(db):
    with pytest.raises(OrderServiceException, match="empty"):
        OrderService(db).submit_order([], checkout())


def test_delivery_needs_an_address(db):
    info = {"name": "Aisyah", "email": "aisyah@gmail.com", "phone": "+60123456789"}
    with pytest.raises(OrderServiceException, match="address"):
        OrderService(db).submit_order(items(), checkout(customer_info=info))
    order = OrderService(db).submit_order(
        items(), checkout(customer_info=info, delivery_method="pickup", payment_method="cash")
    )
    assert order.delivery_fee == 0.0
    assert "transaction_id" not in order.payment


def test_payment_failures_are_surfaced(db):
    svc = OrderService(db)
    with pytest.raises(OrderServiceException, match="Payment declined"):
        svc.submit_order(items(), checkout(payment_details={"force_decline": True}))
    with pytest.raises(OrderServiceException, match="Payment failed"):
        svc.submit_order(items(), checkout(payment_details={"force_error": True}))


def test_idempotency_key_returns_first_order(db):
    svc = OrderService(db)
    first = svc.submit_order(items(), checkout(), idempotency_key="svc-idem-1")
    assert svc.replayed is False
    again = svc.submit_order(items(), checkout(), idempotency_key="svc-idem-1")
    assert again.order_number == first.order_number
    assert svc.replayed is True


def test_failed_attempt_can_be_retried_with_same_key(db):
    svc = OrderService(db)
    with pytest.raises(OrderServiceException):
        svc.submit_order(
            items(), checkout(payment_details={"force_decline": True}), idempotency_key="svc-idem-2"
        )
    order = svc.submit_order(items(), checkout(), idempotency_key="svc-idem-2")
    assert order.status == "pending"


def test_status_updates_advance_one_step(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout())
    svc.apply_status_update(order.order_number, "confirmed", location="Outlet KLCC")
    svc.apply_status_update(order.order_number, "confirmed")  # duplicate push
    assert statuses(order) == ["pending", "confirmed"]
    assert order.events[-1].location == "Outlet KLCC"
    assert order.status == order.events[-1].status

    with pytest.raises(InvalidTransition):
        svc.apply_status_update(order.order_number, "delivered")
    with pytest.raises(InvalidTransition):
        svc.apply_status_update(order.order_number, "pending")
    assert statuses(order) == ["pending", "confirmed"]


def test_double_cancel_records_one_entry(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout())
    svc.cancel_order(order.order_number, reason="changed my mind")
    svc.cancel_order(order.order_number, reason="changed my mind")
    assert statuses(order).count("cancelled") == 1
    assert order.status == "cancelled"
    assert "changed my mind" in order.events[-1].message
    assert order.payment["refund"]["status"] == "refunded"


def test_cancel_after_delivery_is_noop(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout(delivery_method="pickup"))
    for status in ("confirmed", "preparing", "ready", "delivered"):
        svc.apply_status_update(order.order_number, status)
    svc.cancel_order(order.order_number)
    assert order.status == "delivered"
    assert "cancelled" not in statuses(order)


def test_cancel_via_status_update(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout())
    svc.apply_status_update(order.order_number, "cancelled", message="kitchen closed")
    assert order.status == "cancelled"
    with pytest.raises(InvalidTransition):
        svc.apply_status_update(order.order_number, "confirmed")


def test_unknown_order(db):
    with pytest.raises(OrderNotFound):
        OrderService(db).cancel_order("ORD-NOPE")


def test_delivery_awards_loyalty_points_once(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout(), user_id="u-loyal")
    for status in ("confirmed", "preparing", "ready", "out_for_delivery", "delivered"):
        svc.apply_status_update(order.order_number, status)
    svc.apply_status_update(order.order_number, "delivered")

    account = LoyaltyService(db).get_account("u-loyal")
    assert account["points"] == 20
    assert account["tier"] == "Bronze"


def test_gold_members_earn_more(db):
    db.add(LoyaltyAccount(user_id="u-gold", points=2000, lifetime_points=2000, credited_orders=[]))
    db.commit()
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout(delivery_method="pickup"), user_id="u-gold")
    for status in ("confirmed", "preparing", "ready", "delivered"):
        svc.apply_status_update(order.order_number, status)
    assert LoyaltyService(db).get_account("u-gold")["points"] == 2000 + 31


def test_history_is_newest_first(db):
    svc = OrderService(db)
    older = svc.submit_order(items(), checkout(), user_id="u-history")
    newer = svc.submit_order(items(), checkout(), user_id="u-history")
    history = svc.list_orders("u-history")
    assert [o.order_number for o in history] == [newer.order_number, older.order_number]
    assert len(svc.list_orders("u-history", limit=1)) == 1


def test_tracking_view(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout())
    view = svc.tracking(order.order_number)
    assert view.status == "pending"
    assert [e.status for e in view.timeline] == ["pending"]
    assert view.timeline[0].message == "Order placed successfully"


def test_mock_kitchen_drives_orders_through_the_same_entry_point(db):
    svc = OrderService(db)
    order = svc.submit_order(items(), checkout())
    kitchen = MockKitchen(
        db,
        delays={
            OrderStatus.PENDING: 2,
            OrderStatus.CONFIRMED: 2,
            OrderStatus.PREPARING: 300,
            OrderStatus.READY: 120,
            OrderStatus.OUT_FOR_DELIVERY: 900,
        },
    )
    start = utcnow()

    moved = kitchen.tick(start + timedelta(seconds=5))
    assert (order.order_number, "preparing") in moved
    assert order.events[-1].location == "Kitchen Station 2"

    moved = kitchen.tick(start + timedelta(seconds=30))
    assert all(num != order.order_number for num, _ in moved)

    kitchen.tick(start + timedelta(minutes=10))
    assert order.status == "ready"
    assert statuses(order) == ["pending", "preparing", "ready"]
