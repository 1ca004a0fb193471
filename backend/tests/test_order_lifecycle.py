import pytest

from cornshop.services.order_lifecycle import (
    InvalidTransition,
    OrderStatus,
    check_transition,
    is_terminal,
    next_status,
    progress,
)


def test_delivery_flow():
    status, seen = OrderStatus.PENDING, [OrderStatus.PENDING]
    while (status := next_status(status)) is not None:
        seen.append(status)
    assert [s.value for s in seen] == [
        "pending",
        "confirmed",
        "preparing",
        "ready",
        "out_for_delivery",
        "delivered",
    ]


def test_pickup_skips_rider():
    assert next_status("ready", "pickup") == OrderStatus.DELIVERED
    with pytest.raises(InvalidTransition):
        check_transition("ready", "out_for_delivery", "pickup")


def test_terminal_states():
    assert is_terminal("delivered")
    assert is_terminal("cancelled")
    assert not is_terminal("ready")
    assert next_status("cancelled") is None


def test_one_step_forward_only():
    assert check_transition("pending", "confirmed") == OrderStatus.CONFIRMED
    with pytest.raises(InvalidTransition):
        check_transition("pending", "preparing")
    with pytest.raises(InvalidTransition):
        check_transition("ready", "preparing")
    with pytest.raises(InvalidTransition):
        check_transition("ready", "ready")


def test_simulated_feed_may_skip():
    assert check_transition("pending", "preparing", allow_skip=True) == OrderStatus.PREPARING


def test_cancel_from_any_live_state():
    for status in ("pending", "confirmed", "preparing", "ready", "out_for_delivery"):
        assert check_transition(status, "cancelled") == OrderStatus.CANCELLED
    with pytest.raises(InvalidTransition):
        check_transition("delivered", "cancelled")


def test_nothing_leaves_a_terminal_state():
    with pytest.raises(InvalidTransition):
        check_transition("cancelled", "confirmed")


def test_unknown_status():
    with pytest.raises(InvalidTransition):
        check_transition("pending", "teleported")


def test_progress():
    assert progress("pending") == pytest.approx(1 / 6)
    assert progress("delivered") == 1.0
    assert progress("delivered", "pickup") == 1.0
    assert progress("cancelled") == 0.0
