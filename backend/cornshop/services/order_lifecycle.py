"""
Order status state machine.

    pending -> confirmed -> preparing -> ready -> out_for_delivery -> delivered

Pickup orders go straight from ``ready`` to ``delivered``. ``cancelled`` is
reachable from every non-terminal state; ``delivered`` and ``cancelled`` are
terminal. Status updates come from outside (kitchen, rider, simulator); this
module only decides whether an update is acceptable.
"""
import enum
from typing import List, Optional


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


DELIVERY_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]
PICKUP_FLOW = [s for s in DELIVERY_FLOW if s != OrderStatus.OUT_FOR_DELIVERY]

TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

DEFAULT_MESSAGES = {
    OrderStatus.PENDING: "Order placed successfully",
    OrderStatus.CONFIRMED: "Order confirmed by restaurant",
    OrderStatus.PREPARING: "Chef is preparing your order",
    OrderStatus.READY: "Your order is ready",
    OrderStatus.OUT_FOR_DELIVERY: "Delivery rider is on the way",
    OrderStatus.DELIVERED: "Order delivered. Enjoy your meal!",
    OrderStatus.CANCELLED: "Order cancelled",
}


class InvalidTransition(Exception):
    pass


def flow_for(delivery_method: str) -> List[OrderStatus]:
    return PICKUP_FLOW if delivery_method == "pickup" else DELIVERY_FLOW


def is_terminal(status) -> bool:
    return OrderStatus(status) in TERMINAL


def next_status(status, delivery_method: str = "delivery") -> Optional[OrderStatus]:
    status = OrderStatus(status)
    if status in TERMINAL:
        return None
    flow = flow_for(delivery_method)
    return flow[flow.index(status) + 1]


def check_transition(
    current, target, delivery_method: str = "delivery", allow_skip: bool = False
) -> OrderStatus:
    """
    Validate ``current -> target`` and return the target as an OrderStatus.

    Forward moves advance one step at a time; ``allow_skip`` lets a simulated
    feed jump ahead. Cancellation is accepted from any non-terminal state.
    """
    current = OrderStatus(current)
    try:
        target = OrderStatus(target)
    except ValueError:
        raise InvalidTransition(f"Unknown order status: {target}")

    if current in TERMINAL:
        raise InvalidTransition(f"Order is already {current.value}")
    if target == OrderStatus.CANCELLED:
        return target

    flow = flow_for(delivery_method)
    if target not in flow:
        raise InvalidTransition(
            f"Status {target.value} does not apply to {delivery_method} orders"
        )
    step = flow.index(target) - flow.index(current)
    if step <= 0:
        raise InvalidTransition(
            f"Cannot move order back from {current.value} to {target.value}"
        )
    if step > 1 and not allow_skip:
        raise InvalidTransition(
            f"Cannot skip from {current.value} to {target.value}; "
            f"next is {flow[flow.index(current) + 1].value}"
        )
    return target


def progress(status, delivery_method: str = "delivery") -> float:
    """Share of the flow completed, 0.0–1.0 (cancelled orders report 0)."""
    status = OrderStatus(status)
    flow = flow_for(delivery_method)
    if status not in flow:
        return 0.0
    return (flow.index(status) + 1) / len(flow)
