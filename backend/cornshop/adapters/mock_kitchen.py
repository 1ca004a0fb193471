import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from cornshop.config import settings
from cornshop.services.order_lifecycle import OrderStatus, next_status
from cornshop.services.order_service import OrderService
from cornshop.utils.clock import as_utc, utcnow

log = logging.getLogger(__name__)

LOCATIONS = {
    OrderStatus.PREPARING: "Kitchen Station 2",
    OrderStatus.READY: "Pickup counter",
    OrderStatus.OUT_FOR_DELIVERY: "En route",
}


class MockKitchen:
    """
    Simulated kitchen / rider feed for running without a real backend.

    It is just another external status source: every move goes through
    ``OrderService.apply_status_update``. Pending orders jump straight to
    ``preparing`` the way the demo storefront did.
    """

    def __init__(self, db: Session, delays: Optional[Dict[OrderStatus, int]] = None):
        self.db = db
        self.orders = OrderService(db)
        self.delays = delays or {
            OrderStatus.PENDING: settings.SIM_PENDING_SECONDS,
            OrderStatus.CONFIRMED: settings.SIM_PENDING_SECONDS,
            OrderStatus.PREPARING: settings.SIM_PREPARING_SECONDS,
            OrderStatus.READY: settings.SIM_READY_SECONDS,
            OrderStatus.OUT_FOR_DELIVERY: settings.SIM_DELIVERY_SECONDS,
        }

    def _target(self, status: OrderStatus, delivery_method: str) -> OrderStatus:
        if status == OrderStatus.PENDING:
            return OrderStatus.PREPARING
        return next_status(status, delivery_method)

    def tick(self, now: Optional[datetime] = None) -> List[Tuple[str, str]]:
        """Advance every open order whose current step has run its course."""
        now = now or utcnow()
        moved = []
        for order in self.orders.list_open_orders():
            status = OrderStatus(order.status)
            last = as_utc(order.events[-1].created_at) if order.events else as_utc(order.created_at)
            if now - last < timedelta(seconds=self.delays[status]):
                continue
            target = self._target(status, order.delivery_method)
            self.orders.apply_status_update(
                order.order_number,
                target.value,
                location=LOCATIONS.get(target),
                allow_skip=True,
            )
            moved.append((order.order_number, target.value))
        if moved:
            log.debug("tick(): advanced %s", moved)
        return moved

    def health_check(self) -> bool:
        return True
