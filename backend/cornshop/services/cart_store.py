import logging
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from cornshop.schemas.cart_schema import CartLineItem

log = logging.getLogger(__name__)

Listener = Callable[["CartStore"], None]


class CartException(Exception):
    pass


class CartStore:
    """
    Line items of one shopping session, keyed by product id.

    Insertion order is kept for rendering. A quantity of 0 is never stored:
    driving a line to 0 removes it. Every effective mutation is announced to
    the subscribers (totals, persistence).
    """

    def __init__(self, items: Optional[Iterable[CartLineItem]] = None):
        self._lines: "OrderedDict[str, CartLineItem]" = OrderedDict()
        self._listeners: List[Listener] = []
        for it in items or []:
            self._lines[it.id] = it.model_copy()

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self):
        for listener in list(self._listeners):
            listener(self)

    # -- mutations ---------------------------------------------------------

    def add_item(self, item: CartLineItem, quantity: int = 1) -> bool:
        """
        Add ``quantity`` of ``item``. Returns False when ``max_quantity``
        clamped the request (the clamped amount is still applied).
        """
        if quantity <= 0:
            raise CartException("Quantity must be positive")
        existing = self._lines.get(item.id)
        if existing:
            requested = existing.quantity + quantity
            cap = existing.max_quantity
        else:
            requested = quantity
            cap = item.max_quantity
        new_qty = min(requested, cap) if cap else requested

        if existing:
            if new_qty == existing.quantity:
                log.debug("add_item(): %s already at cap %s", item.id, cap)
                return False
            existing.quantity = new_qty
        else:
            self._lines[item.id] = item.model_copy(update={"quantity": new_qty})
        self._changed()
        return new_qty == requested

    def update_quantity(self, item_id: str, quantity: int) -> bool:
        if quantity <= 0:
            self.remove_item(item_id)
            return True
        line = self._lines.get(item_id)
        if not line:
            return True
        new_qty = min(quantity, line.max_quantity) if line.max_quantity else quantity
        if new_qty != line.quantity:
            line.quantity = new_qty
            self._changed()
        return new_qty == quantity

    def increment(self, item_id: str) -> bool:
        if item_id not in self._lines:
            return True
        return self.update_quantity(item_id, self._lines[item_id].quantity + 1)

    def decrement(self, item_id: str) -> bool:
        if item_id not in self._lines:
            return True
        return self.update_quantity(item_id, self._lines[item_id].quantity - 1)

    def remove_item(self, item_id: str):
        if self._lines.pop(item_id, None) is not None:
            self._changed()

    def clear(self):
        if self._lines:
            self._lines.clear()
            self._changed()

    def replace(self, items: Iterable[CartLineItem]):
        """Swap the whole content in one mutation (restore / merge)."""
        self._lines = OrderedDict((it.id, it.model_copy()) for it in items)
        self._changed()

    # -- queries -----------------------------------------------------------

    def is_in_cart(self, item_id: str) -> bool:
        return item_id in self._lines

    def get_quantity(self, item_id: str) -> int:
        line = self._lines.get(item_id)
        return line.quantity if line else 0

    def get(self, item_id: str) -> Optional[CartLineItem]:
        return self._lines.get(item_id)

    def items(self) -> List[CartLineItem]:
        return list(self._lines.values())

    def snapshot(self) -> List[CartLineItem]:
        """Deep copies, detached from the live cart."""
        return [it.model_copy(deep=True) for it in self._lines.values()]

    def quantities(self) -> Dict[str, int]:
        return {k: v.quantity for k, v in self._lines.items()}

    @property
    def item_count(self) -> int:
        return sum(it.quantity for it in self._lines.values())

    @property
    def unique_item_count(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self):
        return len(self._lines)

    def __contains__(self, item_id: str):
        return item_id in self._lines
