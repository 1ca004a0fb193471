import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from cornshop.config import settings
from cornshop.schemas.cart_schema import CartLineItem, CartSummary, CartTotals

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingRules:
    free_delivery_threshold: float
    delivery_fee: float
    tax_rate: float

    @classmethod
    def from_settings(cls) -> "PricingRules":
        return cls(
            free_delivery_threshold=settings.FREE_DELIVERY_THRESHOLD,
            delivery_fee=settings.DELIVERY_FEE,
            tax_rate=settings.TAX_RATE,
        )


def line_total(item: CartLineItem) -> float:
    price = item.unit_price
    if math.isnan(price):
        log.warning("line_total(): NaN price on %s counted as 0", item.id)
        price = 0.0
    return price * item.quantity


def calculate_subtotal(items: Iterable[CartLineItem]) -> float:
    return sum((line_total(it) for it in items), 0.0)


def calculate_delivery_fee(
    subtotal: float, rules: PricingRules, delivery_method: str = "delivery"
) -> float:
    if delivery_method == "pickup":
        return 0.0
    return 0.0 if subtotal >= rules.free_delivery_threshold else rules.delivery_fee


def calculate_totals(
    items: Iterable[CartLineItem],
    rules: Optional[PricingRules] = None,
    delivery_method: str = "delivery",
) -> CartTotals:
    """
    Subtotal, delivery fee, tax and total for a set of line items.

    Tax is levied on the subtotal only. Nothing is rounded here; rounding
    belongs to display (``format_price``) and to values leaving the system.
    """
    rules = rules or PricingRules.from_settings()
    items = list(items)
    subtotal = calculate_subtotal(items)
    # nothing to deliver for an empty cart; free items still ship
    delivery_fee = (
        calculate_delivery_fee(subtotal, rules, delivery_method) if items else 0.0
    )
    tax = subtotal * rules.tax_rate
    return CartTotals(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        tax=tax,
        total=subtotal + delivery_fee + tax,
    )


def cart_summary(
    items: Iterable[CartLineItem],
    rules: Optional[PricingRules] = None,
    delivery_method: str = "delivery",
) -> CartSummary:
    items = list(items)
    totals = calculate_totals(items, rules, delivery_method)
    return CartSummary(
        **totals.model_dump(),
        item_count=sum(it.quantity for it in items),
        unique_item_count=len(items),
    )
