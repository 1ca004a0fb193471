"""
Price parsing and formatting.

Catalog and client payloads carry prices either as numbers or as display
strings such as ``"RM 7.90"``. ``parse_price`` is the tolerant reader used
where rendering must never fail; ``to_amount`` is the strict one used when a
price enters the system, so that everything downstream works on a single
canonical float.
"""
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from cornshop.config import settings

PriceLike = Union[str, int, float]

_NON_NUMERIC = re.compile(r"[^0-9.]")
_CENT = Decimal("0.01")


class PriceParseError(ValueError):
    pass


def parse_price(raw: PriceLike) -> float:
    """Return ``raw`` as a float, or ``nan`` when it cannot be read."""
    if isinstance(raw, bool):
        return math.nan
    if isinstance(raw, (int, float)):
        return float(raw)
    if not isinstance(raw, str):
        return math.nan
    cleaned = _NON_NUMERIC.sub("", raw)
    try:
        return float(cleaned)
    except ValueError:
        return math.nan


def to_amount(raw: PriceLike) -> float:
    amount = parse_price(raw)
    if math.isnan(amount) or math.isinf(amount):
        raise PriceParseError(f"Unreadable price: {raw!r}")
    if amount < 0:
        raise PriceParseError(f"Negative price: {raw!r}")
    return amount


def round_money(amount: float) -> float:
    """Half-up to cents. Only for values leaving the system."""
    return float(Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_price(amount: float, prefix: str = None) -> str:
    prefix = settings.CURRENCY_PREFIX if prefix is None else prefix
    if math.isnan(amount):
        amount = 0.0
    rounded = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return f"{prefix} {rounded}"
