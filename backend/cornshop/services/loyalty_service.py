import logging
import math
from typing import Dict, Optional

from sqlalchemy.orm import Session

from cornshop.models.loyalty import LoyaltyAccount
from cornshop.models.order import Order

log = logging.getLogger(__name__)

# (tier, lower bound, points per currency unit)
TIERS = [
    ("Gold", 2000, 1.5),
    ("Silver", 1000, 1.0),
    ("Bronze", 0, 1.0),
]


def tier_for(points: int) -> str:
    return next(name for name, floor, _ in TIERS if points >= floor)


def earn_rate(points: int) -> float:
    return next(rate for _, floor, rate in TIERS if points >= floor)


def points_to_next_tier(points: int) -> int:
    higher = [floor for _, floor, _ in TIERS if floor > points]
    return min(higher) - points if higher else 0


class LoyaltyService:
    def __init__(self, db: Session):
        self.db = db

    def _account(self, user_id: str) -> LoyaltyAccount:
        acct = self.db.get(LoyaltyAccount, user_id)
        if not acct:
            acct = LoyaltyAccount(
                user_id=user_id, points=0, lifetime_points=0, credited_orders=[]
            )
            self.db.add(acct)
            self.db.flush()
        return acct

    def award_for_order(self, order: Order) -> int:
        """
        Credit points for a delivered order. Guest orders earn nothing and an
        order is never credited twice. Does not commit.
        """
        if not order.user_id:
            return 0
        acct = self._account(order.user_id)
        if order.order_number in (acct.credited_orders or []):
            return 0
        earned = math.floor(order.subtotal * earn_rate(acct.points))
        acct.points += earned
        acct.lifetime_points += earned
        acct.credited_orders = list(acct.credited_orders or []) + [order.order_number]
        self.db.flush()
        log.info("Awarded %d points to %s for %s", earned, order.user_id, order.order_number)
        return earned

    def get_account(self, user_id: str) -> Dict:
        acct: Optional[LoyaltyAccount] = self.db.get(LoyaltyAccount, user_id)
        points = acct.points if acct else 0
        return {
            "user_id": user_id,
            "points": points,
            "lifetime_points": acct.lifetime_points if acct else 0,
            "tier": tier_for(points),
            "points_to_next_tier": points_to_next_tier(points),
        }
