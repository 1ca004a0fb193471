from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from cornshop.db import Base


class LoyaltyAccount(Base):
    __tablename__ = "loyalty_accounts"
    user_id = Column(String(64), primary_key=True)
    points = Column(Integer, nullable=False, default=0)
    lifetime_points = Column(Integer, nullable=False, default=0)
    # order numbers already credited, so a delivered order is never paid twice
    credited_orders = Column(JSON, nullable=False, default=list)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
