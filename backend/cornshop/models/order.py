import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from cornshop.db import Base


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)
    tracking_number = Column(String(32), nullable=False)
    user_id = Column(String(64), nullable=True, index=True)
    # always the status of the latest tracking event
    status = Column(String(32), nullable=False, default="pending")
    subtotal = Column(Float, nullable=False, default=0.0)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)
    customer_info = Column(JSON, nullable=False)
    delivery_address = Column(String(512), nullable=True)
    delivery_method = Column(String(16), nullable=False, default="delivery")
    payment_method = Column(String(16), nullable=False)
    payment = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    lines = relationship(
        "OrderLine", back_populates="order", cascade="all, delete-orphan"
    )
    events = relationship(
        "TrackingEvent",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="TrackingEvent.id",
    )


class OrderLine(Base):
    __tablename__ = "order_lines"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    item_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    image = Column(String(512), nullable=True)

    order = relationship("Order", back_populates="lines")


class TrackingEvent(Base):
    __tablename__ = "tracking_events"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    message = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    order = relationship("Order", back_populates="events")


class CheckoutState(enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CheckoutRequest(Base):
    """One row per ``Idempotency-Key`` sent with a checkout."""

    __tablename__ = "checkout_requests"
    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(128), unique=True, nullable=False, index=True)
    state = Column(Enum(CheckoutState), nullable=False, default=CheckoutState.IN_PROGRESS)
    order_number = Column(String(32), nullable=True)
    last_error = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
