from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from cornshop.db import Base


class StorageSlot(Base):
    """One key of a browser session's durable key/value storage."""

    __tablename__ = "storage_slots"
    __table_args__ = (UniqueConstraint("scope", "key", name="uq_slot_scope_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope = Column(String(64), nullable=False, index=True)  # browser session id
    key = Column(String(128), nullable=False)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
