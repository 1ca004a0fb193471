from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text

from cornshop.db import Base


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False, default=0.0)
    image = Column(String(512), nullable=True)
    category = Column(String(32), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    in_stock = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, nullable=True)
    review_count = Column(Integer, nullable=True)
    allergens = Column(JSON, nullable=False, default=list)
    calories = Column(Integer, nullable=True)
    prep_time = Column(Integer, nullable=True)  # minutes
    max_quantity = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<MenuItem id={self.id} name={self.name}>"
