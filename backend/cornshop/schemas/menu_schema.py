from datetime import datetime
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cornshop.utils.money import to_amount

CATEGORIES = ("appetizers", "mains", "sides", "desserts", "beverages")


class MenuItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str = ""
    price: float
    image: Optional[str] = None
    category: str
    tags: List[str] = Field(default_factory=list)
    in_stock: bool = True
    rating: Optional[float] = None
    review_count: Optional[int] = None
    allergens: List[str] = Field(default_factory=list)
    calories: Optional[int] = None
    prep_time: Optional[int] = None
    max_quantity: Optional[int] = None
    created_at: datetime

    @field_validator("price", mode="before")
    @classmethod
    def _canonical_price(cls, v):
        return to_amount(v)


class MenuFilters(BaseModel):
    category: str = "all"
    search_query: str = ""
    price_range: Tuple[float, float] = (0.0, float("inf"))
    tags: List[str] = Field(default_factory=list)
    in_stock_only: bool = False
    sort_by: Literal["name", "price", "rating", "newest"] = "name"
