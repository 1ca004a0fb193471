from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cornshop.utils.money import PriceLike, to_amount


class DisplayMetadata(BaseModel):
    """Presentation-only attachment; never used in calculations."""

    image: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


class CartLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    unit_price: float = Field(alias="unitPrice")
    quantity: int = Field(default=1, ge=1)
    max_quantity: Optional[int] = Field(default=None, ge=1, alias="maxQuantity")
    display: Optional[DisplayMetadata] = None

    @field_validator("unit_price", mode="before")
    @classmethod
    def _canonical_price(cls, v: PriceLike) -> float:
        return to_amount(v)


class CartTotals(BaseModel):
    subtotal: float
    delivery_fee: float
    tax: float
    total: float


class CartSummary(CartTotals):
    item_count: int
    unique_item_count: int


class StoredCart(BaseModel):
    """Shape written to a storage slot."""

    items: List[CartLineItem]
    total: float = 0.0
    last_updated: datetime = Field(alias="lastUpdated")

    model_config = ConfigDict(populate_by_name=True)


class WishlistEntry(BaseModel):
    """A saved-for-someday product. Price is the catalog price when it was added."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    price: float
    display: Optional[DisplayMetadata] = None
    date_added: datetime = Field(alias="dateAdded")

    @field_validator("price", mode="before")
    @classmethod
    def _canonical_price(cls, v: PriceLike) -> float:
        return to_amount(v)


class StoredWishlist(BaseModel):
    items: List[WishlistEntry]


class AddItemIn(BaseModel):
    item_id: str
    qty: int = Field(default=1, gt=0)


class UpdateQuantityIn(BaseModel):
    qty: int


class LoginIn(BaseModel):
    user_id: str


class WishlistAddIn(BaseModel):
    item_id: str


class CartLineOut(BaseModel):
    id: str
    name: str
    unit_price: float
    quantity: int
    max_quantity: Optional[int] = None
    line_total: float
    display: Optional[DisplayMetadata] = None


class CartOut(BaseModel):
    session_id: str
    user_id: Optional[str] = None
    items: List[CartLineOut]
    summary: CartSummary
    formatted_total: str
    has_saved_cart: bool = False


class WishlistOut(BaseModel):
    user_id: str
    items: List[WishlistEntry]
    count: int
