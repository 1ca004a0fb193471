from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CustomerInfo(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=3)
    address: Optional[str] = None


class CheckoutIn(BaseModel):
    customer_info: CustomerInfo
    delivery_method: Literal["delivery", "pickup"] = "delivery"
    payment_method: Literal["card", "cash", "ewallet"]
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    # mock gateway options, e.g. {"token": "...", "force_decline": true}
    payment_details: dict = Field(default_factory=dict)


class StatusUpdateIn(BaseModel):
    status: str
    message: Optional[str] = None
    location: Optional[str] = None


class CancelIn(BaseModel):
    reason: Optional[str] = None


class OrderLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    name: str
    qty: int
    unit_price: float
    image: Optional[str] = None


class TrackingEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    message: str
    location: Optional[str] = None
    created_at: datetime


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    tracking_number: str
    user_id: Optional[str] = None
    status: str
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    formatted_total: str
    customer_info: dict
    delivery_address: Optional[str] = None
    delivery_method: str
    payment_method: str
    notes: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    created_at: datetime
    lines: List[OrderLineOut]
    events: List[TrackingEventOut]


class TrackingOut(BaseModel):
    order_number: str
    status: str
    progress: float
    estimated_delivery: Optional[datetime] = None
    timeline: List[TrackingEventOut]
