from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from cartshare.domain.enums import SharedCartStatus


class CamelModel(BaseModel):
    """Wire models speak camelCase; Python code and storage use snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Create ---

class SharedCartItemIn(CamelModel):
    id: str = Field(..., min_length=1, max_length=120)
    name: str = Field(..., min_length=1, max_length=300)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    customization: Optional[str] = Field(default=None, max_length=1000)
    image: Optional[str] = Field(default=None, max_length=2048)


class CustomerInfoRead(CamelModel):
    name: str
    phone: str
    email: Optional[str] = None
    delivery_date: Optional[date] = None
    notes: Optional[str] = None


class CustomerInfoIn(CustomerInfoRead):
    name: str = Field(..., min_length=3, max_length=200)
    phone: str = Field(..., min_length=10, max_length=40, pattern=r"^[\d\s()+-]+$")
    email: Optional[EmailStr] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    # Checkout forms send blank strings for untouched optional inputs.
    @field_validator("email", "delivery_date", "notes", mode="before")
    @classmethod
    def blank_as_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SharedCartCreate(CamelModel):
    items: Optional[List[SharedCartItemIn]] = None
    customer_info: Optional[CustomerInfoIn] = None
    subtotal: Optional[float] = Field(default=None, ge=0)


class SharedCartCreated(CamelModel):
    success: bool = True
    short_code: str
    url: str
    cart_id: UUID


# --- Read ---

class SnapshotItem(CamelModel):
    product_id: str
    product_name: str
    quantity: int
    price: float
    image: Optional[str] = None
    customization: Optional[str] = None


class CartSnapshot(CamelModel):
    items: List[SnapshotItem]
    subtotal: float


class SharedCartRead(CamelModel):
    id: UUID
    short_code: str
    cart_data: CartSnapshot
    customer_info: Optional[CustomerInfoRead] = None
    status: SharedCartStatus
    effective_status: SharedCartStatus
    views: int
    created_at: datetime
    expires_at: datetime
    url: str
    contact_url: str


class SharedCartSummary(CamelModel):
    id: UUID
    short_code: str
    status: SharedCartStatus
    effective_status: SharedCartStatus
    views: int
    subtotal: float
    item_count: int
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    created_at: datetime
    expires_at: datetime


class SharedCartPage(CamelModel):
    total: int
    limit: int
    offset: int
    items: List[SharedCartSummary] = Field(default_factory=list)


class SharedCartMetrics(CamelModel):
    window_days: int
    total_carts: int
    converted_carts: int
    conversion_rate: float
    total_views: int
    recent: List[SharedCartSummary] = Field(default_factory=list)


# --- Staff mutations ---

class SharedCartStatusUpdate(CamelModel):
    status: SharedCartStatus


class ExpirySweepResult(CamelModel):
    expired: int
