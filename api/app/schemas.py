# schemas.py

"""Pydantic models for API payloads and responses."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain import OrderType


class OrderLineIn(BaseModel):
    """One menu item requested on an order or additional KOT."""

    menu_item_id: int
    qty: int = Field(gt=0)
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    """Input schema for opening a new order."""

    type: OrderType
    items: List[OrderLineIn] = []
    table_id: Optional[int] = None
    customer_id: Optional[str] = None
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    guest_count: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None


class AppendItemsIn(BaseModel):
    items: List[OrderLineIn] = Field(min_length=1)


class StatusIn(BaseModel):
    status: str


class DiscountIn(BaseModel):
    discount: Decimal = Field(ge=0)


class SettleIn(BaseModel):
    """Payment details captured when a bill is settled."""

    method: str
    amount: Optional[Decimal] = None
    reference: Optional[str] = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    name_snapshot: str
    price_snapshot: float
    qty: int
    line_total: float
    status: str
    notes: Optional[str] = None
    kot_batch: int


class OrderOut(BaseModel):
    """Order representation returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: int
    type: str
    status: str
    table_id: Optional[int] = None
    customer_id: Optional[str] = None
    guest_count: Optional[int] = None
    subtotal: float
    cgst: float
    sgst: float
    tax: float
    discount: float
    total: float
    payment_method: Optional[str] = None
    paid_amount: Optional[float] = None
    created_at: datetime
    settled_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class TableOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: int
    section: str
    capacity: int
    status: str
    guest_count: Optional[int] = None
    occupied_since: Optional[datetime] = None
    current_order_id: Optional[int] = None


def order_out(order) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


def item_out(item) -> dict:
    return OrderItemOut.model_validate(item).model_dump(mode="json")


def table_out(table) -> dict:
    return TableOut.model_validate(table).model_dump(mode="json")
