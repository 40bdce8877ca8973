"""Tenant-specific database models.

These models describe the per-tenant schema used by the application. They are
kept isolated from any application wiring so that they can be used in tests or
migrations independently."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from .domain import ItemStatus, OrderStatus, TableStatus

Base = declarative_base()

ZERO = Decimal("0.00")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MenuItem(Base):
    """Menu catalog entries; read-only for the order workflow."""

    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    preparation_time = Column(Integer, nullable=False, default=15)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class RestaurantTable(Base):
    """Physical dining tables and their current occupancy."""

    __tablename__ = "restaurant_tables"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "section", "number", name="uq_table_section_number"
        ),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    number = Column(Integer, nullable=False)
    section = Column(String, nullable=False, default="Main")
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(String, nullable=False, default=TableStatus.FREE.value)
    guest_count = Column(Integer, nullable=True)
    occupied_since = Column(DateTime(timezone=True), nullable=True)
    # Plain column: the order row references the table, not the other way.
    current_order_id = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Order(Base):
    """Customer orders with their financial snapshot."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("organization_id", "order_number", name="uq_order_number"),
    )

    id = Column(Integer, primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    location_id = Column(String, nullable=True)
    order_number = Column(Integer, nullable=False)
    type = Column(String, nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    table_id = Column(Integer, ForeignKey("restaurant_tables.id"), nullable=True)
    customer_id = Column(String, nullable=True)
    created_by = Column(String, nullable=True)
    guest_count = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False, default=ZERO)
    cgst = Column(Numeric(10, 2), nullable=False, default=ZERO)
    sgst = Column(Numeric(10, 2), nullable=False, default=ZERO)
    tax = Column(Numeric(10, 2), nullable=False, default=ZERO)
    discount = Column(Numeric(10, 2), nullable=False, default=ZERO)
    total = Column(Numeric(10, 2), nullable=False, default=ZERO)

    payment_method = Column(String, nullable=True)
    paid_amount = Column(Numeric(10, 2), nullable=True)
    payment_reference = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    settled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    table = relationship("RestaurantTable", lazy="selectin")


class OrderItem(Base):
    """Line items belonging to an order."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    name_snapshot = Column(String, nullable=False)
    price_snapshot = Column(Numeric(10, 2), nullable=False)
    qty = Column(Integer, nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default=ItemStatus.NEW.value)
    notes = Column(Text, nullable=True)
    kot_batch = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    order = relationship("Order", back_populates="items")
