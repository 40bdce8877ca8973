"""SQLAlchemy-backed repository helpers for orders.

These helpers only read and stage rows on an ``AsyncSession``; committing,
rolling back and publishing change events is left to the lifecycle service
so that one user action maps onto exactly one transaction. Order items
snapshot the menu name and price so that historical bills are retained even
if the menu changes later.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..domain import ItemStatus, OrderStatus, TenantContext, ValidationError
from ..models_tenant import MenuItem, Order, OrderItem
from ..tax.gst_engine import line_total
from . import TenantGuard

OPEN_STATUSES = [
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.SERVED.value,
]


async def next_order_number(session: AsyncSession, organization_id: str) -> int:
    """Return the next human-facing order number for ``organization_id``."""

    result = await session.execute(
        select(func.max(Order.order_number)).where(
            Order.organization_id == organization_id
        )
    )
    current = result.scalar_one_or_none()
    return (current or 0) + 1


async def snapshot_menu(
    session: AsyncSession, organization_id: str, lines: Iterable[Mapping]
) -> dict[int, MenuItem]:
    """Fetch the menu items referenced by ``lines`` keyed by id."""

    item_ids = {int(line["menu_item_id"]) for line in lines}
    if not item_ids:
        return {}
    result = await session.execute(
        select(MenuItem).where(
            MenuItem.id.in_(item_ids), MenuItem.organization_id == organization_id
        )
    )
    return {item.id: item for item in result.scalars()}


def build_items(
    menu: Mapping[int, MenuItem],
    lines: Iterable[Mapping],
    *,
    batch: int,
    now: datetime,
) -> List[OrderItem]:
    """Validate ``lines`` and turn them into new ``OrderItem`` rows.

    Each entry in ``lines`` must contain ``menu_item_id`` and ``qty`` and may
    carry a free-text ``notes`` preparation hint. The current menu price is
    snapshotted into the item.
    """

    items: List[OrderItem] = []
    for line in lines:
        qty = line.get("qty")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError(
                f"quantity must be a positive integer, got {qty!r}", "INVALID_QUANTITY"
            )
        menu_item = menu.get(int(line["menu_item_id"]))
        if menu_item is None:
            raise ValidationError(
                f"menu item {line['menu_item_id']!r} not found", "MENU_ITEM_NOT_FOUND"
            )
        if not menu_item.is_available:
            raise ValidationError(
                f"menu item {menu_item.name!r} is unavailable", "MENU_ITEM_UNAVAILABLE"
            )
        items.append(
            OrderItem(
                menu_item_id=menu_item.id,
                name_snapshot=menu_item.name,
                price_snapshot=menu_item.price,
                qty=qty,
                line_total=line_total(qty, menu_item.price),
                status=ItemStatus.NEW.value,
                notes=line.get("notes"),
                kot_batch=batch,
                created_at=now,
                updated_at=now,
            )
        )
    return items


async def load_order(
    session: AsyncSession, ctx: TenantContext, order_id: int
) -> Order:
    """Return ``order_id`` with its items, scoped to ``ctx``."""

    order = await session.get(Order, order_id)
    TenantGuard.assert_tenant(order, ctx, "order", order_id)
    return order


async def load_item(
    session: AsyncSession, ctx: TenantContext, item_id: int
) -> OrderItem:
    """Return order item ``item_id`` together with its parent order."""

    result = await session.execute(
        select(OrderItem)
        .where(OrderItem.id == item_id)
        .options(selectinload(OrderItem.order))
    )
    item = result.scalar_one_or_none()
    TenantGuard.assert_tenant(item.order if item else None, ctx, "order item", item_id)
    return item


async def list_open_orders(
    session: AsyncSession, organization_id: str
) -> List[Order]:
    """Return all non-terminal orders oldest first."""

    result = await session.execute(
        select(Order)
        .where(
            Order.organization_id == organization_id,
            Order.status.in_(OPEN_STATUSES),
        )
        .order_by(Order.created_at, Order.id)
    )
    return list(result.scalars())


async def list_orders_since(
    session: AsyncSession, organization_id: str, since: datetime
) -> List[Order]:
    """Return orders created at or after ``since``, newest first."""

    result = await session.execute(
        select(Order)
        .where(Order.organization_id == organization_id, Order.created_at >= since)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars())


async def load_orders_by_ids(
    session: AsyncSession, order_ids: Iterable[int]
) -> dict[int, Order]:
    ids = {oid for oid in order_ids if oid is not None}
    if not ids:
        return {}
    result = await session.execute(select(Order).where(Order.id.in_(ids)))
    return {order.id: order for order in result.scalars()}


async def open_order_table_ids(
    session: AsyncSession, organization_id: str
) -> set[int]:
    """Return the tables referenced by the organization's open orders."""

    result = await session.execute(
        select(Order.table_id).where(
            Order.organization_id == organization_id,
            Order.status.in_(OPEN_STATUSES),
            Order.table_id.is_not(None),
        )
    )
    return set(result.scalars())
