"""Order, order item and table mutations.

This is the only module that writes orders, order items and tables. Each
public coroutine maps one user action onto one store transaction:

* everything is staged on the given ``AsyncSession`` and committed once;
* any failure rolls the whole transaction back, so an order can never be
  persisted without its items or its table binding;
* change events are published on the :class:`~api.app.events.EventBus`
  only after the commit succeeded.

Store failures surface as :class:`~api.app.domain.PersistenceError`;
precondition failures as :class:`~api.app.domain.ValidationError`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator, Iterable, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from ..domain import (
    ItemStatus,
    OrderStatus,
    OrderType,
    PersistenceError,
    TableStatus,
    TenantContext,
    ValidationError,
    can_transition,
)
from ..domain.item_status import can_advance, rank
from ..domain.order_status import is_terminal
from ..events import ORDER_ITEMS, ORDERS, TABLES, ChangeEvent, EventBus, event_bus
from ..models_tenant import Order, OrderItem, RestaurantTable
from ..repos_sqlalchemy import orders_repo_sql, tables_repo_sql
from ..tax.gst_engine import OrderTotals, compute_totals, money
from . import table_occupancy

logger = logging.getLogger("orders")

PAYMENT_METHODS = {"cash", "card", "upi", "wallet"}


@dataclass(frozen=True)
class PaymentInfo:
    """How an order is being paid."""

    method: str
    amount: Optional[Decimal] = None
    reference: Optional[str] = None


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def _parse(enum_cls, value, code: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"unknown {enum_cls.__name__} {value!r}", code) from None


@asynccontextmanager
async def _unit_of_work(
    session: AsyncSession, ctx: TenantContext, bus: EventBus | None
) -> AsyncIterator[List[ChangeEvent]]:
    """Commit staged work once, roll back on any error, then publish."""

    changes: List[ChangeEvent] = []
    try:
        yield changes
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("store rejected change: %s", exc, extra=ctx.log_extra())
        raise PersistenceError("the store rejected the change") from exc
    except Exception:
        await session.rollback()
        raise
    if bus is not None and changes:
        await bus.publish_all(changes)


def _event(ctx: TenantContext, entity: str, entity_id: int, kind: str = "update"):
    return ChangeEvent(entity, entity_id, kind, ctx.organization_id)


def _totals_for(items: Iterable[OrderItem], discount) -> OrderTotals:
    settings = get_settings()
    return compute_totals(
        ({"qty": item.qty, "price": item.price_snapshot} for item in items),
        discount,
        cgst_rate=settings.cgst_rate,
        sgst_rate=settings.sgst_rate,
    )


def _apply_totals(order: Order, totals: OrderTotals) -> None:
    order.subtotal = totals.subtotal
    order.cgst = totals.cgst
    order.sgst = totals.sgst
    order.tax = totals.tax
    order.discount = totals.discount
    order.total = totals.total


def _ensure_open(order: Order) -> None:
    if is_terminal(order.status):
        raise ValidationError(
            f"order {order.id} is {order.status}", "ORDER_CLOSED"
        )


async def create_order(
    session: AsyncSession,
    ctx: TenantContext,
    order_type: str,
    lines: Iterable[Mapping] = (),
    *,
    table_id: int | None = None,
    customer_id: str | None = None,
    discount=0,
    guest_count: int | None = None,
    notes: str | None = None,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> Order:
    """Create an order, its first KOT batch and, optionally, seat a table.

    ``lines`` may be empty (pre-seating a table). Each line needs
    ``menu_item_id`` and ``qty`` and may carry ``notes``.
    """

    now = _now(now)
    kind = _parse(OrderType, order_type, "INVALID_ORDER_TYPE")
    lines = list(lines or [])
    if kind is OrderType.DINE_IN and table_id is None:
        logger.warning("dine-in order created without a table", extra=ctx.log_extra())

    async with _unit_of_work(session, ctx, bus) as changes:
        menu = await orders_repo_sql.snapshot_menu(session, ctx.organization_id, lines)
        items = orders_repo_sql.build_items(menu, lines, batch=1, now=now)
        table = None
        if table_id is not None:
            table = await tables_repo_sql.load_table(session, ctx, table_id)

        order = Order(
            organization_id=ctx.organization_id,
            location_id=ctx.location_id,
            order_number=await orders_repo_sql.next_order_number(
                session, ctx.organization_id
            ),
            type=kind.value,
            status=OrderStatus.PENDING.value,
            customer_id=customer_id,
            created_by=ctx.staff_id,
            guest_count=guest_count,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order.table = table
        order.items = items
        _apply_totals(order, _totals_for(items, discount))
        session.add(order)
        await session.flush()

        if table is not None:
            table_occupancy.occupy(table, order.id, guest_count, now)
            changes.append(_event(ctx, TABLES, table.id))
        changes.append(_event(ctx, ORDERS, order.id, "insert"))
        changes.extend(_event(ctx, ORDER_ITEMS, item.id, "insert") for item in items)

    logger.info(
        "order %s (#%s) created with %d items total=%s",
        order.id,
        order.order_number,
        len(items),
        order.total,
        extra=ctx.log_extra(),
    )
    return order


async def append_items(
    session: AsyncSession,
    ctx: TenantContext,
    order_id: int,
    lines: Iterable[Mapping],
    *,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> List[OrderItem]:
    """Send an additional KOT: append a new batch of items to an open order.

    Totals are recomputed straight away; the table is left alone.
    """

    now = _now(now)
    lines = list(lines or [])
    if not lines:
        raise ValidationError("an additional KOT needs at least one item", "EMPTY_KOT")

    async with _unit_of_work(session, ctx, bus) as changes:
        order = await orders_repo_sql.load_order(session, ctx, order_id)
        _ensure_open(order)
        menu = await orders_repo_sql.snapshot_menu(session, ctx.organization_id, lines)
        batch = max((item.kot_batch for item in order.items), default=0) + 1
        items = orders_repo_sql.build_items(menu, lines, batch=batch, now=now)
        order.items.extend(items)
        _apply_totals(order, _totals_for(order.items, order.discount))
        order.updated_at = now
        await session.flush()

        changes.append(_event(ctx, ORDERS, order.id))
        changes.extend(_event(ctx, ORDER_ITEMS, item.id, "insert") for item in items)

    logger.info(
        "order %s KOT #%d sent with %d items", order_id, batch, len(items),
        extra=ctx.log_extra(),
    )
    return items


async def transition_item_status(
    session: AsyncSession,
    ctx: TenantContext,
    item_id: int,
    new_status: str,
    *,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> OrderItem:
    """Move one item forward along new -> in_progress -> ready -> served."""

    target = _parse(ItemStatus, new_status, "INVALID_ITEM_STATUS")
    async with _unit_of_work(session, ctx, bus) as changes:
        item = await orders_repo_sql.load_item(session, ctx, item_id)
        _ensure_open(item.order)
        current = ItemStatus(item.status)
        if current is target:
            return item
        if not can_advance(current, target):
            raise ValidationError(
                f"item {item_id} cannot go from {current.value} to {target.value}",
                "INVALID_TRANSITION",
            )
        item.status = target.value
        item.updated_at = _now(now)
        changes.append(_event(ctx, ORDER_ITEMS, item.id))

    logger.info(
        "item %s %s -> %s", item_id, current.value, target.value, extra=ctx.log_extra()
    )
    return item


async def advance_ticket(
    session: AsyncSession,
    ctx: TenantContext,
    order_id: int,
    new_status: str,
    *,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> Order:
    """Move a whole KOT to ``new_status``.

    Items behind ``new_status`` are advanced; items already at or past it
    keep their status.
    """

    target = _parse(ItemStatus, new_status, "INVALID_ITEM_STATUS")
    now = _now(now)
    async with _unit_of_work(session, ctx, bus) as changes:
        order = await orders_repo_sql.load_order(session, ctx, order_id)
        _ensure_open(order)
        for item in order.items:
            if rank(item.status) < rank(target):
                item.status = target.value
                item.updated_at = now
                changes.append(_event(ctx, ORDER_ITEMS, item.id))

    logger.info(
        "order %s ticket advanced to %s (%d items)",
        order_id,
        target.value,
        len(changes),
        extra=ctx.log_extra(),
    )
    return order


async def transition_order_status(
    session: AsyncSession,
    ctx: TenantContext,
    order_id: int,
    new_status: str,
    *,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> Order:
    """Set an order's status; items and table are not touched."""

    target = _parse(OrderStatus, new_status, "INVALID_ORDER_STATUS")
    async with _unit_of_work(session, ctx, bus) as changes:
        order = await orders_repo_sql.load_order(session, ctx, order_id)
        current = OrderStatus(order.status)
        if current is target:
            return order
        if not can_transition(current, target):
            raise ValidationError(
                f"order {order_id} cannot go from {current.value} to {target.value}",
                "INVALID_TRANSITION",
            )
        order.status = target.value
        order.updated_at = _now(now)
        changes.append(_event(ctx, ORDERS, order.id))

    logger.info(
        "order %s %s -> %s", order_id, current.value, target.value,
        extra=ctx.log_extra(),
    )
    return order


async def apply_discount(
    session: AsyncSession,
    ctx: TenantContext,
    order_id: int,
    discount,
    *,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> Order:
    """Replace the order's discount and recompute its totals."""

    async with _unit_of_work(session, ctx, bus) as changes:
        order = await orders_repo_sql.load_order(session, ctx, order_id)
        _ensure_open(order)
        _apply_totals(order, _totals_for(order.items, discount))
        order.updated_at = _now(now)
        changes.append(_event(ctx, ORDERS, order.id))
    return order


async def request_bill(
    session: AsyncSession,
    ctx: TenantContext,
    order_id: int,
    *,
    bus: EventBus | None = event_bus,
) -> RestaurantTable:
    """Flag the order's table as waiting for the bill."""

    async with _unit_of_work(session, ctx, bus) as changes:
        order = await orders_repo_sql.load_order(session, ctx, order_id)
        _ensure_open(order)
        if order.table_id is None:
            raise ValidationError(f"order {order_id} has no table", "NO_TABLE")
        table = await tables_repo_sql.load_table(session, ctx, order.table_id)
        if table.current_order_id != order.id:
            raise ValidationError(
                f"table {table.id} is not bound to order {order_id}", "TABLE_NOT_BOUND"
            )
        table_occupancy.mark_bill(table)
        changes.append(_event(ctx, TABLES, table.id))
    return table


async def settle_order(
    session: AsyncSession,
    ctx: TenantContext,
    order_id: int,
    payment: PaymentInfo,
    *,
    bus: EventBus | None = event_bus,
    now: datetime | None = None,
) -> Order:
    """Complete an order against ``payment`` and send its table to cleaning."""

    now = _now(now)
    if payment.method not in PAYMENT_METHODS:
        raise ValidationError(
            f"unsupported payment method {payment.method!r}", "INVALID_PAYMENT_METHOD"
        )

    async with _unit_of_work(session, ctx, bus) as changes:
        order = await orders_repo_sql.load_order(session, ctx, order_id)
        _ensure_open(order)
        totals = _totals_for(order.items, order.discount)
        if not order.items or totals.total <= 0:
            raise ValidationError(f"order {order_id} has nothing to bill", "NOTHING_TO_BILL")
        paid = money(payment.amount) if payment.amount is not None else totals.total
        if paid < totals.total:
            raise ValidationError(
                f"paid {paid} is less than total {totals.total}", "UNDERPAID"
            )

        _apply_totals(order, totals)
        order.status = OrderStatus.COMPLETED.value
        order.settled_at = now
        order.updated_at = now
        order.payment_method = payment.method
        order.paid_amount = paid
        order.payment_reference = payment.reference
        changes.append(_event(ctx, ORDERS, order.id))

        if order.table_id is not None:
            table = await tables_repo_sql.load_table(session, ctx, order.table_id)
            bound = table.current_order_id == order.id
            awaiting_bill = (
                table.status == TableStatus.BILL.value and table.current_order_id is None
            )
            if bound or awaiting_bill:
                table_occupancy.release(table)
                changes.append(_event(ctx, TABLES, table.id))
            else:
                logger.warning(
                    "order %s settled but table %s is bound to %s; table left as is",
                    order_id,
                    table.id,
                    table.current_order_id,
                    extra=ctx.log_extra(),
                )

    logger.info(
        "order %s settled via %s total=%s", order_id, payment.method, order.total,
        extra=ctx.log_extra(),
    )
    return order


async def free_table(
    session: AsyncSession,
    ctx: TenantContext,
    table_id: int,
    *,
    bus: EventBus | None = event_bus,
) -> RestaurantTable:
    """Mark a cleaned table as free."""

    async with _unit_of_work(session, ctx, bus) as changes:
        table = await tables_repo_sql.load_table(session, ctx, table_id)
        table_occupancy.mark_free(table)
        changes.append(_event(ctx, TABLES, table.id))
    return table


async def reserve_table(
    session: AsyncSession,
    ctx: TenantContext,
    table_id: int,
    *,
    bus: EventBus | None = event_bus,
) -> RestaurantTable:
    """Hold a free table for an arriving reservation."""

    async with _unit_of_work(session, ctx, bus) as changes:
        table = await tables_repo_sql.load_table(session, ctx, table_id)
        table_occupancy.reserve(table)
        changes.append(_event(ctx, TABLES, table.id))
    return table


async def cancel_reservation(
    session: AsyncSession,
    ctx: TenantContext,
    table_id: int,
    *,
    bus: EventBus | None = event_bus,
) -> RestaurantTable:
    """Drop a reservation hold and free the table."""

    async with _unit_of_work(session, ctx, bus) as changes:
        table = await tables_repo_sql.load_table(session, ctx, table_id)
        table_occupancy.cancel_reservation(table)
        changes.append(_event(ctx, TABLES, table.id))
    return table


async def reconcile_tables(
    session: AsyncSession,
    ctx: TenantContext,
    *,
    bus: EventBus | None = event_bus,
) -> List[int]:
    """Release tables still claiming a missing or closed order.

    Billed tables carry no order reference, so they are matched against the
    tables of the open orders instead. Returns the ids of the repaired tables.
    """

    async with _unit_of_work(session, ctx, bus) as changes:
        tables = await tables_repo_sql.list_tables(session, ctx.organization_id)
        orders = await orders_repo_sql.load_orders_by_ids(
            session, (t.current_order_id for t in tables)
        )
        seated = await orders_repo_sql.open_order_table_ids(
            session, ctx.organization_id
        )
        for table in table_occupancy.find_stale(tables, orders, seated):
            if TableStatus(table.status) in table_occupancy.RELEASABLE:
                table_occupancy.release(table)
            else:
                table.current_order_id = None
            changes.append(_event(ctx, TABLES, table.id))

    repaired = [event.entity_id for event in changes]
    if repaired:
        logger.warning("released stale tables %s", repaired, extra=ctx.log_extra())
    return repaired


async def get_order(session: AsyncSession, ctx: TenantContext, order_id: int) -> Order:
    return await orders_repo_sql.load_order(session, ctx, order_id)


async def list_open_orders(session: AsyncSession, ctx: TenantContext) -> List[Order]:
    return await orders_repo_sql.list_open_orders(session, ctx.organization_id)


async def list_tables(
    session: AsyncSession, ctx: TenantContext, section: str | None = None
) -> List[RestaurantTable]:
    return await tables_repo_sql.list_tables(session, ctx.organization_id, section)
