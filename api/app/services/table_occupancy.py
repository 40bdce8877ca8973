"""Table occupancy tracking.

Functions here mutate loaded :class:`~api.app.models_tenant.RestaurantTable`
rows in place and never touch the session; the lifecycle service decides
when to commit. Every function validates first and only then writes, so a
rejected move leaves the table exactly as it was.

Invariant kept by every move: ``status == occupied`` if and only if
``current_order_id`` is set, and ``occupied_since`` is only present while
occupied.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Collection, Iterable, Mapping, Protocol

from ..domain import TableStatus, ValidationError
from ..domain.order_status import is_terminal
from ..domain.table_status import TRANSITIONS, can_transition

logger = logging.getLogger("tables")

# Tables that may be sent (or kept) in cleaning.
RELEASABLE = {
    src for src, dsts in TRANSITIONS.items() if TableStatus.CLEANING in dsts
} | {TableStatus.CLEANING}


class TableLike(Protocol):
    id: int
    section: str
    status: str
    guest_count: int | None
    occupied_since: datetime | None
    current_order_id: int | None


class HasStatus(Protocol):
    id: int
    status: str


def _status(table: TableLike) -> TableStatus:
    return TableStatus(table.status)


def occupy(
    table: TableLike,
    order_id: int,
    guest_count: int | None,
    now: datetime,
) -> bool:
    """Bind ``order_id`` to ``table``.

    Returns ``False`` when the table is already bound to the same order (no
    change), ``True`` after a fresh binding.
    """

    status = _status(table)
    if status is TableStatus.OCCUPIED:
        if table.current_order_id == order_id:
            return False
        raise ValidationError(
            f"table {table.id} is occupied by order {table.current_order_id}",
            "TABLE_OCCUPIED",
        )
    if not can_transition(status, TableStatus.OCCUPIED):
        raise ValidationError(
            f"table {table.id} is {status.value} and cannot be seated",
            "TABLE_UNAVAILABLE",
        )
    if guest_count is not None and guest_count <= 0:
        raise ValidationError("guest count must be positive", "INVALID_GUEST_COUNT")

    table.status = TableStatus.OCCUPIED.value
    table.current_order_id = order_id
    table.guest_count = guest_count
    table.occupied_since = now
    logger.info("table %s occupied by order %s", table.id, order_id)
    return True


def release(table: TableLike) -> None:
    """Unbind the table's order and send it to cleaning."""

    status = _status(table)
    if status not in RELEASABLE:
        raise ValidationError(
            f"table {table.id} is {status.value}; nothing to release",
            "TABLE_NOT_IN_USE",
        )
    table.status = TableStatus.CLEANING.value
    table.current_order_id = None
    table.guest_count = None
    table.occupied_since = None
    logger.info("table %s released for cleaning", table.id)


def mark_bill(table: TableLike) -> None:
    """Flag an occupied table as waiting for its bill.

    The order reference is dropped here; the order keeps its own
    ``table_id`` so settlement can still find the table.
    """

    status = _status(table)
    if not can_transition(status, TableStatus.BILL):
        raise ValidationError(
            f"table {table.id} is {status.value}; only occupied tables get a bill",
            "TABLE_NOT_OCCUPIED",
        )
    table.status = TableStatus.BILL.value
    table.current_order_id = None
    table.occupied_since = None


def mark_free(table: TableLike) -> None:
    """Finish cleaning and make the table available again.

    Reservations are dropped through :func:`cancel_reservation` instead.
    """

    status = _status(table)
    if status is not TableStatus.CLEANING:
        raise ValidationError(
            f"table {table.id} is {status.value}; only cleaning tables can be freed",
            "TABLE_NOT_CLEANING",
        )
    table.status = TableStatus.FREE.value
    table.guest_count = None
    table.occupied_since = None
    table.current_order_id = None


def reserve(table: TableLike) -> None:
    """Hold a free table for an upcoming reservation."""

    status = _status(table)
    if not can_transition(status, TableStatus.RESERVED):
        raise ValidationError(
            f"table {table.id} is {status.value}; only free tables can be reserved",
            "TABLE_UNAVAILABLE",
        )
    table.status = TableStatus.RESERVED.value


def cancel_reservation(table: TableLike) -> None:
    """Give a held table back to the floor (no-show or cancelled booking)."""

    status = _status(table)
    if status is not TableStatus.RESERVED:
        raise ValidationError(
            f"table {table.id} is {status.value}; it holds no reservation",
            "TABLE_NOT_RESERVED",
        )
    table.status = TableStatus.FREE.value
    logger.info("reservation on table %s cancelled", table.id)


def section_summary(tables: Iterable[TableLike]) -> "OrderedDict[str, dict]":
    """Count free and total tables per section, sections sorted by name."""

    counts: dict[str, dict] = {}
    for table in tables:
        entry = counts.setdefault(table.section, {"free": 0, "total": 0})
        entry["total"] += 1
        if _status(table) is TableStatus.FREE:
            entry["free"] += 1
    return OrderedDict(sorted(counts.items()))


def find_stale(
    tables: Iterable[TableLike],
    orders_by_id: Mapping[int, HasStatus],
    seated_table_ids: Collection[int] = (),
) -> list[TableLike]:
    """Return tables left behind by a missing or closed order.

    A table is stale when it claims an order that is missing or terminal, or
    when it waits for a bill (``bill`` drops the order reference) and no open
    order lists it in ``seated_table_ids``.
    """

    stale = []
    for table in tables:
        status = _status(table)
        if status is TableStatus.BILL and table.current_order_id is None:
            if table.id not in seated_table_ids:
                stale.append(table)
            continue
        claims = status is TableStatus.OCCUPIED or table.current_order_id
        if not claims:
            continue
        order = orders_by_id.get(table.current_order_id)
        if order is None or is_terminal(order.status):
            stale.append(table)
    return stale
