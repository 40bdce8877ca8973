"""Front-of-house counters shown on the owner dashboard."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from ..domain import ItemStatus, OrderStatus, TableStatus
from ..domain.order_status import is_terminal
from ..tax.gst_engine import money

# Served orders count as sold before the bill is settled.
_SOLD = {OrderStatus.COMPLETED.value, OrderStatus.SERVED.value}
_PENDING = {OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value}


def dashboard_stats(todays_orders: Iterable, tables: Iterable) -> dict:
    """Summarise today's orders and the current floor.

    ``todays_orders`` must already be restricted to the business day.
    """

    orders = list(todays_orders)
    tables = list(tables)
    sold = [o for o in orders if o.status in _SOLD]
    sales = sum((Decimal(o.total) for o in sold), Decimal("0"))
    average = money(sales / len(sold)) if sold else Decimal("0.00")
    active_items = sum(
        1
        for o in orders
        if not is_terminal(o.status)
        for item in o.items
        if item.status != ItemStatus.SERVED.value
    )
    return {
        "today_sales": float(money(sales)),
        "orders_today": len(orders),
        "average_order_value": float(average),
        "tables_occupied": sum(
            1 for t in tables if t.status == TableStatus.OCCUPIED.value
        ),
        "total_tables": len(tables),
        "pending_orders": sum(1 for o in orders if o.status in _PENDING),
        "active_kot_items": active_items,
    }
