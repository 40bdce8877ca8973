"""Kitchen display board built from open orders.

The board is a pure projection: it never mutates its input and is rebuilt
from fresh reads on every request. Given the same orders and the same
``now`` it always returns the same tickets in the same order.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from ..domain import ItemStatus
from ..domain.order_status import is_terminal

logger = logging.getLogger("kds")

NEW = "new"
IN_PROGRESS = "in_progress"
READY = "ready"
COLUMNS = (NEW, IN_PROGRESS, READY)

RUSH = "rush"
NORMAL = "normal"
DEFAULT_RUSH_SECS = 900

_DONE = {ItemStatus.READY.value, ItemStatus.SERVED.value}
_STARTED = {ItemStatus.IN_PROGRESS.value, ItemStatus.READY.value}


class ItemLike(Protocol):
    id: int
    name_snapshot: str
    qty: int
    status: str
    notes: Optional[str]
    kot_batch: int


class TableRef(Protocol):
    number: int
    section: str


class OrderLike(Protocol):
    id: int
    order_number: int
    type: str
    status: str
    created_at: datetime
    items: Sequence[ItemLike]
    table: Optional[TableRef]


@dataclass(frozen=True)
class TicketItem:
    id: int
    name: str
    qty: int
    status: str
    notes: Optional[str]
    kot_batch: int


@dataclass(frozen=True)
class KotTicket:
    """One kitchen ticket per open order."""

    order_id: int
    order_number: int
    order_type: str
    table: Optional[str]
    column: str
    priority: str
    created_at: datetime
    elapsed_secs: int
    latest_batch: int
    has_additional_kot: bool
    items: List[TicketItem] = field(default_factory=list)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def ticket_column(statuses: Iterable[str]) -> str:
    """Aggregate item statuses into a board column."""

    statuses = list(statuses)
    if statuses and all(s in _DONE for s in statuses):
        return READY
    if any(s in _STARTED for s in statuses):
        return IN_PROGRESS
    return NEW


def ticket_priority(
    created_at: datetime, now: datetime, rush_after_secs: int = DEFAULT_RUSH_SECS
) -> str:
    elapsed = (_as_utc(now) - _as_utc(created_at)).total_seconds()
    return RUSH if elapsed > rush_after_secs else NORMAL


def _table_label(order: OrderLike) -> Optional[str]:
    table = getattr(order, "table", None)
    if table is None:
        return None
    return f"{table.section}-{table.number}"


def build_ticket(
    order: OrderLike, now: datetime, rush_after_secs: int = DEFAULT_RUSH_SECS
) -> KotTicket:
    items = list(order.items)
    created_at = _as_utc(order.created_at)
    latest_batch = max(item.kot_batch for item in items)
    return KotTicket(
        order_id=order.id,
        order_number=order.order_number,
        order_type=order.type,
        table=_table_label(order),
        column=ticket_column(item.status for item in items),
        priority=ticket_priority(created_at, now, rush_after_secs),
        created_at=created_at,
        elapsed_secs=max(int((_as_utc(now) - created_at).total_seconds()), 0),
        latest_batch=latest_batch,
        has_additional_kot=latest_batch > 1,
        items=[
            TicketItem(
                id=item.id,
                name=item.name_snapshot,
                qty=item.qty,
                status=item.status,
                notes=item.notes,
                kot_batch=item.kot_batch,
            )
            for item in items
            if item.status != ItemStatus.SERVED.value
        ],
    )


def _sort_key(ticket: KotTicket):
    return (0 if ticket.priority == RUSH else 1, ticket.created_at, ticket.order_id)


def build_board(
    orders: Iterable[OrderLike],
    now: datetime,
    rush_after_secs: int = DEFAULT_RUSH_SECS,
) -> Dict[str, List[KotTicket]]:
    """Group open orders into ``new`` / ``in_progress`` / ``ready`` columns.

    Orders that are completed, cancelled or have no items are skipped.
    Within a column rush tickets come first, then oldest first.
    """

    board: Dict[str, List[KotTicket]] = {column: [] for column in COLUMNS}
    for order in orders:
        if is_terminal(order.status) or not order.items:
            continue
        ticket = build_ticket(order, now, rush_after_secs)
        board[ticket.column].append(ticket)
    for column in COLUMNS:
        board[column].sort(key=_sort_key)
    logger.debug(
        "board built: %s", {column: len(tickets) for column, tickets in board.items()}
    )
    return board


def board_as_dict(board: Dict[str, List[KotTicket]]) -> dict:
    return {column: [t.as_dict() for t in tickets] for column, tickets in board.items()}
