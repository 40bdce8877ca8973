"""Dining table states and the moves between them."""

from __future__ import annotations

from enum import Enum


class TableStatus(str, Enum):
    """Lifecycle states for a dining table."""

    FREE = "free"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    BILL = "bill"
    CLEANING = "cleaning"


TRANSITIONS: dict[TableStatus, list[TableStatus]] = {
    TableStatus.FREE: [TableStatus.OCCUPIED, TableStatus.RESERVED],
    TableStatus.RESERVED: [TableStatus.OCCUPIED, TableStatus.FREE],
    TableStatus.OCCUPIED: [TableStatus.BILL, TableStatus.CLEANING],
    TableStatus.BILL: [TableStatus.CLEANING],
    TableStatus.CLEANING: [TableStatus.FREE],
}


def can_transition(src: TableStatus, dst: TableStatus) -> bool:
    """Return ``True`` if a table can move from ``src`` to ``dst``."""

    return dst in TRANSITIONS.get(src, [])
