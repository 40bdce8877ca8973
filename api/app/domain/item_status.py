"""Fulfilment states for individual order items."""

from __future__ import annotations

from enum import Enum


class ItemStatus(str, Enum):
    """Kitchen progress of a single order line."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    SERVED = "served"


SEQUENCE: tuple[ItemStatus, ...] = (
    ItemStatus.NEW,
    ItemStatus.IN_PROGRESS,
    ItemStatus.READY,
    ItemStatus.SERVED,
)


def rank(status: ItemStatus | str) -> int:
    """Position of ``status`` in the forward-only sequence."""

    return SEQUENCE.index(ItemStatus(status))


def can_advance(src: ItemStatus | str, dst: ItemStatus | str) -> bool:
    """Return ``True`` when ``dst`` lies strictly after ``src``.

    Items never move backwards; skipping forward (``new`` straight to
    ``ready``) is allowed.
    """

    return rank(dst) > rank(src)
