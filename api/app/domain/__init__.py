"""Domain models and helpers."""

from .context import TenantContext
from .errors import LifecycleError, NotFoundError, PersistenceError, ValidationError
from .item_status import ItemStatus
from .order_status import TRANSITIONS, OrderStatus, OrderType, can_transition
from .table_status import TableStatus

__all__ = [
    "ItemStatus",
    "LifecycleError",
    "NotFoundError",
    "OrderStatus",
    "OrderType",
    "PersistenceError",
    "TRANSITIONS",
    "TableStatus",
    "TenantContext",
    "ValidationError",
    "can_transition",
]
