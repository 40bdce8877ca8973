"""Service layer for the order core."""

from . import dashboard, kds_service, order_lifecycle, projection_cache, table_occupancy

__all__ = [
    "dashboard",
    "kds_service",
    "order_lifecycle",
    "projection_cache",
    "table_occupancy",
]
