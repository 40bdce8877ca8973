"""SQLAlchemy helpers for dining tables."""

from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain import TenantContext
from ..models_tenant import RestaurantTable
from . import TenantGuard


async def load_table(
    session: AsyncSession, ctx: TenantContext, table_id: int
) -> RestaurantTable:
    """Return table ``table_id`` scoped to ``ctx``."""

    table = await session.get(RestaurantTable, table_id)
    TenantGuard.assert_tenant(table, ctx, "table", table_id)
    return table


async def list_tables(
    session: AsyncSession, organization_id: str, section: str | None = None
) -> List[RestaurantTable]:
    """Return the organization's tables ordered by section and number."""

    query = select(RestaurantTable).where(
        RestaurantTable.organization_id == organization_id
    )
    if section:
        query = query.where(RestaurantTable.section == section)
    result = await session.execute(
        query.order_by(RestaurantTable.section, RestaurantTable.number)
    )
    return list(result.scalars())
