"""Owner dashboard routes."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .deps.tenant import get_session_from_path, get_tenant_context
from .domain import TenantContext
from .repos_sqlalchemy import orders_repo_sql
from .services import order_lifecycle
from .services.dashboard import dashboard_stats
from .services.projection_cache import DASHBOARD, projection_cache
from .utils.responses import ok

router = APIRouter(prefix="/api/outlet/{organization_id}")

STATS_TTL_SECS = 30


def start_of_business_day(now: datetime, tz_name: str) -> datetime:
    """Midnight of ``now``'s local date in ``tz_name``, expressed in UTC."""
    local = now.astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


@router.get("/dashboard/stats")
async def stats(
    force: bool = False,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    since = start_of_business_day(
        datetime.now(timezone.utc), get_settings().business_timezone
    )

    async def _build() -> dict:
        orders = await orders_repo_sql.list_orders_since(
            session, ctx.organization_id, since
        )
        tables = await order_lifecycle.list_tables(session, ctx)
        return dashboard_stats(orders, tables)

    if force:
        return ok(await _build())
    data = await projection_cache.get_or_build(
        ctx.organization_id, DASHBOARD, _build, ttl=STATS_TTL_SECS
    )
    return ok(data)
