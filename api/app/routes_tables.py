"""Floor view routes: table listing, section summary and table upkeep."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .deps.tenant import get_session_from_path, get_tenant_context
from .domain import TenantContext
from .schemas import table_out
from .services import order_lifecycle, table_occupancy
from .services.projection_cache import TABLE_SUMMARY, projection_cache
from .utils.responses import ok

router = APIRouter(prefix="/api/outlet/{organization_id}")


@router.get("/tables")
async def list_tables(
    section: Optional[str] = None,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    tables = await order_lifecycle.list_tables(session, ctx, section)
    return ok([table_out(table) for table in tables])


@router.get("/tables/summary")
async def section_summary(
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Free versus total tables per section."""

    async def _build() -> dict:
        tables = await order_lifecycle.list_tables(session, ctx)
        return dict(table_occupancy.section_summary(tables))

    summary = await projection_cache.get_or_build(
        ctx.organization_id, TABLE_SUMMARY, _build
    )
    return ok(summary)


@router.post("/tables/reconcile")
async def reconcile_tables(
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Release tables still bound to closed or missing orders."""
    repaired = await order_lifecycle.reconcile_tables(session, ctx)
    return ok({"released": repaired})


@router.post("/tables/{table_id}/free")
async def free_table(
    table_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    table = await order_lifecycle.free_table(session, ctx, table_id)
    return ok(table_out(table))


@router.post("/tables/{table_id}/reserve")
async def reserve_table(
    table_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    table = await order_lifecycle.reserve_table(session, ctx, table_id)
    return ok(table_out(table))


@router.delete("/tables/{table_id}/reserve")
async def cancel_reservation(
    table_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Release a reservation hold, e.g. after a no-show."""
    table = await order_lifecycle.cancel_reservation(session, ctx, table_id)
    return ok(table_out(table))
