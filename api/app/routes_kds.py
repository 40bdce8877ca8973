"""Kitchen Display System routes.

The board is derived from open orders on every cache miss; change events
from the lifecycle service drop the cached board so the next read is
fresh. Rush priority depends on the clock, hence the short TTL.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .deps.tenant import get_session_from_path, get_tenant_context
from .domain import TenantContext
from .schemas import StatusIn, order_out
from .services import kds_service, order_lifecycle
from .services.projection_cache import KOT_BOARD, projection_cache
from .utils.responses import ok

router = APIRouter(prefix="/api/outlet/{organization_id}")

BOARD_TTL_SECS = 5


@router.get("/kds/board")
async def kot_board(
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Return KOT tickets grouped into new / in_progress / ready."""

    async def _build() -> dict:
        orders = await order_lifecycle.list_open_orders(session, ctx)
        board = kds_service.build_board(
            orders, datetime.now(timezone.utc), get_settings().kot_rush_secs
        )
        return kds_service.board_as_dict(board)

    board = await projection_cache.get_or_build(
        ctx.organization_id, KOT_BOARD, _build, ttl=BOARD_TTL_SECS
    )
    return ok(board)


@router.post("/kds/{order_id}/advance")
async def advance_ticket(
    order_id: int,
    payload: StatusIn,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Move every item of a ticket to the requested column."""
    order = await order_lifecycle.advance_ticket(session, ctx, order_id, payload.status)
    return ok(order_out(order))
