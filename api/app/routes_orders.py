"""Order taking and billing routes for the POS terminals."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .deps.tenant import get_session_from_path, get_tenant_context
from .domain import TenantContext
from .schemas import (
    AppendItemsIn,
    DiscountIn,
    OrderCreate,
    SettleIn,
    StatusIn,
    item_out,
    order_out,
    table_out,
)
from .services import order_lifecycle
from .services.order_lifecycle import PaymentInfo
from .utils.responses import ok

router = APIRouter(prefix="/api/outlet/{organization_id}")


@router.post("/orders", status_code=201)
async def create_order(
    payload: OrderCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Open an order and, for dine-in, seat its table."""
    order = await order_lifecycle.create_order(
        session,
        ctx,
        payload.type.value,
        [line.model_dump() for line in payload.items],
        table_id=payload.table_id,
        customer_id=payload.customer_id,
        discount=payload.discount,
        guest_count=payload.guest_count,
        notes=payload.notes,
    )
    return ok(order_out(order))


@router.get("/orders")
async def list_open_orders(
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    orders = await order_lifecycle.list_open_orders(session, ctx)
    return ok([order_out(order) for order in orders])


@router.get("/orders/{order_id}")
async def get_order(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    return ok(order_out(await order_lifecycle.get_order(session, ctx, order_id)))


@router.post("/orders/{order_id}/items", status_code=201)
async def append_items(
    order_id: int,
    payload: AppendItemsIn,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Send an additional KOT for an open order."""
    items = await order_lifecycle.append_items(
        session, ctx, order_id, [line.model_dump() for line in payload.items]
    )
    order = await order_lifecycle.get_order(session, ctx, order_id)
    return ok({"items": [item_out(item) for item in items], "order": order_out(order)})


@router.patch("/orders/{order_id}/status")
async def transition_order_status(
    order_id: int,
    payload: StatusIn,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    order = await order_lifecycle.transition_order_status(
        session, ctx, order_id, payload.status
    )
    return ok(order_out(order))


@router.post("/orders/{order_id}/discount")
async def apply_discount(
    order_id: int,
    payload: DiscountIn,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    order = await order_lifecycle.apply_discount(
        session, ctx, order_id, payload.discount
    )
    return ok(order_out(order))


@router.post("/orders/{order_id}/bill")
async def request_bill(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    table = await order_lifecycle.request_bill(session, ctx, order_id)
    return ok(table_out(table))


@router.post("/orders/{order_id}/settle")
async def settle_order(
    order_id: int,
    payload: SettleIn,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    """Record payment, complete the order and send the table to cleaning."""
    order = await order_lifecycle.settle_order(
        session,
        ctx,
        order_id,
        PaymentInfo(
            method=payload.method, amount=payload.amount, reference=payload.reference
        ),
    )
    return ok(order_out(order))


@router.patch("/order-items/{item_id}/status")
async def transition_item_status(
    item_id: int,
    payload: StatusIn,
    ctx: TenantContext = Depends(get_tenant_context),
    session: AsyncSession = Depends(get_session_from_path),
) -> dict:
    item = await order_lifecycle.transition_item_status(
        session, ctx, item_id, payload.status
    )
    return ok(item_out(item))
