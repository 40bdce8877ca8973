"""Dependency helpers for tenant resolution."""

from typing import AsyncGenerator

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.tenant import get_tenant_session
from ..domain import TenantContext


def get_tenant_context(
    organization_id: str,
    x_location_id: str | None = Header(default=None),
    x_staff_id: str | None = Header(default=None),
) -> TenantContext:
    """Build the :class:`TenantContext` for a request.

    Args:
        organization_id: Path parameter naming the outlet's organization.
        x_location_id: Optional ``X-Location-ID`` header.
        x_staff_id: Optional ``X-Staff-ID`` header identifying the operator.

    Raises:
        HTTPException: If the organization id is blank.
    """
    if not organization_id.strip():
        raise HTTPException(400, "Missing organization id")
    return TenantContext(
        organization_id=organization_id,
        location_id=x_location_id,
        staff_id=x_staff_id,
    )


async def get_session_from_path(
    organization_id: str,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on the organization's tenant database."""
    async with get_tenant_session(organization_id) as session:
        yield session
