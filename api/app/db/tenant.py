"""Utilities for tenant-specific database engines.

The DSN template comes from ``postgres_tenant_dsn_template`` in the
application settings (``POSTGRES_TENANT_DSN_TEMPLATE`` in the environment) and
is expected to include a ``{tenant_id}`` placeholder. For example::

    postgresql+asyncpg://u:p@host:5432/tenant_{tenant_id}

Use :func:`build_dsn` to render a DSN for a tenant and :func:`get_engine` to
create an :class:`~sqlalchemy.ext.asyncio.AsyncEngine` for it.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from api.app.obs import add_query_logger
from config import get_settings

logger = logging.getLogger(__name__)


def build_dsn(tenant_id: str) -> str:
    """Return a DSN for ``tenant_id`` based on the configured template.

    Parameters
    ----------
    tenant_id:
        Identifier of the tenant used to substitute ``{tenant_id}`` in the
        template.
    """
    template = get_settings().postgres_tenant_dsn_template
    if not template:
        raise RuntimeError("postgres_tenant_dsn_template is not configured")
    if "{tenant_id}" not in template:
        raise ValueError("Invalid DSN template")
    return template.format(tenant_id=tenant_id)


def get_engine(tenant_id: str) -> AsyncEngine:
    """Create and return an :class:`AsyncEngine` for ``tenant_id``."""
    engine = create_async_engine(build_dsn(tenant_id))
    add_query_logger(engine, tenant_id)
    return engine


@asynccontextmanager
async def get_tenant_session(
    tenant_id: str,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an :class:`AsyncSession` bound to ``tenant_id``'s engine."""

    engine = get_engine(tenant_id)
    sessionmaker = async_sessionmaker(
        engine, expire_on_commit=False, class_=AsyncSession
    )
    try:
        async with sessionmaker() as session:
            yield session
    finally:
        await engine.dispose()


async def run_tenant_migrations(tenant_id: str) -> None:
    """Run Alembic migrations for ``tenant_id``."""

    engine: AsyncEngine | None = None
    try:
        dsn = build_dsn(tenant_id)
        engine = create_async_engine(dsn)

        cfg = Config()
        cfg.set_main_option(
            "script_location",
            str(Path(__file__).resolve().parents[2] / "alembic_tenant"),
        )
        cfg.set_main_option("sqlalchemy.url", dsn)
        cfg.attributes["engine"] = engine

        await asyncio.to_thread(command.upgrade, cfg, "head")
    except Exception as exc:  # pragma: no cover - runtime errors
        logger.error("Failed to run migrations for %s: %s", tenant_id, exc)
        raise
    finally:
        if engine is not None:
            await engine.dispose()


__all__ = [
    "build_dsn",
    "get_engine",
    "get_tenant_session",
    "run_tenant_migrations",
]
