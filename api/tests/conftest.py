"""Shared fixtures for the order core tests."""

from __future__ import annotations

import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from api.app.db import create_test_session  # noqa: E402
from api.app.domain import TenantContext  # noqa: E402
from api.app.events import EventBus  # noqa: E402
from api.tests._outlet import ORG, seed_outlet  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def session_factory():
    """Session factory over a freshly seeded in-memory tenant database."""

    factory, engine = await create_test_session()
    async with factory() as session:
        await seed_outlet(session)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def ctx() -> TenantContext:
    return TenantContext(organization_id=ORG, staff_id="waiter-7")


@pytest.fixture
def bus() -> EventBus:
    return EventBus()
