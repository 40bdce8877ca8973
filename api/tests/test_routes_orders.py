import pathlib
import sys

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from api.app.deps.tenant import get_session_from_path
from api.app.main import app
from api.app.services.projection_cache import projection_cache
from api.tests._outlet import BUTTER_NAAN, CHICKEN_BIRYANI, PANEER_TIKKA, T3

BASE = "/api/outlet/outlet-1"

FAMILY_ORDER = {
    "type": "dine-in",
    "table_id": T3,
    "guest_count": 4,
    "items": [
        {"menu_item_id": PANEER_TIKKA, "qty": 2},
        {"menu_item_id": CHICKEN_BIRYANI, "qty": 1},
    ],
}


@pytest.fixture
async def client(session_factory):
    async def _session():
        async with session_factory() as session:
            yield session

    app.state.redis = fakeredis.aioredis.FakeRedis()
    app.dependency_overrides[get_session_from_path] = _session
    projection_cache.clear()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    projection_cache.clear()


@pytest.mark.anyio
async def test_dine_in_flow(client):
    resp = await client.post(
        f"{BASE}/orders", json=FAMILY_ORDER, headers={"X-Staff-ID": "waiter-7"}
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["ok"] is True
    order = body["data"]
    assert order["total"] == 1204.35
    assert order["tax"] == 57.35
    assert order["table_id"] == T3
    assert len(order["items"]) == 2

    board = (await client.get(f"{BASE}/kds/board")).json()["data"]
    assert [t["order_id"] for t in board["new"]] == [order["id"]]
    assert board["new"][0]["table"] == "Main-3"

    resp = await client.post(
        f"{BASE}/orders/{order['id']}/items",
        json={"items": [{"menu_item_id": BUTTER_NAAN, "qty": 2}]},
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["items"][0]["kot_batch"] == 2
    assert data["order"]["subtotal"] == 1267.0

    resp = await client.post(
        f"{BASE}/kds/{order['id']}/advance", json={"status": "ready"}
    )
    assert resp.status_code == 200
    board = (await client.get(f"{BASE}/kds/board")).json()["data"]
    assert board["new"] == []
    assert [t["order_id"] for t in board["ready"]] == [order["id"]]

    resp = await client.post(
        f"{BASE}/orders/{order['id']}/settle", json={"method": "upi"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "completed"

    tables = (await client.get(f"{BASE}/tables", params={"section": "Main"})).json()
    statuses = {t["id"]: t["status"] for t in tables["data"]}
    assert statuses[T3] == "cleaning"

    resp = await client.post(f"{BASE}/tables/{T3}/free")
    assert resp.json()["data"]["status"] == "free"

    stats = (await client.get(f"{BASE}/dashboard/stats")).json()["data"]
    assert stats["orders_today"] == 1
    assert stats["today_sales"] == 1330.35
    assert stats["tables_occupied"] == 0


@pytest.mark.anyio
async def test_second_order_on_busy_table_conflicts(client):
    first = await client.post(f"{BASE}/orders", json=FAMILY_ORDER)
    assert first.status_code == 201

    resp = await client.post(f"{BASE}/orders", json=FAMILY_ORDER)
    assert resp.status_code == 409
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "TABLE_OCCUPIED"
    assert resp.headers["X-Request-ID"]

    orders = (await client.get(f"{BASE}/orders")).json()["data"]
    assert [o["id"] for o in orders] == [first.json()["data"]["id"]]


@pytest.mark.anyio
async def test_table_summary_follows_changes(client):
    summary = (await client.get(f"{BASE}/tables/summary")).json()["data"]
    assert summary == {
        "Main": {"free": 2, "total": 2},
        "Patio": {"free": 1, "total": 1},
    }

    await client.post(f"{BASE}/orders", json=FAMILY_ORDER)

    summary = (await client.get(f"{BASE}/tables/summary")).json()["data"]
    assert summary["Main"] == {"free": 1, "total": 2}


@pytest.mark.anyio
async def test_error_statuses(client):
    resp = await client.get(f"{BASE}/orders/999")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ORDER_NOT_FOUND"

    order = (await client.post(f"{BASE}/orders", json=FAMILY_ORDER)).json()["data"]

    resp = await client.patch(
        f"{BASE}/orders/{order['id']}/status", json={"status": "bogus"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_ORDER_STATUS"

    item_id = order["items"][0]["id"]
    resp = await client.patch(
        f"{BASE}/order-items/{item_id}/status", json={"status": "ready"}
    )
    assert resp.json()["data"]["status"] == "ready"
    resp = await client.patch(
        f"{BASE}/order-items/{item_id}/status", json={"status": "new"}
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_TRANSITION"

    resp = await client.post(
        f"{BASE}/orders/{order['id']}/discount", json={"discount": 5000}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_DISCOUNT"

    resp = await client.post(f"{BASE}/orders/{order['id']}/bill")
    assert resp.json()["data"]["status"] == "bill"

    resp = await client.get("/api/outlet/outlet-2/orders/" + str(order["id"]))
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_reserve_and_reconcile_routes(client):
    resp = await client.post(f"{BASE}/tables/11/reserve")
    assert resp.json()["data"]["status"] == "reserved"

    order = (await client.post(f"{BASE}/orders", json=FAMILY_ORDER)).json()["data"]
    await client.patch(
        f"{BASE}/orders/{order['id']}/status", json={"status": "cancelled"}
    )
    resp = await client.post(f"{BASE}/tables/reconcile")
    assert resp.json()["data"] == {"released": [T3]}

    resp = await client.delete(f"{BASE}/tables/11/reserve")
    assert resp.json()["data"]["status"] == "free"
    resp = await client.delete(f"{BASE}/tables/11/reserve")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "TABLE_NOT_RESERVED"
