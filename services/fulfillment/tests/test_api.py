"""Tests for the HTTP surface, driven through the ASGI app."""

import httpx
import pytest

from app.config import Settings
from app.lifecycle import OrderLifecycle
from app.main import app
from app.static_params import StaticParamResolver

STAFF_O1 = {"X-Staff-Outlets": "o1"}


@pytest.fixture
async def client(seeded, orders):
    app.state.outlets = seeded
    app.state.orders = orders
    app.state.lifecycle = OrderLifecycle()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def _cart(outlet_id="o1"):
    return {
        "outlet_id": outlet_id,
        "items": [{"menu_item_id": "thali", "quantity": 2, "unit_price": 80}],
    }


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json()["status"] == "ok"


async def test_outlet_crud(client):
    resp = await client.post("/outlets", json={"name": "Snack Shack", "base_delivery_time": 12})
    assert resp.status_code == 201
    outlet_id = resp.json()["id"]

    resp = await client.patch(f"/outlets/{outlet_id}", json={"is_active": False})
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = await client.get(f"/outlets/{outlet_id}")
    assert resp.json()["name"] == "Snack Shack"

    resp = await client.delete(f"/outlets/{outlet_id}")
    assert resp.status_code == 204
    assert (await client.get(f"/outlets/{outlet_id}")).status_code == 404
    assert (await client.delete(f"/outlets/{outlet_id}")).status_code == 404


async def test_list_outlets(client):
    resp = await client.get("/outlets")
    assert sorted(o["id"] for o in resp.json()) == ["closed", "o1", "o2"]


async def test_patch_rejects_id_change(client):
    resp = await client.patch("/outlets/o1", json={"id": "other"})
    assert resp.status_code == 422


async def test_place_and_read_order(client):
    resp = await client.post("/orders", json=_cart())
    assert resp.status_code == 201
    order = resp.json()
    assert order["status"] == "pending"
    assert order["total"] == 160

    resp = await client.get(f"/orders/{order['id']}")
    assert resp.json()["id"] == order["id"]

    resp = await client.get("/outlets/o1/orders", headers=STAFF_O1)
    assert [o["id"] for o in resp.json()] == [order["id"]]


async def test_outlet_order_listing_requires_staff_capability(client):
    await client.post("/orders", json=_cart())
    assert (await client.get("/outlets/o1/orders")).status_code == 403
    resp = await client.get("/outlets/o1/orders", headers={"X-Staff-Outlets": "o2"})
    assert resp.status_code == 403


async def test_place_order_validation(client):
    assert (await client.post("/orders", json={"outlet_id": "o1", "items": []})).status_code == 422
    assert (await client.post("/orders", json=_cart("nowhere"))).status_code == 404


async def test_missing_order(client):
    assert (await client.get("/orders/missing")).status_code == 404


async def test_dashboard_requires_staff_capability(client):
    assert (await client.get("/staff/outlets/o1/dashboard")).status_code == 403
    resp = await client.get("/staff/outlets/o1/dashboard", headers={"X-Staff-Outlets": "o2"})
    assert resp.status_code == 403


async def test_staff_status_flow(client):
    order_id = (await client.post("/orders", json=_cart())).json()["id"]

    resp = await client.get("/staff/outlets/o1/dashboard", headers=STAFF_O1)
    buckets = resp.json()["buckets"]
    assert [o["id"] for o in buckets["New Orders"]] == [order_id]

    for status in ("accepted", "preparing"):
        resp = await client.post(
            f"/staff/outlets/o1/orders/{order_id}/status",
            json={"status": status},
            headers=STAFF_O1,
        )
        assert resp.status_code == 200

    body = resp.json()
    assert body["order"]["status"] == "preparing"
    assert body["buckets"]["New Orders"] == []
    assert [o["id"] for o in body["buckets"]["In Preparation"]] == [order_id]

    history = (await client.get(f"/orders/{order_id}/history")).json()
    assert len(history) == 3


async def test_illegal_status_change(client):
    order_id = (await client.post("/orders", json=_cart())).json()["id"]

    resp = await client.post(
        f"/staff/outlets/o1/orders/{order_id}/status",
        json={"status": "ready"},
        headers=STAFF_O1,
    )

    assert resp.status_code == 422
    assert "pending" in resp.json()["detail"]


async def test_unknown_status_value(client):
    order_id = (await client.post("/orders", json=_cart())).json()["id"]
    resp = await client.post(
        f"/staff/outlets/o1/orders/{order_id}/status",
        json={"status": "shipped"},
        headers=STAFF_O1,
    )
    assert resp.status_code == 422


async def test_delete_outlet_with_active_orders_conflicts(client):
    await client.post("/orders", json=_cart())
    assert (await client.delete("/outlets/o1")).status_code == 409


async def test_resolver_reads_the_service_outlet_listing(client):
    resolver = StaticParamResolver.from_settings(
        Settings(api_url="http://test"),
        transport=httpx.ASGITransport(app=app),
    )

    assert sorted(await resolver.resolve_outlet_ids()) == ["closed", "o1", "o2"]
