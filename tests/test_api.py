"""Tests API / API tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from coverdesk.api.deps import get_lifecycle
from coverdesk.database import get_db
from coverdesk.main import app
from coverdesk.rate_limit import limiter
from coverdesk.utils.auth import create_access_token


@pytest.fixture
async def client(session_factory, lifecycle):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _setup(client, theft_insured=False):
    """Boutique : utilisateur, article, offre / Shop: user, item, offer."""
    resp = await client.post("/api/users/", json={
        "username": "alice", "password": "s3cret", "first_name": "Alice", "last_name": "Martin",
    })
    assert resp.status_code == 201
    item = (await client.post("/api/items/", json={
        "brand": "Brompton", "model": "C Line", "price": 1500, "serial_no": "BR-42",
    })).json()
    ctype = (await client.post("/api/contract-types/", json={
        "shop_type": "Bike shop", "formula_per_day": "price * 0.004", "max_sum_insured": 500,
        "theft_insured": theft_insured, "min_duration_days": 7, "max_duration_days": 30,
    })).json()
    return item, ctype


async def _contract(client, item, ctype, end="2024-03-21T00:00:00"):
    return await client.post("/api/contracts/", json={
        "username": "alice", "item_id": item["id"], "contract_type_id": ctype["id"],
        "start_date": "2024-03-01T00:00:00", "end_date": end,
    })


@pytest.mark.asyncio
async def test_root(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "running"
    assert "X-Request-ID" in resp.headers


@pytest.mark.asyncio
async def test_contract_claim_repair_flow(client):
    item, ctype = await _setup(client)
    resp = await _contract(client, item, ctype)
    assert resp.status_code == 201
    contract = resp.json()
    assert contract["void"] is False
    assert contract["claim_index"] == []

    user = (await client.get("/api/users/alice")).json()
    assert user["contract_index"] == [contract["id"]]
    assert "password" not in user

    resp = await client.post("/api/claims/", json={
        "contract_id": contract["id"], "date": "2024-03-05T10:00:00",
        "description": "bent wheel", "reimbursable": 900,
    })
    assert resp.status_code == 201
    claim = resp.json()
    assert claim["status"] == "FILED"
    assert claim["reimbursable"] == 500

    resp = await client.post(f"/api/claims/{claim['id']}/status", json={"status": "approved", "reimbursable": 250})
    assert resp.status_code == 200
    assert resp.json()["reimbursable"] == 250

    resp = await client.post("/api/repair-orders/", json={"claim_id": claim["id"]})
    assert resp.status_code == 201
    order = resp.json()
    assert order["item_id"] == item["id"]

    pending = (await client.get("/api/repair-orders/")).json()
    assert [o["id"] for o in pending] == [order["id"]]
    assert pending[0]["item"]["serial_no"] == "BR-42"

    resp = await client.post(f"/api/repair-orders/{order['id']}/complete")
    assert resp.json()["ready"] is True
    assert (await client.get("/api/repair-orders/")).json() == []

    listed = (await client.get("/api/contracts/", params={"username": "alice"})).json()
    assert listed[0]["claims"][0]["repaired"] is True
    assert listed[0]["claim_index"] == [claim["id"]]

    resp = await client.get("/api/maintenance/indexes")
    assert resp.json() == []


@pytest.mark.asyncio
async def test_domain_errors_are_mapped(client):
    item, ctype = await _setup(client)

    resp = await _contract(client, item, ctype, end="2024-03-06T00:00:00")
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_duration"

    contract = (await _contract(client, item, ctype)).json()
    resp = await _contract(client, item, ctype)
    assert resp.status_code == 409
    assert resp.json()["code"] == "item_conflict"

    resp = await client.post("/api/claims/", json={
        "contract_id": contract["id"], "date": "2024-03-02T00:00:00",
        "description": "stolen", "is_theft": True, "reimbursable": 100,
    })
    assert resp.status_code == 422
    assert resp.json()["code"] == "theft_not_covered"

    claim = (await client.post("/api/claims/", json={
        "contract_id": contract["id"], "date": "2024-03-02T00:00:00", "description": "scratch", "reimbursable": 10,
    })).json()
    resp = await client.post(f"/api/claims/{claim['id']}/status", json={"status": "bogus"})
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_status"

    resp = await client.post("/api/repair-orders/", json={"claim_id": claim["id"]})
    assert resp.status_code == 409
    assert resp.json()["code"] == "repair_not_allowed"

    resp = await client.get("/api/contracts/00000000-0000-0000-0000-00000000abcd")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_void_contract_twice(client):
    item, ctype = await _setup(client)
    contract = (await _contract(client, item, ctype)).json()

    first = await client.post(f"/api/contracts/{contract['id']}/void")
    second = await client.post(f"/api/contracts/{contract['id']}/void")
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


@pytest.mark.asyncio
async def test_police_flow(client):
    item, ctype = await _setup(client, theft_insured=True)
    contract = (await _contract(client, item, ctype)).json()
    claim = (await client.post("/api/claims/", json={
        "contract_id": contract["id"], "date": "2024-03-10T08:00:00",
        "description": "stolen at station", "is_theft": True, "reimbursable": 400,
    })).json()

    thefts = (await client.get("/api/theft-claims/")).json()
    assert thefts[0]["id"] == claim["id"]
    assert thefts[0]["name"] == "Alice Martin"
    assert thefts[0]["item"]["brand"] == "Brompton"

    resp = await client.post(f"/api/claims/{claim['id']}/status", json={"status": "APPROVED"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "theft_not_confirmed"

    resp = await client.post(
        f"/api/theft-claims/{claim['id']}/report", json={"confirmed": True, "file_reference": "PV-77"}
    )
    assert resp.status_code == 200
    assert (await client.get("/api/theft-claims/")).json() == []

    await client.post(f"/api/claims/{claim['id']}/status", json={"status": "APPROVED"})
    resp = await client.post(f"/api/claims/{claim['id']}/status", json={"status": "PAID"})
    assert resp.json()["status"] == "PAID"
    assert (await client.get(f"/api/contracts/{contract['id']}")).json()["void"] is True

    paid = (await client.get("/api/claims/", params={"status": "F"})).json()
    assert [c["id"] for c in paid] == [claim["id"]]


@pytest.mark.asyncio
async def test_contract_type_catalog(client):
    await _setup(client)
    await client.post("/api/contract-types/", json={
        "shop_type": "Electronics", "formula_per_day": "1.0", "max_sum_insured": 100,
        "min_duration_days": 1, "max_duration_days": 10,
    })

    resp = await client.post("/api/contract-types/", json={
        "shop_type": "Broken", "formula_per_day": "1.0", "max_sum_insured": 100,
        "min_duration_days": 10, "max_duration_days": 1,
    })
    assert resp.status_code == 422

    bikes = (await client.get("/api/contract-types/", params={"shop_type": "bike"})).json()
    assert [c["shop_type"] for c in bikes] == ["Bike shop"]

    resp = await client.put(f"/api/contract-types/{bikes[0]['id']}/active", json={"active": False})
    assert resp.json()["active"] is False
    assert (await client.get("/api/contract-types/", params={"shop_type": "bike"})).json() == []
    assert len((await client.get("/api/contract-types/")).json()) == 2


@pytest.mark.asyncio
async def test_authentication(client):
    await _setup(client)

    resp = await client.post("/api/users/authenticate", json={"username": "alice", "password": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_credentials"

    resp = await client.post("/api/users/authenticate", json={"username": "alice", "password": "s3cret"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    me = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["first_name"] == "Alice"

    resp = await client.post("/api/users/", json={
        "username": "alice", "password": "x", "first_name": "A", "last_name": "M",
    })
    assert resp.status_code == 409

    audit = (await client.get("/api/audit/", params={"entity_type": "auth"})).json()
    assert [row["action"] for row in audit["items"]] == ["LOGIN", "LOGIN_FAILED"]


@pytest.mark.asyncio
async def test_claim_history(client):
    item, ctype = await _setup(client)
    contract = (await _contract(client, item, ctype)).json()
    claim = (await client.post("/api/claims/", json={
        "contract_id": contract["id"], "date": "2024-03-05T10:00:00",
        "description": "cracked frame", "reimbursable": 120,
    })).json()
    await client.post(f"/api/claims/{claim['id']}/status", json={"status": "R"})
    await client.post(f"/api/claims/{claim['id']}/status", json={"status": "paid"})

    history = (await client.get(f"/api/audit/claim/{claim['id']}")).json()
    assert [row["action"] for row in history] == ["FILE", "STATUS", "STATUS"]
    assert history[0]["changes"]["reimbursable"] == 120
    assert [row["changes"]["to"] for row in history[1:]] == ["APPROVED", "PAID"]

    page = (await client.get("/api/audit/", params={"action": "status", "limit": 1})).json()
    assert page["total"] == 2
    assert page["items"][0]["changes"]["to"] == "PAID"


@pytest.mark.asyncio
async def test_password_change_requires_owner(client):
    await _setup(client)
    await client.post("/api/users/", json={
        "username": "bob", "password": "hunter2", "first_name": "Bob", "last_name": "Durand",
    })

    resp = await client.put("/api/users/alice/password", json={"new_password": "pwned"})
    assert resp.status_code in (401, 403)

    bob = {"Authorization": f"Bearer {create_access_token('bob')}"}
    resp = await client.put("/api/users/alice/password", json={"new_password": "pwned"}, headers=bob)
    assert resp.status_code == 403

    resp = await client.post("/api/users/authenticate", json={"username": "alice", "password": "pwned"})
    assert resp.status_code == 401

    alice = {"Authorization": f"Bearer {create_access_token('alice')}"}
    resp = await client.put("/api/users/alice/password", json={"new_password": "n3w-s3cret"}, headers=alice)
    assert resp.status_code == 204
    resp = await client.post("/api/users/authenticate", json={"username": "alice", "password": "n3w-s3cret"})
    assert resp.status_code == 200
