# tests/test_auth_api.py
from __future__ import annotations

import threading

import pytest

from rental.auth.identity import Identity, IdentityGate, issue_token
from rental.core.exceptions import InvalidCredential, Unauthenticated
from rental.core.security import create_access_token, is_password_hash


def register_body(**overrides) -> dict:
    body = {
        "username": "newcomer",
        "password": "secret1",
        "name": "New Comer",
        "email": "new@example.com",
        "phone": "0922000000",
        "room_number": "303",
        "lease_start": "2024-01-01",
        "lease_end": "2024-12-31",
        "rent_amount": "12000",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------
# Health
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_health_endpoints(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.text == "OK"

    r = await client.get("/api/health")
    body = r.json()
    assert body["success"] is True
    assert body["dataCounts"] == {"tenants": 2, "payments": 0, "images": 0, "bankInfo": 1}


@pytest.mark.asyncio
async def test_unknown_api_route_is_404_envelope(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "API endpoint does not exist", "error": "not_found"}


# ---------------------------------------------------------
# Login / register
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_seed_tenant_and_admin_can_log_in(client):
    r = await client.post("/api/login", json={"username": "tenant", "password": "123456", "role": "tenant"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["user"]["id"] == 2
    assert "password" not in body["user"]
    tenant_token = body["token"]

    r = await client.post("/api/login", json={"username": "admin", "password": "admin123", "role": "admin"})
    assert r.status_code == 200, r.text
    assert r.json()["user"]["role"] == "admin"

    r = await client.get("/api/profile", headers={"Authorization": f"Bearer {tenant_token}"})
    assert r.json()["user"]["username"] == "tenant"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"username": "tenant", "password": "wrong", "role": "tenant"},
        {"username": "nobody", "password": "123456", "role": "tenant"},
        {"username": "admin", "password": "123456", "role": "admin"},
        # tenant credentials never open the admin door
        {"username": "tenant", "password": "123456", "role": "admin"},
    ],
)
async def test_bad_login_is_401(client, payload):
    r = await client.post("/api/login", json=payload)
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"
    assert r.json() == {"success": False, "message": "Incorrect username or password", "error": "unauthenticated"}


@pytest.mark.asyncio
async def test_register_then_login(client, store):
    r = await client.post("/api/register", json=register_body())
    assert r.status_code == 200, r.text
    user = r.json()["user"]
    assert user["id"] == 4
    assert user["rent_amount"] == 12000
    assert user["lease_end"] == "2024-12-31"
    assert "password" not in user
    assert is_password_hash(store.find("tenants", 4)["password"])

    r = await client.get("/api/profile", headers={"Authorization": f"Bearer {r.json()['token']}"})
    assert r.json()["user"]["room_number"] == "303"

    r = await client.post("/api/login", json={"username": "newcomer", "password": "secret1"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_register_conflict_and_validation(client):
    r = await client.post("/api/register", json=register_body(username="tenant"))
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"

    for bad in (
        {"password": "123"},
        {"email": "not-an-email"},
        {"username": "two words"},
        {"lease_end": "2023-01-01"},
        {"name": "   "},
    ):
        r = await client.post("/api/register", json=register_body(**bad))
        assert r.status_code == 400, bad


@pytest.mark.asyncio
async def test_plaintext_password_is_upgraded_on_login(client, store):
    store.tenants.append({"id": 10, "username": "legacy", "password": "oldpass", "name": "Legacy", "role": "tenant"})

    r = await client.post("/api/login", json={"username": "legacy", "password": "oldpass"})

    assert r.status_code == 200, r.text
    stored = store.find("tenants", 10)["password"]
    assert stored != "oldpass"
    assert is_password_hash(stored)


@pytest.mark.asyncio
async def test_password_hashing_runs_off_the_event_loop(client, store, monkeypatch):
    from rental.services import tenants as tenants_module

    calls = []

    def tracked(fn, name):
        def wrapper(*args):
            calls.append((name, threading.get_ident()))
            return fn(*args)

        return wrapper

    monkeypatch.setattr(tenants_module, "hash_password", tracked(tenants_module.hash_password, "hash"))
    monkeypatch.setattr(tenants_module, "verify_password", tracked(tenants_module.verify_password, "verify"))
    store.tenants.append({"id": 10, "username": "legacy", "password": "oldpass", "name": "Legacy", "role": "tenant"})
    loop_thread = threading.get_ident()

    r = await client.post("/api/register", json=register_body())
    assert r.status_code == 200, r.text
    r = await client.post("/api/login", json={"username": "newcomer", "password": "secret1"})
    assert r.status_code == 200, r.text
    r = await client.post("/api/login", json={"username": "legacy", "password": "oldpass"})
    assert r.status_code == 200, r.text

    assert [name for name, _ in calls] == ["hash", "verify", "verify", "hash"]
    assert all(ident != loop_thread for _, ident in calls)


# ---------------------------------------------------------
# Identity gate
# ---------------------------------------------------------
def test_identity_gate_resolves_tokens(store, tenant_identity, admin_identity):
    gate = IdentityGate(store)

    assert gate.resolve(issue_token(tenant_identity)) == tenant_identity
    assert gate.resolve(issue_token(admin_identity)) == admin_identity

    with pytest.raises(Unauthenticated):
        gate.resolve(None)
    with pytest.raises(InvalidCredential):
        gate.resolve("not-a-jwt")
    with pytest.raises(InvalidCredential):
        gate.resolve(issue_token(Identity(id=99, username="ghost", role="tenant")))
    with pytest.raises(InvalidCredential):
        gate.resolve(create_access_token(identity_id=1, username="x", role="landlord", name=None))
    with pytest.raises(InvalidCredential):
        gate.resolve(create_access_token(identity_id=2, username="tenant", role="tenant", name=None, expires_minutes=-5))


@pytest.mark.asyncio
async def test_missing_and_invalid_tokens(client):
    r = await client.get("/api/profile")
    assert r.status_code == 401
    assert r.json()["error"] == "unauthenticated"

    r = await client.get("/api/profile", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Invalid token", "error": "invalid_credential"}


# ---------------------------------------------------------
# Bank info / admin views
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_bank_info_read_and_replace(client, tenant_headers, admin_headers):
    r = await client.get("/api/bank-info", headers=tenant_headers)
    assert r.status_code == 200
    assert r.json()["bankInfo"]["account_number"]

    new_info = {
        "bank_name": " Cathay Bank ",
        "branch_name": "Xinyi",
        "account_name": "Guangda City",
        "account_number": "9999-0000",
    }
    r = await client.put("/api/bank-info", json=new_info, headers=tenant_headers)
    assert r.status_code == 403

    r = await client.put("/api/bank-info", json={**new_info, "branch_name": ""}, headers=admin_headers)
    assert r.status_code == 400

    r = await client.put("/api/bank-info", json=new_info, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert r.json()["bankInfo"]["bank_name"] == "Cathay Bank"

    r = await client.get("/api/bank-info", headers=tenant_headers)
    assert r.json()["bankInfo"]["account_number"] == "9999-0000"


@pytest.mark.asyncio
async def test_admin_tenant_views(client, tenant_headers, admin_headers):
    r = await client.get("/api/admin/tenants", headers=tenant_headers)
    assert r.status_code == 403

    r = await client.get("/api/admin/tenants", headers=admin_headers)
    tenants = r.json()["tenants"]
    assert [t["id"] for t in tenants] == [2, 3]
    assert all("password" not in t for t in tenants)

    r = await client.get("/api/admin/tenant-options", headers=admin_headers)
    assert [o["room_number"] for o in r.json()["data"]] == ["101", "202"]

    r = await client.get(
        "/api/admin/tenants/paginated", params={"search": "neigh", "limit": 5}, headers=admin_headers
    )
    body = r.json()
    assert [t["username"] for t in body["data"]] == ["neighbour"]
    assert body["statistics"] == {"total_records": 1}


@pytest.mark.asyncio
async def test_tenant_responses_carry_only_declared_fields(client, store, admin_headers, monkeypatch):
    from rental.services import tenants as tenants_module

    store.find("tenants", 3)["internal_note"] = "late twice"
    # directory rows passed through unfiltered
    monkeypatch.setattr(tenants_module, "public_tenant", dict)

    r = await client.get("/api/admin/tenants", headers=admin_headers)
    assert r.status_code == 200, r.text
    for tenant in r.json()["tenants"]:
        assert "password" not in tenant
        assert "internal_note" not in tenant

    r = await client.get("/api/admin/tenants/paginated", headers=admin_headers)
    assert all("internal_note" not in t and "password" not in t for t in r.json()["data"])


@pytest.mark.asyncio
async def test_openapi_documents_response_shapes(client):
    r = await client.get("/openapi.json")
    assert r.status_code == 200
    document = r.json()
    schemas = document["components"]["schemas"]

    for name in ("TenantOut", "TenantPageOut", "PaymentOut", "PaymentPageOut", "ImagePageOut", "HealthOut"):
        assert name in schemas, name

    page = document["paths"]["/api/admin/payments/paginated"]["get"]["responses"]["200"]
    assert page["content"]["application/json"]["schema"]["$ref"].endswith("/PaymentPageOut")


@pytest.mark.asyncio
async def test_dashboard(client, tenant_headers, admin_headers):
    payment = {"rent_amount": 1000, "electricity_rate": 2, "previous_meter": 1, "current_meter": 3}
    await client.post("/api/payments", json=payment, headers=tenant_headers)
    await client.post("/api/payments", json=payment, headers=tenant_headers)
    await client.post(
        "/api/images/save",
        json={"image_url": "https://cdn.example.com/x.png", "file_name": "x.png"},
        headers=tenant_headers,
    )

    r = await client.get("/api/admin/dashboard", headers=tenant_headers)
    assert r.status_code == 403

    r = await client.get("/api/admin/dashboard", headers=admin_headers)
    dashboard = r.json()["dashboard"]
    assert dashboard["totalTenants"] == 2
    assert dashboard["totalPayments"] == 2
    assert dashboard["pendingPayments"] == 2
    assert dashboard["totalImages"] == 1
    assert sorted(p["id"] for p in dashboard["recentPayments"]) == [1, 2]
    assert dashboard["recentImages"][0]["file_name"] == "x.png"
