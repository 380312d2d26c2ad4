import uuid

import pytest

from conftest import PASSWORD, add_user, auth_headers


@pytest.mark.asyncio
async def test_list_users_is_tenant_scoped(client, session_factory, tenant_a, tenant_b):
    await add_user(session_factory, tenant_a, "recruiter", "rec@acme-corp.com", name="Rec Ruiter")

    resp = await client.get("/api/users", headers=tenant_a.headers)
    assert resp.status_code == 200
    emails = sorted(u["email"] for u in resp.json()["users"])
    assert emails == ["admin@acme-corp.com", "rec@acme-corp.com"]

    resp = await client.get("/api/users", params={"role": "recruiter"}, headers=tenant_a.headers)
    assert [u["email"] for u in resp.json()["users"]] == ["rec@acme-corp.com"]

    resp = await client.get("/api/users", params={"search": "ruiter"}, headers=tenant_a.headers)
    assert resp.json()["total"] == 1

    resp = await client.get(f"/api/users/{tenant_a.admin_id}", headers=tenant_b.headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to view this user"


@pytest.mark.asyncio
async def test_update_user_and_password(client, session_factory, tenant_a):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "promote@acme-corp.com")

    resp = await client.put(
        f"/api/users/{user_id}",
        json={"role": "manager", "name": "  New Name ", "password": "Fresh1234!"},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["role"] == "manager"
    assert user["name"] == "New Name"

    login = await client.post(
        "/api/auth/login", json={"email": "promote@acme-corp.com", "password": "Fresh1234!"}
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_hr_manager_role_limits(client, session_factory, tenant_a):
    emp_id, _ = await add_user(session_factory, tenant_a, "employee", "e1@acme-corp.com")
    _, hr_headers = await add_user(session_factory, tenant_a, "hr_manager", "hr@acme-corp.com")

    resp = await client.put(
        f"/api/users/{emp_id}", json={"role": "company_admin"}, headers=hr_headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "HR Managers cannot assign admin or HR manager roles"

    resp = await client.put(
        f"/api/users/{tenant_a.admin_id}", json={"name": "Demoted"}, headers=hr_headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to modify this user"

    resp = await client.delete(f"/api/users/{tenant_a.admin_id}", headers=hr_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/users/{emp_id}", headers=hr_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_deactivate_user(client, session_factory, tenant_a):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "leaver@acme-corp.com")

    resp = await client.delete(f"/api/users/{tenant_a.admin_id}", headers=tenant_a.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "You cannot deactivate your own account"

    resp = await client.delete(f"/api/users/{user_id}", headers=tenant_a.headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "User deactivated successfully"

    login = await client.post(
        "/api/auth/login", json={"email": "leaver@acme-corp.com", "password": PASSWORD}
    )
    assert login.status_code == 403


@pytest.mark.asyncio
async def test_non_admin_cannot_manage_users(client, session_factory, tenant_a):
    _, headers = await add_user(session_factory, tenant_a, "recruiter", "r@acme-corp.com")
    resp = await client.get("/api/users", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to view users"


# ---------------------------------------------------------------------------
# Role and status are read from the users row, not the token
# ---------------------------------------------------------------------------

DEPT = {"name": "Platform", "code": "PLT"}


@pytest.mark.asyncio
async def test_deactivated_caller_loses_access(client, session_factory, tenant_a):
    hr_id, hr_headers = await add_user(session_factory, tenant_a, "hr_manager", "hr@acme-corp.com")

    resp = await client.delete(f"/api/users/{hr_id}", headers=tenant_a.headers)
    assert resp.status_code == 200

    resp = await client.post("/api/departments", json=DEPT, headers=hr_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Account is deactivated. Please contact support."

    resp = await client.get("/api/departments", headers=hr_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_demoted_caller_gets_new_role(client, session_factory, tenant_a):
    hr_id, hr_headers = await add_user(session_factory, tenant_a, "hr_manager", "hr@acme-corp.com")

    resp = await client.put(
        f"/api/users/{hr_id}", json={"role": "employee"}, headers=tenant_a.headers
    )
    assert resp.status_code == 200

    resp = await client.post("/api/departments", json=DEPT, headers=hr_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to create departments"

    resp = await client.get("/api/departments", headers=tenant_a.headers)
    assert "Platform" not in [d["name"] for d in resp.json()["departments"]]


@pytest.mark.asyncio
async def test_token_for_unknown_user_is_rejected(client, tenant_a):
    headers = auth_headers(uuid.uuid4(), tenant_a.company_id, "company_admin", "ghost@acme-corp.com")
    resp = await client.get("/api/departments", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["message"] == "User not found"
