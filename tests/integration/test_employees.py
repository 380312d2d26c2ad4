import uuid

import pytest
from sqlalchemy import select

from conftest import add_employee, add_user
from talenthr.models.audit_log import AuditLog


async def _hire(client, tenant, user_id, **extra):
    resp = await client.post(
        "/api/employees", json={"userId": str(user_id), **extra}, headers=tenant.headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["employee"]


@pytest.mark.asyncio
async def test_create_employee_record(client, session_factory, tenant_a):
    user_id, _ = await add_user(
        session_factory, tenant_a, "employee", "jane@acme-corp.com", name="Jane Doe"
    )
    emp = await _hire(
        client,
        tenant_a,
        user_id,
        departmentId=tenant_a.departments["Engineering"],
        position="Backend Engineer",
        salary=95000,
        managerId=str(tenant_a.admin_id),
        address={"street": "1 Main St", "city": "Springfield", "zipCode": "12345"},
        emergencyContact={"name": "John Doe", "relationship": "Spouse", "phone": "555-0100"},
        skills=["python", "sql"],
    )

    # The admin got EMP001 at signup
    assert emp["employeeCode"] == "ACME-CORP-EMP002"
    assert emp["name"] == "Jane Doe"
    assert emp["email"] == "jane@acme-corp.com"
    assert emp["department"]["name"] == "Engineering"
    assert emp["manager"]["id"] == str(tenant_a.admin_id)
    assert emp["salary"] == 95000
    assert emp["employmentType"] == "full-time"
    assert emp["status"] == "active"
    assert emp["address"] == {"street": "1 Main St", "city": "Springfield", "zipCode": "12345"}
    assert emp["skills"] == ["python", "sql"]


@pytest.mark.asyncio
async def test_create_requires_user_id(client, tenant_a):
    resp = await client.post(
        "/api/employees", json={"position": "Engineer"}, headers=tenant_a.headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "User ID is required"


@pytest.mark.asyncio
async def test_create_for_unknown_or_foreign_user(client, tenant_a, tenant_b):
    resp = await client.post(
        "/api/employees", json={"userId": str(uuid.uuid4())}, headers=tenant_a.headers
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"

    resp = await client.post(
        "/api/employees", json={"userId": str(tenant_b.admin_id)}, headers=tenant_a.headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "User does not belong to your company"


@pytest.mark.asyncio
async def test_create_twice_conflicts(client, session_factory, tenant_a):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "twice@acme-corp.com")
    await _hire(client, tenant_a, user_id)

    resp = await client.post(
        "/api/employees", json={"userId": str(user_id)}, headers=tenant_a.headers
    )
    assert resp.status_code == 409
    assert resp.json()["message"] == "Employee record already exists for this user"


@pytest.mark.asyncio
async def test_create_with_foreign_department_rejected(client, session_factory, tenant_a, tenant_b):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "x@acme-corp.com")
    resp = await client.post(
        "/api/employees",
        json={"userId": str(user_id), "departmentId": tenant_b.departments["Engineering"]},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid department"


@pytest.mark.asyncio
async def test_partial_update_keeps_unsent_fields(client, session_factory, tenant_a):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "sam@acme-corp.com")
    emp = await _hire(
        client,
        tenant_a,
        user_id,
        departmentId=tenant_a.departments["Finance"],
        position="Analyst",
        phone="555-0101",
    )

    resp = await client.put(
        f"/api/employees/{emp['id']}",
        json={"position": "Senior Analyst"},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["employee"]
    assert updated["position"] == "Senior Analyst"
    assert updated["department"]["name"] == "Finance"
    assert updated["phone"] == "555-0101"

    resp = await client.put(
        f"/api/employees/{emp['id']}",
        json={"departmentId": "", "phone": ""},
        headers=tenant_a.headers,
    )
    cleared = resp.json()["employee"]
    assert cleared["department"] is None
    assert cleared["phone"] is None
    assert cleared["position"] == "Senior Analyst"

    async with session_factory() as session:
        logs = (await session.execute(
            select(AuditLog)
            .where(AuditLog.action == "EMPLOYEE_UPDATED")
            .order_by(AuditLog.created_at)
        )).scalars().all()
    assert [log.changed_fields for log in logs] == [
        ["position"],
        ["department_id", "phone"],
    ]


@pytest.mark.asyncio
async def test_foreign_employee_is_forbidden(client, session_factory, tenant_a, tenant_b):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "a1@acme-corp.com")
    emp = await add_employee(session_factory, user_id)

    resp = await client.get(f"/api/employees/{emp.id}", headers=tenant_b.headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to view this employee"

    resp = await client.put(
        f"/api/employees/{emp.id}", json={"position": "Owned"}, headers=tenant_b.headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to update this employee"


@pytest.mark.asyncio
async def test_manager_sees_only_direct_reports(client, session_factory, tenant_a):
    manager_id, manager_headers = await add_user(
        session_factory, tenant_a, "manager", "boss@acme-corp.com"
    )
    report_id, _ = await add_user(session_factory, tenant_a, "employee", "report@acme-corp.com")
    other_id, _ = await add_user(session_factory, tenant_a, "employee", "other@acme-corp.com")
    report = await add_employee(session_factory, report_id, manager_id=manager_id)
    other = await add_employee(session_factory, other_id)

    resp = await client.get("/api/employees", headers=manager_headers)
    assert resp.status_code == 200
    assert [e["id"] for e in resp.json()["employees"]] == [str(report.id)]

    resp = await client.get(f"/api/employees/{other.id}", headers=manager_headers)
    assert resp.status_code == 403

    resp = await client.get(f"/api/employees/{report.id}", headers=manager_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_employee_role_cannot_list(client, session_factory, tenant_a):
    _, headers = await add_user(session_factory, tenant_a, "employee", "e@acme-corp.com")
    resp = await client.get("/api/employees", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to view employees"


@pytest.mark.asyncio
async def test_search_and_filters(client, session_factory, tenant_a):
    user_id, _ = await add_user(
        session_factory, tenant_a, "employee", "grace@acme-corp.com", name="Grace Hopper"
    )
    await add_employee(
        session_factory,
        user_id,
        department_id=uuid.UUID(tenant_a.departments["Engineering"]),
        position="Compiler Engineer",
    )

    resp = await client.get("/api/employees", params={"search": "hopper"}, headers=tenant_a.headers)
    assert [e["email"] for e in resp.json()["employees"]] == ["grace@acme-corp.com"]

    resp = await client.get(
        "/api/employees", params={"search": "engineering"}, headers=tenant_a.headers
    )
    assert resp.json()["total"] == 1

    resp = await client.get(
        "/api/employees", params={"departmentId": "bogus"}, headers=tenant_a.headers
    )
    assert resp.json()["total"] == 0


@pytest.mark.asyncio
async def test_delete_terminates(client, session_factory, tenant_a):
    user_id, _ = await add_user(session_factory, tenant_a, "employee", "bye@acme-corp.com")
    emp = await add_employee(session_factory, user_id)

    resp = await client.delete(f"/api/employees/{emp.id}", headers=tenant_a.headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Employee record deleted successfully"

    resp = await client.get(f"/api/employees/{emp.id}", headers=tenant_a.headers)
    assert resp.json()["employee"]["status"] == "terminated"
