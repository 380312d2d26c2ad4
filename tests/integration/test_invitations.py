from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from conftest import add_user
from talenthr.models.invitation import Invitation


async def _invite(client, tenant, email, role="recruiter", headers=None):
    return await client.post(
        "/api/invitations",
        json={"email": email, "role": role},
        headers=headers or tenant.headers,
    )


def _token(resp) -> str:
    return resp.json()["invitation"]["link"].split("token=")[1]


@pytest.mark.asyncio
async def test_invite_validate_and_accept(client, tenant_a):
    resp = await _invite(client, tenant_a, "Recruiter@Acme-Corp.com")
    assert resp.status_code == 201
    invitation = resp.json()["invitation"]
    assert invitation["email"] == "recruiter@acme-corp.com"
    assert invitation["link"].startswith("http://localhost:3000/signup?token=")
    token = _token(resp)

    check = await client.get("/api/invitations/validate", params={"token": token})
    assert check.status_code == 200
    assert check.json()["valid"] is True
    assert check.json()["invitation"]["company"]["name"] == "Acme Corp"

    signup = await client.post(
        "/api/auth/signup",
        json={
            "email": "recruiter@acme-corp.com",
            "password": "Recruit3r!",
            "name": "Rita Recruiter",
            "token": token,
        },
    )
    assert signup.status_code == 201
    assert signup.json()["user"]["role"] == "recruiter"
    assert signup.json()["company"]["id"] == str(tenant_a.company_id)

    again = await client.get("/api/invitations/validate", params={"token": token})
    assert again.status_code == 400
    assert again.json() == {
        "success": False,
        "message": "This invitation has already been accepted",
        "valid": False,
    }

    listing = await client.get("/api/invitations", headers=tenant_a.headers)
    (row,) = listing.json()["invitations"]
    assert row["status"] == "accepted"
    assert row["invitedBy"]["email"] == tenant_a.admin_email


@pytest.mark.asyncio
async def test_signup_email_must_match_invitation(client, tenant_a):
    token = _token(await _invite(client, tenant_a, "right@acme-corp.com"))
    resp = await client.post(
        "/api/auth/signup",
        json={"email": "wrong@acme-corp.com", "password": "Passw0rd!", "name": "Wrong", "token": token},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email does not match invitation"


@pytest.mark.asyncio
async def test_duplicate_pending_invitation_conflicts(client, tenant_a):
    assert (await _invite(client, tenant_a, "dup@acme-corp.com")).status_code == 201
    resp = await _invite(client, tenant_a, "dup@acme-corp.com")
    assert resp.status_code == 409
    assert resp.json()["message"] == "A pending invitation already exists for this email"


@pytest.mark.asyncio
async def test_expired_pending_invitation_is_replaced(client, session_factory, tenant_a):
    await _invite(client, tenant_a, "late@acme-corp.com")
    async with session_factory() as session:
        await session.execute(
            update(Invitation).values(expires_at=datetime.utcnow() - timedelta(days=1))
        )
        await session.commit()

    resp = await _invite(client, tenant_a, "late@acme-corp.com")
    assert resp.status_code == 201

    listing = await client.get("/api/invitations", headers=tenant_a.headers)
    statuses = sorted(i["status"] for i in listing.json()["invitations"])
    assert statuses == ["expired", "pending"]


@pytest.mark.asyncio
async def test_expired_link_cannot_be_used(client, session_factory, tenant_a):
    token = _token(await _invite(client, tenant_a, "slow@acme-corp.com"))
    async with session_factory() as session:
        await session.execute(
            update(Invitation).values(expires_at=datetime.utcnow() - timedelta(minutes=1))
        )
        await session.commit()

    resp = await client.post(
        "/api/auth/signup",
        json={"email": "slow@acme-corp.com", "password": "Passw0rd!", "name": "Slow", "token": token},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invitation link has expired"

    check = await client.get("/api/invitations/validate", params={"token": token})
    assert check.json()["message"] == "This invitation has expired"


@pytest.mark.asyncio
async def test_validate_requires_known_token(client):
    resp = await client.get("/api/invitations/validate")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invitation token is required"

    resp = await client.get("/api/invitations/validate", params={"token": "deadbeef"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid invitation token"


@pytest.mark.asyncio
async def test_cannot_invite_existing_member(client, tenant_a):
    resp = await _invite(client, tenant_a, tenant_a.admin_email)
    assert resp.status_code == 409
    assert resp.json()["message"] == "User with this email already exists in your company"


@pytest.mark.asyncio
async def test_invalid_role_rejected(client, tenant_a):
    resp = await _invite(client, tenant_a, "boss@acme-corp.com", role="company_admin")
    assert resp.status_code == 400
    assert resp.json()["message"] == (
        "Invalid role. Must be hr_manager, recruiter, manager, or employee"
    )


@pytest.mark.asyncio
async def test_hr_manager_cannot_invite_hr_manager(client, session_factory, tenant_a):
    _, hr_headers = await add_user(session_factory, tenant_a, "hr_manager", "hr@acme-corp.com")
    resp = await _invite(client, tenant_a, "hr2@acme-corp.com", role="hr_manager", headers=hr_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "HR Managers cannot invite other HR Managers"

    resp = await _invite(client, tenant_a, "rec@acme-corp.com", role="recruiter", headers=hr_headers)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_cancel_invitation(client, tenant_a, tenant_b):
    resp = await _invite(client, tenant_a, "maybe@acme-corp.com")
    invitation_id = resp.json()["invitation"]["id"]
    token = _token(resp)

    foreign = await client.delete(f"/api/invitations/{invitation_id}", headers=tenant_b.headers)
    assert foreign.status_code == 403
    assert foreign.json()["message"] == "You don't have permission to cancel this invitation"

    resp = await client.delete(f"/api/invitations/{invitation_id}", headers=tenant_a.headers)
    assert resp.status_code == 200

    check = await client.get("/api/invitations/validate", params={"token": token})
    assert check.json()["message"] == "This invitation has been cancelled"


@pytest.mark.asyncio
async def test_accepted_invitation_cannot_be_cancelled(client, tenant_a):
    resp = await _invite(client, tenant_a, "joined@acme-corp.com", role="employee")
    invitation_id = resp.json()["invitation"]["id"]
    await client.post(
        "/api/auth/signup",
        json={"email": "joined@acme-corp.com", "password": "Passw0rd!", "name": "Joined", "token": _token(resp)},
    )

    resp = await client.delete(f"/api/invitations/{invitation_id}", headers=tenant_a.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot cancel an accepted invitation"
