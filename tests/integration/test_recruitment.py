"""Jobs, candidates and interviews: tenant scoping and per-role visibility."""

import pytest

from conftest import add_user

JOB = {
    "title": "Platform Engineer",
    "description": "Build and run the platform.",
    "location": "Remote",
    "remote": True,
    "salaryRange": {"min": 120000, "max": 150000},
    "tags": ["kubernetes", "python"],
}


async def _job(client, tenant, headers=None, **overrides):
    resp = await client.post(
        "/api/jobs", json={**JOB, **overrides}, headers=headers or tenant.headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["job"]


async def _candidate(client, tenant, job_id, email="ada@mail.io", headers=None, **extra):
    resp = await client.post(
        "/api/candidates",
        json={
            "jobPostingId": job_id,
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": email,
            **extra,
        },
        headers=headers or tenant.headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["candidate"]


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_job_defaults(client, tenant_a):
    job = await _job(client, tenant_a, departmentId=tenant_a.departments["Engineering"])
    assert job["status"] == "draft"
    assert job["employmentType"] == "full-time"
    assert job["numberOfOpenings"] == 1
    assert job["department"]["name"] == "Engineering"
    assert job["salaryRange"] == {"min": 120000, "max": 150000, "currency": "USD"}
    assert job["postedBy"]["id"] == str(tenant_a.admin_id)
    assert job["applicationsCount"] == 0


@pytest.mark.asyncio
async def test_create_job_validation(client, tenant_a, tenant_b):
    resp = await client.post("/api/jobs", json={"title": "Ops"}, headers=tenant_a.headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Title and description are required"

    resp = await client.post(
        "/api/jobs",
        json={**JOB, "departmentId": tenant_b.departments["Engineering"]},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid department"


@pytest.mark.asyncio
async def test_job_listing_filters_and_counts(client, tenant_a, tenant_b):
    platform = await _job(client, tenant_a)
    await _job(client, tenant_a, title="Account Executive", tags=["sales"], employmentType="contract")
    await _job(client, tenant_b, title="Foreign Role")
    await _candidate(client, tenant_a, platform["id"])

    resp = await client.get("/api/jobs", headers=tenant_a.headers)
    jobs = {j["title"]: j for j in resp.json()["jobs"]}
    assert set(jobs) == {"Platform Engineer", "Account Executive"}
    assert jobs["Platform Engineer"]["applicationsCount"] == 1

    resp = await client.get("/api/jobs", params={"search": "kubernetes"}, headers=tenant_a.headers)
    assert [j["title"] for j in resp.json()["jobs"]] == ["Platform Engineer"]

    resp = await client.get(
        "/api/jobs", params={"employmentType": "contract"}, headers=tenant_a.headers
    )
    assert [j["title"] for j in resp.json()["jobs"]] == ["Account Executive"]


@pytest.mark.asyncio
async def test_update_and_cancel_job(client, tenant_a, tenant_b):
    job = await _job(client, tenant_a)

    resp = await client.put(
        f"/api/jobs/{job['id']}", json={"status": "published"}, headers=tenant_a.headers
    )
    assert resp.status_code == 200
    updated = resp.json()["job"]
    assert updated["status"] == "published"
    assert updated["title"] == "Platform Engineer"
    assert updated["tags"] == ["kubernetes", "python"]

    resp = await client.put(
        f"/api/jobs/{job['id']}", json={"status": "closed"}, headers=tenant_b.headers
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to update this job posting"

    resp = await client.delete(f"/api/jobs/{job['id']}", headers=tenant_a.headers)
    assert resp.status_code == 200
    resp = await client.get(f"/api/jobs/{job['id']}", headers=tenant_a.headers)
    assert resp.json()["job"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_employees_can_browse_but_not_post_jobs(client, session_factory, tenant_a):
    await _job(client, tenant_a)
    _, headers = await add_user(session_factory, tenant_a, "employee", "e@acme-corp.com")

    resp = await client.get("/api/jobs", headers=headers)
    assert resp.json()["total"] == 1

    resp = await client.post("/api/jobs", json=JOB, headers=headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to create job postings"


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_candidate_application(client, tenant_a):
    job = await _job(client, tenant_a)
    candidate = await _candidate(client, tenant_a, job["id"], email="Ada@Mail.io")
    assert candidate["email"] == "ada@mail.io"
    assert candidate["status"] == "applied"
    assert candidate["stage"] == "application"
    assert candidate["jobPosting"]["title"] == "Platform Engineer"
    assert candidate["recruiter"]["id"] == str(tenant_a.admin_id)

    resp = await client.post(
        "/api/candidates",
        json={"jobPostingId": job["id"], "firstName": "Ada", "lastName": "L", "email": "ada@mail.io"},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Candidate has already applied for this job"


@pytest.mark.asyncio
async def test_candidate_requires_fields_and_own_job(client, tenant_a, tenant_b):
    resp = await client.post(
        "/api/candidates", json={"firstName": "No", "lastName": "Job"}, headers=tenant_a.headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Job posting, first name, last name, and email are required"

    foreign_job = await _job(client, tenant_b)
    resp = await client.post(
        "/api/candidates",
        json={"jobPostingId": foreign_job["id"], "firstName": "A", "lastName": "B", "email": "a@b.io"},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Job posting does not belong to your company"


@pytest.mark.asyncio
async def test_recruiters_work_only_their_own_candidates(client, session_factory, tenant_a):
    job = await _job(client, tenant_a)
    rec_id, rec_headers = await add_user(session_factory, tenant_a, "recruiter", "r1@acme-corp.com")
    _, other_headers = await add_user(session_factory, tenant_a, "recruiter", "r2@acme-corp.com")

    mine = await _candidate(client, tenant_a, job["id"], headers=rec_headers)
    assert mine["recruiter"]["id"] == str(rec_id)
    await _candidate(client, tenant_a, job["id"], email="other@mail.io")

    resp = await client.get("/api/candidates", headers=rec_headers)
    assert [c["id"] for c in resp.json()["candidates"]] == [mine["id"]]

    resp = await client.get("/api/candidates", headers=tenant_a.headers)
    assert resp.json()["total"] == 2

    resp = await client.get(f"/api/candidates/{mine['id']}", headers=other_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to view this candidate"

    resp = await client.put(
        f"/api/candidates/{mine['id']}", json={"stage": "technical"}, headers=other_headers
    )
    assert resp.status_code == 403

    resp = await client.put(
        f"/api/candidates/{mine['id']}",
        json={"stage": "technical", "status": "interview", "rating": 4},
        headers=rec_headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["candidate"]
    assert (updated["stage"], updated["status"], updated["rating"]) == ("technical", "interview", 4)


# ---------------------------------------------------------------------------
# Interviews
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_schedule_and_update_interview(client, session_factory, tenant_a):
    job = await _job(client, tenant_a)
    candidate = await _candidate(client, tenant_a, job["id"])
    mgr_id, mgr_headers = await add_user(session_factory, tenant_a, "manager", "m@acme-corp.com")
    _, bystander_headers = await add_user(session_factory, tenant_a, "manager", "b@acme-corp.com")

    resp = await client.post(
        "/api/interviews",
        json={
            "candidateId": candidate["id"],
            "jobPostingId": job["id"],
            "type": "technical",
            "scheduledAt": "2026-11-02T15:00:00Z",
            "interviewers": [str(mgr_id)],
        },
        headers=tenant_a.headers,
    )
    assert resp.status_code == 201, resp.text
    interview = resp.json()["interview"]
    assert interview["duration"] == 60
    assert interview["status"] == "scheduled"
    assert interview["organizer"]["id"] == str(tenant_a.admin_id)
    assert [i["email"] for i in interview["interviewers"]] == ["m@acme-corp.com"]
    assert interview["scheduledAt"].startswith("2026-11-02T15:00:00")

    resp = await client.get("/api/interviews", headers=mgr_headers)
    assert [i["id"] for i in resp.json()["interviews"]] == [interview["id"]]
    resp = await client.get("/api/interviews", headers=bystander_headers)
    assert resp.json()["total"] == 0
    resp = await client.get(f"/api/interviews/{interview['id']}", headers=bystander_headers)
    assert resp.status_code == 403

    resp = await client.put(
        f"/api/interviews/{interview['id']}",
        json={"status": "completed"},
        headers=bystander_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "You don't have permission to update this interview"

    resp = await client.put(
        f"/api/interviews/{interview['id']}",
        json={
            "status": "completed",
            "feedback": [
                {"interviewerId": str(mgr_id), "rating": 5, "recommendation": "strong-yes"}
            ],
        },
        headers=mgr_headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["interview"]
    assert updated["status"] == "completed"
    assert updated["feedback"][0]["recommendation"] == "strong-yes"
    assert updated["type"] == "technical"


@pytest.mark.asyncio
async def test_interview_references_must_be_same_tenant(client, tenant_a, tenant_b):
    job = await _job(client, tenant_a)
    candidate = await _candidate(client, tenant_a, job["id"])
    base = {
        "candidateId": candidate["id"],
        "jobPostingId": job["id"],
        "type": "phone-screen",
        "scheduledAt": "2026-11-03T09:30:00",
    }

    resp = await client.post(
        "/api/interviews",
        json={**base, "interviewers": [str(tenant_b.admin_id)]},
        headers=tenant_a.headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid interviewer"

    resp = await client.post("/api/interviews", json=base, headers=tenant_b.headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Candidate does not belong to your company"

    resp = await client.post(
        "/api/interviews", json={"candidateId": candidate["id"]}, headers=tenant_a.headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Candidate, job posting, type, and scheduled time are required"


@pytest.mark.asyncio
async def test_salary_currency_defaults_on_create_and_update(client, tenant_a):
    job = await _job(client, tenant_a, salaryRange={"min": 80000, "max": 95000})
    assert job["salaryRange"]["currency"] == "USD"

    resp = await client.put(
        f"/api/jobs/{job['id']}",
        json={"salaryRange": {"min": 85000, "max": 99000}},
        headers=tenant_a.headers,
    )
    assert resp.json()["job"]["salaryRange"] == {"min": 85000, "max": 99000, "currency": "USD"}

    candidate = await _candidate(
        client, tenant_a, job["id"], expectedSalary={"min": 90000, "max": 110000}
    )
    assert candidate["expectedSalary"] == {"min": 90000, "max": 110000, "currency": "USD"}

    resp = await client.get(f"/api/candidates/{candidate['id']}", headers=tenant_a.headers)
    assert resp.json()["candidate"]["expectedSalary"]["currency"] == "USD"
