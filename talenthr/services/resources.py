"""Tenant-scoped accessors for each entity type, bound to a request session."""

from sqlalchemy.ext.asyncio import AsyncSession

from talenthr.models.candidate import Candidate
from talenthr.models.department import Department
from talenthr.models.employee import Employee
from talenthr.models.interview import Interview
from talenthr.models.invitation import Invitation
from talenthr.models.job_posting import JobPosting
from talenthr.models.user import User
from talenthr.services.guards import TenantScopedResource, session_fetcher


def departments(db: AsyncSession) -> TenantScopedResource:
    return TenantScopedResource("Department", session_fetcher(db, Department))


def users(db: AsyncSession) -> TenantScopedResource:
    return TenantScopedResource("User", session_fetcher(db, User))


def employees(db: AsyncSession) -> TenantScopedResource:
    # Employees carry no company column; the owning user decides the tenant.
    return TenantScopedResource(
        "Employee",
        session_fetcher(db, Employee),
        tenant_of=lambda e: e.user.company_id,
    )


def job_postings(db: AsyncSession) -> TenantScopedResource:
    return TenantScopedResource("Job posting", session_fetcher(db, JobPosting))


def candidates(db: AsyncSession) -> TenantScopedResource:
    return TenantScopedResource("Candidate", session_fetcher(db, Candidate))


def interviews(db: AsyncSession) -> TenantScopedResource:
    return TenantScopedResource("Interview", session_fetcher(db, Interview))


def invitations(db: AsyncSession) -> TenantScopedResource:
    return TenantScopedResource("Invitation", session_fetcher(db, Invitation))
