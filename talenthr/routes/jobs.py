from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, cast, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.errors import ValidationError
from talenthr.middleware.authorization import RECRUITING_ROLES, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.candidate import Candidate
from talenthr.models.department import Department
from talenthr.models.job_posting import JobPosting
from talenthr.models.user import User
from talenthr.schemas.common import DepartmentRef, UserRef, supplied
from talenthr.schemas.recruitment import JobCreate, JobResponse, JobUpdate
from talenthr.services import resources
from talenthr.services.guards import merge_partial, parse_uuid, soft_delete

logger = structlog.get_logger()
router = APIRouter()

CLEARABLE_FIELDS = (
    "department_id",
    "location",
    "salary_range",
    "application_deadline",
    "experience_level",
)


async def _applications_count(db: AsyncSession, job_ids: list) -> dict:
    if not job_ids:
        return {}
    rows = await db.execute(
        select(Candidate.job_posting_id, func.count())
        .where(Candidate.job_posting_id.in_(job_ids))
        .group_by(Candidate.job_posting_id)
    )
    return dict(rows.all())


async def _to_responses(db: AsyncSession, jobs: list[JobPosting]) -> list[JobResponse]:
    dept_ids = {j.department_id for j in jobs if j.department_id}
    user_ids = {j.posted_by for j in jobs}

    depts = {}
    if dept_ids:
        rows = await db.execute(select(Department).where(Department.id.in_(dept_ids)))
        depts = {d.id: d for d in rows.scalars()}
    posters = {}
    if user_ids:
        rows = await db.execute(select(User).where(User.id.in_(user_ids)))
        posters = {u.id: u for u in rows.scalars()}
    counts = await _applications_count(db, [j.id for j in jobs])

    out = []
    for j in jobs:
        dept = depts.get(j.department_id)
        poster = posters.get(j.posted_by)
        out.append(
            JobResponse(
                id=str(j.id),
                title=j.title,
                description=j.description,
                department_id=str(j.department_id) if j.department_id else None,
                department=(
                    DepartmentRef(id=str(dept.id), name=dept.name, code=dept.code)
                    if dept else None
                ),
                employment_type=j.employment_type,
                location=j.location,
                remote=j.remote,
                salary_range=j.salary_range,
                requirements=j.requirements or [],
                responsibilities=j.responsibilities or [],
                qualifications=j.qualifications or [],
                tags=j.tags or [],
                posted_by=(
                    UserRef(id=str(poster.id), name=poster.name, email=poster.email)
                    if poster else None
                ),
                status=j.status,
                application_deadline=j.application_deadline,
                number_of_openings=j.number_of_openings,
                experience_level=j.experience_level,
                applications_count=counts.get(j.id, 0),
                created_at=j.created_at,
                updated_at=j.updated_at,
            )
        )
    return out


def _title(value: str) -> str:
    value = value.strip()
    if len(value) < 3:
        raise ValidationError("Title must be at least 3 characters")
    return value


@router.get("")
async def list_jobs(
    status_filter: Optional[str] = Query(None, alias="status"),
    department_id: Optional[str] = Query(None, alias="departmentId"),
    employment_type: Optional[str] = Query(None, alias="employmentType"),
    search: Optional[str] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
):
    q = select(JobPosting).where(JobPosting.company_id == ctx.company_id)
    if status_filter:
        q = q.where(JobPosting.status == status_filter)
    if department_id:
        dept_key = parse_uuid(department_id)
        q = q.where(JobPosting.department_id == dept_key if dept_key else false())
    if employment_type:
        q = q.where(JobPosting.employment_type == employment_type)
    if search:
        term = f"%{search.strip()}%"
        q = q.where(
            or_(
                JobPosting.title.ilike(term),
                JobPosting.description.ilike(term),
                JobPosting.location.ilike(term),
                cast(JobPosting.tags, String).ilike(term),
            )
        )

    result = await ctx.db.execute(q.order_by(JobPosting.created_at.desc()))
    jobs = list(result.scalars().all())
    return {"success": True, "jobs": await _to_responses(ctx.db, jobs), "total": len(jobs)}


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
):
    job = await resources.job_postings(ctx.db).get(job_id, ctx.company_id, action="view")
    (response,) = await _to_responses(ctx.db, [job])
    return {"success": True, "job": response}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(
    body: JobCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to create job postings")
    ),
):
    db = ctx.db
    if not (body.title and body.title.strip()) or not (body.description and body.description.strip()):
        raise ValidationError("Title and description are required")

    department_id = await resources.departments(db).resolve_reference(
        body.department_id, ctx.company_id, field="department"
    )

    fields = supplied(body)
    fields.update(
        title=_title(body.title),
        department_id=department_id,
        employment_type=body.employment_type or "full-time",
        remote=bool(body.remote),
        status=body.status or "draft",
        number_of_openings=body.number_of_openings or 1,
        requirements=body.requirements or [],
        responsibilities=body.responsibilities or [],
        qualifications=body.qualifications or [],
        tags=body.tags or [],
    )

    job = JobPosting(company_id=ctx.company_id, posted_by=ctx.user_id)
    merge_partial(job, fields, clearable=CLEARABLE_FIELDS)
    db.add(job)
    await db.flush()

    logger.info("job_posting_created", job_id=str(job.id), title=job.title)
    (response,) = await _to_responses(db, [job])
    return {"success": True, "message": "Job posting created successfully", "job": response}


@router.put("/{job_id}")
async def update_job(
    job_id: str,
    body: JobUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to update job postings")
    ),
):
    db = ctx.db
    job = await resources.job_postings(db).get(job_id, ctx.company_id, action="update")
    changes = supplied(body)

    if changes.get("title"):
        changes["title"] = _title(changes["title"])
    if "department_id" in changes:
        changes["department_id"] = await resources.departments(db).resolve_reference(
            changes["department_id"], ctx.company_id, field="department"
        )

    changed = merge_partial(job, changes, clearable=CLEARABLE_FIELDS)
    await db.flush()
    logger.info("job_posting_updated", job_id=str(job.id), changed=changed)

    (response,) = await _to_responses(db, [job])
    return {"success": True, "message": "Job posting updated successfully", "job": response}


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to delete job postings")
    ),
):
    job = await resources.job_postings(ctx.db).get(job_id, ctx.company_id, action="delete")
    soft_delete(job, "cancelled")
    await ctx.db.flush()
    logger.info("job_posting_cancelled", job_id=str(job.id))

    return {"success": True, "message": "Job posting deleted successfully"}
