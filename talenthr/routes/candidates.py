from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import false, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.errors import Forbidden, ValidationError
from talenthr.middleware.authorization import RECRUITING_ROLES, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.candidate import Candidate
from talenthr.models.job_posting import JobPosting
from talenthr.models.user import User
from talenthr.schemas.common import UserRef, supplied
from talenthr.schemas.recruitment import (
    CandidateCreate,
    CandidateResponse,
    CandidateUpdate,
    JobRef,
)
from talenthr.services import resources
from talenthr.services.guards import merge_partial, parse_uuid

logger = structlog.get_logger()
router = APIRouter()

CLEARABLE_FIELDS = (
    "phone",
    "resume_url",
    "cover_letter",
    "linkedin_url",
    "portfolio_url",
    "current_company",
    "current_position",
    "years_of_experience",
    "expected_salary",
    "source",
    "rating",
    "notes",
)

TRANSFORMS = {
    "first_name": str.strip,
    "last_name": str.strip,
    "email": lambda v: v.strip().lower(),
}

DUPLICATE_APPLICATION = "Candidate has already applied for this job"


async def _ensure_not_applied(
    db: AsyncSession, job_posting_id, email: str, exclude_id=None
) -> None:
    q = select(Candidate.id).where(
        Candidate.job_posting_id == job_posting_id,
        Candidate.email == email,
    )
    if exclude_id is not None:
        q = q.where(Candidate.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise ValidationError(DUPLICATE_APPLICATION)


async def _flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError:
        raise ValidationError(DUPLICATE_APPLICATION)


def _check_recruiter_access(ctx: TenantContext, candidate: Candidate, action: str) -> None:
    # Recruiters work only their own pipeline
    if ctx.role == "recruiter" and candidate.recruiter_id != ctx.user_id:
        raise Forbidden(f"You don't have permission to {action} this candidate")


async def _to_responses(db: AsyncSession, candidates: list[Candidate]) -> list[CandidateResponse]:
    job_ids = {c.job_posting_id for c in candidates}
    recruiter_ids = {c.recruiter_id for c in candidates if c.recruiter_id}

    jobs = {}
    if job_ids:
        rows = await db.execute(select(JobPosting).where(JobPosting.id.in_(job_ids)))
        jobs = {j.id: j for j in rows.scalars()}
    recruiters = {}
    if recruiter_ids:
        rows = await db.execute(select(User).where(User.id.in_(recruiter_ids)))
        recruiters = {u.id: u for u in rows.scalars()}

    out = []
    for c in candidates:
        job = jobs.get(c.job_posting_id)
        recruiter = recruiters.get(c.recruiter_id)
        out.append(
            CandidateResponse(
                id=str(c.id),
                job_posting=JobRef(id=str(job.id), title=job.title, status=job.status) if job else None,
                first_name=c.first_name,
                last_name=c.last_name,
                email=c.email,
                phone=c.phone,
                resume_url=c.resume_url,
                cover_letter=c.cover_letter,
                linkedin_url=c.linkedin_url,
                portfolio_url=c.portfolio_url,
                current_company=c.current_company,
                current_position=c.current_position,
                years_of_experience=c.years_of_experience,
                expected_salary=c.expected_salary,
                status=c.status,
                stage=c.stage,
                source=c.source,
                recruiter=(
                    UserRef(id=str(recruiter.id), name=recruiter.name, email=recruiter.email)
                    if recruiter else None
                ),
                rating=c.rating,
                notes=c.notes,
                skills=c.skills or [],
                applied_at=c.applied_at,
                created_at=c.created_at,
                updated_at=c.updated_at,
            )
        )
    return out


@router.get("")
async def list_candidates(
    job_posting_id: Optional[str] = Query(None, alias="jobPostingId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    stage: Optional[str] = Query(None),
    recruiter_id: Optional[str] = Query(None, alias="recruiterId"),
    search: Optional[str] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to view candidates")
    ),
):
    q = select(Candidate).where(Candidate.company_id == ctx.company_id)
    if job_posting_id:
        job_key = parse_uuid(job_posting_id)
        q = q.where(Candidate.job_posting_id == job_key if job_key else false())
    if status_filter:
        q = q.where(Candidate.status == status_filter)
    if stage:
        q = q.where(Candidate.stage == stage)

    if ctx.role == "recruiter":
        q = q.where(Candidate.recruiter_id == ctx.user_id)
    elif recruiter_id:
        recruiter_key = parse_uuid(recruiter_id)
        q = q.where(Candidate.recruiter_id == recruiter_key if recruiter_key else false())

    if search:
        term = f"%{search.strip()}%"
        q = q.where(
            or_(
                Candidate.first_name.ilike(term),
                Candidate.last_name.ilike(term),
                Candidate.email.ilike(term),
                Candidate.current_company.ilike(term),
                Candidate.current_position.ilike(term),
            )
        )

    result = await ctx.db.execute(q.order_by(Candidate.applied_at.desc()))
    candidates = list(result.scalars().all())
    return {
        "success": True,
        "candidates": await _to_responses(ctx.db, candidates),
        "total": len(candidates),
    }


@router.get("/{candidate_id}")
async def get_candidate(
    candidate_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to view candidates")
    ),
):
    candidate = await resources.candidates(ctx.db).get(candidate_id, ctx.company_id, action="view")
    _check_recruiter_access(ctx, candidate, "view")

    (response,) = await _to_responses(ctx.db, [candidate])
    return {"success": True, "candidate": response}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_candidate(
    body: CandidateCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to create candidates")
    ),
):
    db = ctx.db
    if not all(
        (v or "").strip()
        for v in (body.job_posting_id, body.first_name, body.last_name, body.email)
    ):
        raise ValidationError("Job posting, first name, last name, and email are required")

    job_posting_id = await resources.job_postings(db).resolve_reference(
        body.job_posting_id, ctx.company_id, strict=True
    )
    email = TRANSFORMS["email"](body.email)
    await _ensure_not_applied(db, job_posting_id, email)

    recruiter_id = await resources.users(db).resolve_reference(
        body.recruiter_id or ctx.user_id, ctx.company_id, field="recruiter"
    )

    fields = supplied(body)
    fields.update(
        job_posting_id=job_posting_id,
        recruiter_id=recruiter_id,
        status=body.status or "applied",
        stage=body.stage or "application",
        skills=body.skills or [],
    )

    candidate = Candidate(company_id=ctx.company_id)
    merge_partial(candidate, fields, clearable=CLEARABLE_FIELDS, transforms=TRANSFORMS)
    db.add(candidate)
    await _flush(db)

    logger.info(
        "candidate_created",
        candidate_id=str(candidate.id),
        job_posting_id=str(job_posting_id),
    )
    (response,) = await _to_responses(db, [candidate])
    return {
        "success": True,
        "message": "Candidate application created successfully",
        "candidate": response,
    }


@router.put("/{candidate_id}")
async def update_candidate(
    candidate_id: str,
    body: CandidateUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to update candidates")
    ),
):
    db = ctx.db
    candidate = await resources.candidates(db).get(candidate_id, ctx.company_id, action="update")
    _check_recruiter_access(ctx, candidate, "update")
    changes = supplied(body)

    if changes.get("email"):
        email = TRANSFORMS["email"](changes["email"])
        if email != candidate.email:
            await _ensure_not_applied(
                db, candidate.job_posting_id, email, exclude_id=candidate.id
            )
    if changes.get("recruiter_id"):
        changes["recruiter_id"] = await resources.users(db).resolve_reference(
            changes["recruiter_id"], ctx.company_id, field="recruiter"
        )

    changed = merge_partial(candidate, changes, clearable=CLEARABLE_FIELDS, transforms=TRANSFORMS)
    await _flush(db)
    logger.info("candidate_updated", candidate_id=str(candidate.id), changed=changed)

    (response,) = await _to_responses(db, [candidate])
    return {
        "success": True,
        "message": "Candidate updated successfully",
        "candidate": response,
    }
