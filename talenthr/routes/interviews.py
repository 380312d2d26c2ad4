from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import false, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.errors import Forbidden, ValidationError
from talenthr.middleware.authorization import ADMIN_ROLES, RECRUITING_ROLES, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.candidate import Candidate
from talenthr.models.interview import Interview
from talenthr.models.job_posting import JobPosting
from talenthr.models.user import User
from talenthr.schemas.common import UserRef, supplied
from talenthr.schemas.recruitment import (
    CandidateRef,
    InterviewCreate,
    InterviewResponse,
    InterviewUpdate,
    JobRef,
)
from talenthr.services import resources
from talenthr.services.guards import merge_partial, parse_uuid

logger = structlog.get_logger()
router = APIRouter()

VIEW_ROLES = RECRUITING_ROLES + ("manager",)

CLEARABLE_FIELDS = ("location", "meeting_link", "notes")


def _participates(interview: Interview, user_id) -> bool:
    return interview.organizer_id == user_id or str(user_id) in (interview.interviewers or [])


async def _resolve_interviewers(ctx: TenantContext, raw_ids: list[str]) -> list[str]:
    users = resources.users(ctx.db)
    resolved = []
    for raw in raw_ids:
        user_id = await users.resolve_reference(raw, ctx.company_id, field="interviewer")
        if user_id is not None and str(user_id) not in resolved:
            resolved.append(str(user_id))
    return resolved


async def _to_responses(db: AsyncSession, interviews: list[Interview]) -> list[InterviewResponse]:
    candidate_ids = {i.candidate_id for i in interviews}
    job_ids = {i.job_posting_id for i in interviews}
    user_ids = {i.organizer_id for i in interviews}
    for i in interviews:
        user_ids.update(filter(None, map(parse_uuid, i.interviewers or [])))

    candidates = {}
    if candidate_ids:
        rows = await db.execute(select(Candidate).where(Candidate.id.in_(candidate_ids)))
        candidates = {c.id: c for c in rows.scalars()}
    jobs = {}
    if job_ids:
        rows = await db.execute(select(JobPosting).where(JobPosting.id.in_(job_ids)))
        jobs = {j.id: j for j in rows.scalars()}
    people = {}
    if user_ids:
        rows = await db.execute(select(User).where(User.id.in_(user_ids)))
        people = {str(u.id): UserRef(id=str(u.id), name=u.name, email=u.email) for u in rows.scalars()}

    out = []
    for i in interviews:
        candidate = candidates.get(i.candidate_id)
        job = jobs.get(i.job_posting_id)
        out.append(
            InterviewResponse(
                id=str(i.id),
                candidate=(
                    CandidateRef(
                        id=str(candidate.id),
                        first_name=candidate.first_name,
                        last_name=candidate.last_name,
                        email=candidate.email,
                    )
                    if candidate else None
                ),
                job_posting=JobRef(id=str(job.id), title=job.title, status=job.status) if job else None,
                type=i.type,
                scheduled_at=i.scheduled_at,
                duration=i.duration,
                location=i.location,
                meeting_link=i.meeting_link,
                is_remote=i.is_remote,
                interviewers=[people[uid] for uid in (i.interviewers or []) if uid in people],
                organizer=people.get(str(i.organizer_id)),
                status=i.status,
                feedback=i.feedback or [],
                notes=i.notes,
                reminder_sent=i.reminder_sent,
                created_at=i.created_at,
                updated_at=i.updated_at,
            )
        )
    return out


@router.get("")
async def list_interviews(
    candidate_id: Optional[str] = Query(None, alias="candidateId"),
    job_posting_id: Optional[str] = Query(None, alias="jobPostingId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    interview_type: Optional[str] = Query(None, alias="type"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*VIEW_ROLES, message="You don't have permission to view interviews")
    ),
):
    q = select(Interview).where(Interview.company_id == ctx.company_id)
    if candidate_id:
        candidate_key = parse_uuid(candidate_id)
        q = q.where(Interview.candidate_id == candidate_key if candidate_key else false())
    if job_posting_id:
        job_key = parse_uuid(job_posting_id)
        q = q.where(Interview.job_posting_id == job_key if job_key else false())
    if status_filter:
        q = q.where(Interview.status == status_filter)
    if interview_type:
        q = q.where(Interview.type == interview_type)
    if start_date:
        q = q.where(Interview.scheduled_at >= start_date.replace(tzinfo=None))
    if end_date:
        q = q.where(Interview.scheduled_at <= end_date.replace(tzinfo=None))

    result = await ctx.db.execute(q.order_by(Interview.scheduled_at))
    interviews = list(result.scalars().all())

    # Interviewer ids live in a JSON list, filtered here rather than per dialect
    if ctx.role in ("recruiter", "manager"):
        interviews = [i for i in interviews if _participates(i, ctx.user_id)]

    return {
        "success": True,
        "interviews": await _to_responses(ctx.db, interviews),
        "total": len(interviews),
    }


@router.get("/{interview_id}")
async def get_interview(
    interview_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*VIEW_ROLES, message="You don't have permission to view interviews")
    ),
):
    interview = await resources.interviews(ctx.db).get(interview_id, ctx.company_id, action="view")
    if ctx.role in ("recruiter", "manager") and not _participates(interview, ctx.user_id):
        raise Forbidden("You don't have permission to view this interview")

    (response,) = await _to_responses(ctx.db, [interview])
    return {"success": True, "interview": response}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_interview(
    body: InterviewCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*RECRUITING_ROLES, message="You don't have permission to schedule interviews")
    ),
):
    db = ctx.db
    if not (body.candidate_id and body.job_posting_id and body.type and body.scheduled_at):
        raise ValidationError("Candidate, job posting, type, and scheduled time are required")

    candidate_id = await resources.candidates(db).resolve_reference(
        body.candidate_id, ctx.company_id, strict=True
    )
    job_posting_id = await resources.job_postings(db).resolve_reference(
        body.job_posting_id, ctx.company_id, strict=True
    )
    interviewers = await _resolve_interviewers(ctx, body.interviewers or [])

    fields = supplied(body)
    fields.update(
        candidate_id=candidate_id,
        job_posting_id=job_posting_id,
        interviewers=interviewers,
        duration=body.duration or 60,
        is_remote=bool(body.is_remote),
        status=body.status or "scheduled",
    )

    interview = Interview(company_id=ctx.company_id, organizer_id=ctx.user_id, feedback=[])
    merge_partial(interview, fields, clearable=CLEARABLE_FIELDS)
    db.add(interview)
    await db.flush()

    logger.info(
        "interview_scheduled",
        interview_id=str(interview.id),
        candidate_id=str(candidate_id),
        scheduled_at=interview.scheduled_at.isoformat(),
    )
    (response,) = await _to_responses(db, [interview])
    return {
        "success": True,
        "message": "Interview scheduled successfully",
        "interview": response,
    }


@router.put("/{interview_id}")
async def update_interview(
    interview_id: str,
    body: InterviewUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
):
    db = ctx.db
    interview = await resources.interviews(db).get(interview_id, ctx.company_id, action="update")
    if ctx.role not in ADMIN_ROLES and not _participates(interview, ctx.user_id):
        raise Forbidden("You don't have permission to update this interview")

    changes = supplied(body)
    if changes.get("interviewers") is not None:
        changes["interviewers"] = await _resolve_interviewers(ctx, changes["interviewers"])
    if changes.get("feedback") is not None:
        changes["feedback"] = [f.model_dump(by_alias=True) for f in body.feedback]

    changed = merge_partial(interview, changes, clearable=CLEARABLE_FIELDS)
    await db.flush()
    logger.info("interview_updated", interview_id=str(interview.id), changed=changed)

    (response,) = await _to_responses(db, [interview])
    return {
        "success": True,
        "message": "Interview updated successfully",
        "interview": response,
    }
