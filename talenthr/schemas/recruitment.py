from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from talenthr.schemas.common import CamelModel, DepartmentRef, UserRef, UtcDateTime

JobStatus = Literal["draft", "published", "closed", "cancelled"]
EmploymentType = Literal["full-time", "part-time", "contract", "intern"]
ExperienceLevel = Literal["entry", "mid", "senior", "executive"]
CandidateStatus = Literal[
    "applied", "screening", "interview", "offer", "hired", "rejected", "withdrawn"
]
CandidateStage = Literal["application", "phone-screen", "technical", "final", "offer"]
InterviewType = Literal["phone-screen", "technical", "behavioral", "final", "panel"]
InterviewStatus = Literal["scheduled", "completed", "cancelled", "rescheduled", "no-show"]


class SalaryRange(CamelModel):
    min: float = Field(..., ge=0)
    max: float = Field(..., ge=0)
    currency: str = "USD"


# ---------- job postings ----------

class _JobFields(CamelModel):
    department_id: Optional[str] = None
    employment_type: Optional[EmploymentType] = None
    location: Optional[str] = Field(None, max_length=200)
    remote: Optional[bool] = None
    salary_range: Optional[SalaryRange] = None
    requirements: Optional[list[str]] = None
    responsibilities: Optional[list[str]] = None
    qualifications: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    status: Optional[JobStatus] = None
    application_deadline: Optional[UtcDateTime] = None
    number_of_openings: Optional[int] = Field(None, ge=1)
    experience_level: Optional[ExperienceLevel] = None


class JobCreate(_JobFields):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None


class JobUpdate(_JobFields):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None


class JobResponse(CamelModel):
    id: str
    title: str
    description: str
    department_id: Optional[str] = None
    department: Optional[DepartmentRef] = None
    employment_type: str
    location: Optional[str] = None
    remote: bool = False
    salary_range: Optional[dict] = None
    requirements: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    qualifications: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    posted_by: Optional[UserRef] = None
    status: str
    application_deadline: Optional[datetime] = None
    number_of_openings: int = 1
    experience_level: Optional[str] = None
    applications_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- candidates ----------

class _CandidateFields(CamelModel):
    phone: Optional[str] = None
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    current_company: Optional[str] = None
    current_position: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0)
    expected_salary: Optional[SalaryRange] = None
    status: Optional[CandidateStatus] = None
    stage: Optional[CandidateStage] = None
    source: Optional[str] = None
    recruiter_id: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None
    skills: Optional[list[str]] = None


class CandidateCreate(_CandidateFields):
    job_posting_id: Optional[str] = None
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = None


class CandidateUpdate(_CandidateFields):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = None


class JobRef(CamelModel):
    id: str
    title: str
    status: Optional[str] = None


class CandidateResponse(CamelModel):
    id: str
    job_posting: Optional[JobRef] = None
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    resume_url: Optional[str] = None
    cover_letter: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    current_company: Optional[str] = None
    current_position: Optional[str] = None
    years_of_experience: Optional[int] = None
    expected_salary: Optional[dict] = None
    status: str
    stage: str
    source: Optional[str] = None
    recruiter: Optional[UserRef] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    applied_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- interviews ----------

class InterviewFeedback(CamelModel):
    interviewer_id: str
    rating: int = Field(..., ge=1, le=5)
    comments: Optional[str] = None
    recommendation: Optional[
        Literal["strong-yes", "yes", "maybe", "no", "strong-no"]
    ] = None


class InterviewCreate(CamelModel):
    candidate_id: Optional[str] = None
    job_posting_id: Optional[str] = None
    type: Optional[InterviewType] = None
    scheduled_at: Optional[UtcDateTime] = None
    duration: Optional[int] = Field(None, ge=15)
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    is_remote: Optional[bool] = None
    interviewers: Optional[list[str]] = None
    status: Optional[InterviewStatus] = None
    notes: Optional[str] = None


class InterviewUpdate(CamelModel):
    type: Optional[InterviewType] = None
    scheduled_at: Optional[UtcDateTime] = None
    duration: Optional[int] = Field(None, ge=15)
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    is_remote: Optional[bool] = None
    interviewers: Optional[list[str]] = None
    status: Optional[InterviewStatus] = None
    feedback: Optional[list[InterviewFeedback]] = None
    notes: Optional[str] = None
    reminder_sent: Optional[bool] = None


class CandidateRef(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str


class InterviewResponse(CamelModel):
    id: str
    candidate: Optional[CandidateRef] = None
    job_posting: Optional[JobRef] = None
    type: str
    scheduled_at: datetime
    duration: int
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    is_remote: bool = False
    interviewers: list[UserRef] = Field(default_factory=list)
    organizer: Optional[UserRef] = None
    status: str
    feedback: list[dict] = Field(default_factory=list)
    notes: Optional[str] = None
    reminder_sent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
