import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Integer, String, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from talenthr.database import Base


class JobPosting(Base):
    __tablename__ = "job_postings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("departments.id")
    )
    employment_type: Mapped[str] = mapped_column(String(20), default="full-time")
    location: Mapped[Optional[str]] = mapped_column(String(200))
    remote: Mapped[bool] = mapped_column(Boolean, default=False)
    salary_range: Mapped[Optional[dict]] = mapped_column(JSON)
    requirements: Mapped[list] = mapped_column(JSON, default=list)
    responsibilities: Mapped[list] = mapped_column(JSON, default=list)
    qualifications: Mapped[list] = mapped_column(JSON, default=list)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    posted_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="draft")
    application_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime)
    number_of_openings: Mapped[int] = mapped_column(Integer, default=1)
    experience_level: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_jobs_company_status", "company_id", "status"),
        Index("idx_jobs_department", "department_id"),
    )
