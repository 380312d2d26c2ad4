import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, String, DateTime, ForeignKey, Index, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talenthr.database import Base
from talenthr.models.user import User


class Employee(Base):
    """Employment record for a user. The tenant is the owning user's company."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), unique=True, nullable=False
    )
    employee_code: Mapped[str] = mapped_column(String(140), unique=True, nullable=False)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("departments.id")
    )
    position: Mapped[Optional[str]] = mapped_column(String(100))
    hire_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    employment_type: Mapped[str] = mapped_column(String(20), default="full-time")
    salary: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id")
    )
    work_location: Mapped[Optional[str]] = mapped_column(String(200))
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    address: Mapped[Optional[dict]] = mapped_column(JSON)
    emergency_contact: Mapped[Optional[dict]] = mapped_column(JSON)
    skills: Mapped[list] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Inner join: every employee has a user, and the tenant check needs it on
    # every fetch (including locked ones).
    user: Mapped[User] = relationship(
        User, foreign_keys=[user_id], lazy="joined", innerjoin=True
    )

    __table_args__ = (
        Index("idx_employees_department", "department_id"),
        Index("idx_employees_manager", "manager_id"),
        Index("idx_employees_status", "status"),
    )

    @property
    def company_id(self) -> uuid.UUID:
        return self.user.company_id
