from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from talenthr.schemas.common import CamelModel, DepartmentRef, UserRef, UtcDateTime

EmploymentType = Literal["full-time", "part-time", "contract", "intern"]
EmployeeStatus = Literal["active", "on-leave", "terminated", "resigned"]


class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class EmergencyContact(CamelModel):
    name: str
    relationship: str
    phone: str


class EmployeeCreate(CamelModel):
    user_id: Optional[str] = None
    department_id: Optional[str] = None
    position: Optional[str] = Field(None, max_length=100)
    hire_date: Optional[UtcDateTime] = None
    employment_type: Optional[EmploymentType] = None
    salary: Optional[float] = Field(None, ge=0)
    manager_id: Optional[str] = None
    work_location: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    emergency_contact: Optional[EmergencyContact] = None
    skills: Optional[list[str]] = None
    notes: Optional[str] = None


class EmployeeUpdate(CamelModel):
    department_id: Optional[str] = None
    position: Optional[str] = Field(None, min_length=2, max_length=100)
    hire_date: Optional[UtcDateTime] = None
    employment_type: Optional[EmploymentType] = None
    salary: Optional[float] = Field(None, ge=0)
    manager_id: Optional[str] = None
    work_location: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    emergency_contact: Optional[EmergencyContact] = None
    skills: Optional[list[str]] = None
    notes: Optional[str] = None
    status: Optional[EmployeeStatus] = None


class EmployeeResponse(CamelModel):
    id: str
    user_id: str
    employee_code: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    user_status: Optional[str] = None
    department: Optional[DepartmentRef] = None
    position: Optional[str] = None
    hire_date: Optional[datetime] = None
    employment_type: Optional[str] = None
    salary: Optional[float] = None
    manager: Optional[UserRef] = None
    work_location: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[dict] = None
    emergency_contact: Optional[dict] = None
    skills: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
