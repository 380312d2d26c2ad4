from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from talenthr.schemas.common import CamelModel, DepartmentRef, UserRef, strip_required


class DepartmentCreate(CamelModel):
    name: str
    code: Optional[str] = Field(None, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    parent_department_id: Optional[str] = None
    manager_id: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=200)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return strip_required(v, "Department name must be at least 2 characters")


class DepartmentUpdate(CamelModel):
    name: Optional[str] = None
    code: Optional[str] = Field(None, max_length=10)
    description: Optional[str] = Field(None, max_length=500)
    parent_department_id: Optional[str] = None
    manager_id: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=200)
    status: Optional[Literal["active", "inactive"]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return strip_required(v, "Department name must be at least 2 characters")


class DepartmentResponse(CamelModel):
    id: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    parent_department: Optional[DepartmentRef] = None
    manager: Optional[UserRef] = None
    budget: Optional[float] = None
    location: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DepartmentSummary(CamelModel):
    id: str
    name: str
    code: Optional[str] = None
    status: str
