from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, field_validator

from talenthr.schemas.common import CamelModel, UserRef

InvitableRole = Literal["hr_manager", "recruiter", "manager", "employee"]


class InvitationCreate(CamelModel):
    email: EmailStr
    role: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in InvitableRole.__args__:
            raise ValueError(
                "Invalid role. Must be hr_manager, recruiter, manager, or employee"
            )
        return v


class InvitationResponse(CamelModel):
    id: str
    email: str
    role: str
    status: str
    invited_by: Optional[UserRef] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
