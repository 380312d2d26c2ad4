from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from talenthr.schemas.common import CamelModel, strip_required

Role = Literal["company_admin", "hr_manager", "recruiter", "manager", "employee"]


def _min_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    return v


class SignupRequest(CamelModel):
    """
    Either a company-admin signup (``role="company_admin"`` + ``company_name``)
    or an invitation signup (``token``).
    """

    email: EmailStr
    password: str
    name: str
    role: Optional[Role] = None
    company_name: Optional[str] = None
    token: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _min_password(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return strip_required(v, "Name must be at least 2 characters")

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return strip_required(v, "Company name must be at least 2 characters")


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class RefreshTokenRequest(CamelModel):
    refresh_token: str


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _min_password(v)


class CompanyResponse(CamelModel):
    id: str
    name: str
    slug: str
    status: str


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    status: str
    company_id: str
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
