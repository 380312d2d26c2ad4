from typing import Literal, Optional

from pydantic import field_validator

from talenthr.schemas.auth import Role
from talenthr.schemas.common import CamelModel, strip_required


class UserUpdate(CamelModel):
    name: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[Literal["active", "inactive", "pending"]] = None
    password: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return strip_required(v, "Name must be at least 2 characters")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v
