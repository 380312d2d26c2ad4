from typing import Literal

from pydantic import EmailStr, field_validator

from talenthr.schemas.common import CamelModel

OtpPurpose = Literal["company_admin_signup", "invitation_signup", "login", "password_reset"]


class SendOtpRequest(CamelModel):
    email: EmailStr
    purpose: OtpPurpose

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str
    purpose: OtpPurpose

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("otp")
    @classmethod
    def six_digits(cls, v: str) -> str:
        if len(v) != 6 or not v.isdigit():
            raise ValueError("OTP must be 6 digits")
        return v
