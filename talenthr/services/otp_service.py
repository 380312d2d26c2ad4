import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.config import settings
from talenthr.errors import ValidationError
from talenthr.models.otp import OtpCode
from talenthr.services.auth_service import hash_password, verify_password

logger = structlog.get_logger()


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


async def issue_otp(db: AsyncSession, email: str, purpose: str) -> str:
    """Replace any unverified codes for (email, purpose) with a fresh one.

    Returns the plain code; only its bcrypt hash is stored.
    """
    code = generate_otp()

    await db.execute(
        delete(OtpCode).where(
            OtpCode.email == email,
            OtpCode.purpose == purpose,
            OtpCode.verified.is_(False),
        )
    )
    db.add(
        OtpCode(
            email=email,
            code_hash=hash_password(code),
            purpose=purpose,
            expires_at=datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
            attempts=0,
            max_attempts=settings.OTP_MAX_ATTEMPTS,
            verified=False,
        )
    )
    await db.flush()

    logger.info("otp_issued", email=email, purpose=purpose)
    return code


async def _latest(db: AsyncSession, email: str, purpose: str, verified: bool) -> Optional[OtpCode]:
    result = await db.execute(
        select(OtpCode)
        .where(
            OtpCode.email == email,
            OtpCode.purpose == purpose,
            OtpCode.verified.is_(verified),
        )
        .order_by(OtpCode.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def verify_otp(db: AsyncSession, email: str, code: str, purpose: str) -> OtpCode:
    record = await _latest(db, email, purpose, verified=False)
    if record is None:
        raise ValidationError("OTP not found or already used")

    if record.expires_at < datetime.utcnow():
        raise ValidationError("OTP has expired. Please request a new one.")

    if record.attempts >= record.max_attempts:
        raise ValidationError(
            "Maximum verification attempts exceeded. Please request a new OTP."
        )

    if not verify_password(code, record.code_hash):
        record.attempts += 1
        # Failed attempts count even though the request errors.
        await db.commit()
        logger.warning("otp_invalid", email=email, purpose=purpose, attempts=record.attempts)
        raise ValidationError(
            "Invalid OTP code",
            remainingAttempts=record.max_attempts - record.attempts,
        )

    record.verified = True
    await db.flush()
    logger.info("otp_verified", email=email, purpose=purpose)
    return record


async def require_recent_verification(db: AsyncSession, email: str, purpose: str) -> None:
    """Raise unless ``email`` verified an OTP for ``purpose`` within the signup window."""
    record = await _latest(db, email, purpose, verified=True)
    if record is None:
        raise ValidationError("Email not verified. Please verify your email with OTP first.")

    window = timedelta(minutes=settings.OTP_SIGNUP_WINDOW_MINUTES)
    if datetime.utcnow() - record.created_at > window:
        raise ValidationError("OTP verification expired. Please verify your email again.")
