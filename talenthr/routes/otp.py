from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.config import settings
from talenthr.database import get_db
from talenthr.errors import InternalError
from talenthr.schemas.otp import SendOtpRequest, VerifyOtpRequest
from talenthr.services import otp_service
from talenthr.services.notification_service import send_notification

logger = structlog.get_logger()
router = APIRouter()


@router.post("/send")
async def send_otp(body: SendOtpRequest, db: AsyncSession = Depends(get_db)):
    """Email a fresh 6-digit code, replacing any unverified one."""
    code = await otp_service.issue_otp(db, body.email, body.purpose)

    sent = await send_notification(
        "otp_code",
        [body.email],
        {"code": code, "expires_minutes": settings.OTP_EXPIRE_MINUTES},
    )
    if not sent:
        logger.warning("otp_email_not_sent", email=body.email, purpose=body.purpose)
        if settings.is_production:
            raise InternalError("Failed to send OTP email. Please try again.")

    response = {
        "success": True,
        "message": "OTP sent successfully to your email",
        "expiresIn": settings.OTP_EXPIRE_MINUTES * 60,
    }
    if settings.is_development:
        response["otp"] = code
    return response


@router.post("/verify")
async def verify_otp(body: VerifyOtpRequest, db: AsyncSession = Depends(get_db)):
    await otp_service.verify_otp(db, body.email, body.otp, body.purpose)
    return {"success": True, "message": "OTP verified successfully", "verified": True}
