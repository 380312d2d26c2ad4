from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.config import settings
from talenthr.database import get_db
from talenthr.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from talenthr.middleware.auth import get_current_user
from talenthr.models.company import Company
from talenthr.models.user import User
from talenthr.schemas.auth import (
    ChangePasswordRequest,
    CompanyResponse,
    LoginRequest,
    RefreshTokenRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)
from talenthr.services import invitation_service, otp_service
from talenthr.services.auth_service import (
    create_token_pair,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from talenthr.services.company_service import company_name_taken, create_company_with_admin
from talenthr.services.guards import parse_uuid
from talenthr.services.notification_service import send_notification

logger = structlog.get_logger()

router = APIRouter()


def _tokens(user: User) -> TokenResponse:
    return TokenResponse(
        **create_token_pair(user),
        token_type="Bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        status=user.status,
        company_id=str(user.company_id),
        last_login_at=user.last_login_at,
        created_at=user.created_at,
    )


def _company_response(company: Company) -> CompanyResponse:
    return CompanyResponse(
        id=str(company.id), name=company.name, slug=company.slug, status=company.status
    )


async def _get_user(db: AsyncSession, raw_id) -> Optional[User]:
    key = parse_uuid(raw_id)
    return await db.get(User, key) if key else None


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.first() is not None:
        raise Conflict("User with this email already exists")


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Company-admin signup (creates the tenant) or invitation-based signup."""
    if body.role == "company_admin" and body.company_name:
        company, user = await _signup_company_admin(db, body)
        message = "Company and account created successfully"
    elif body.token:
        company, user = await _signup_from_invitation(db, body)
        message = "Account created successfully"
    else:
        raise ValidationError(
            "Invalid signup request. Provide companyName for admin signup "
            "or token for invitation signup."
        )

    background_tasks.add_task(
        send_notification,
        "welcome",
        [user.email],
        {"name": user.name, "company_name": company.name},
    )

    return {
        "success": True,
        "message": message,
        "user": _user_response(user),
        "company": _company_response(company),
        "tokens": _tokens(user),
    }


async def _signup_company_admin(db: AsyncSession, body: SignupRequest) -> tuple[Company, User]:
    if settings.REQUIRE_SIGNUP_OTP:
        await otp_service.require_recent_verification(db, body.email, "company_admin_signup")

    await _ensure_email_free(db, body.email)
    if await company_name_taken(db, body.company_name):
        raise Conflict(
            "Company with this name already exists. "
            "Please contact support or use an invitation link."
        )

    company, user = await create_company_with_admin(
        db,
        company_name=body.company_name,
        email=body.email,
        name=body.name,
        password_hash=hash_password(body.password),
    )
    logger.info("company_admin_signed_up", company_id=str(company.id), user_id=str(user.id))
    return company, user


async def _signup_from_invitation(db: AsyncSession, body: SignupRequest) -> tuple[Company, User]:
    invitation = await invitation_service.find_by_token(db, body.token, status="pending")
    if invitation is None:
        raise ValidationError("Invalid or expired invitation link")

    if invitation.is_expired:
        invitation.status = "expired"
        await db.commit()
        raise ValidationError("Invitation link has expired")

    if invitation.email.lower() != body.email:
        raise ValidationError("Email does not match invitation")

    await _ensure_email_free(db, body.email)

    company = await db.get(Company, invitation.company_id)
    if company is None:
        raise NotFound("Company not found")

    user = User(
        company_id=invitation.company_id,
        email=body.email,
        password_hash=hash_password(body.password),
        name=body.name,
        role=invitation.role,
        status="active",
    )
    db.add(user)
    await db.flush()

    invitation.status = "accepted"
    invitation.accepted_at = datetime.utcnow()
    invitation.accepted_by = user.id
    await db.flush()

    logger.info(
        "invitation_accepted",
        invitation_id=str(invitation.id),
        user_id=str(user.id),
        role=user.role,
    )
    return company, user


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate user and return JWT tokens."""
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.password_hash):
        logger.warning("login_failed", email=body.email)
        raise Unauthorized("Invalid email or password")

    if user.status != "active":
        raise Forbidden(
            "Account is deactivated. Please contact support."
            if user.status == "inactive"
            else "Account is pending activation."
        )

    company = await db.get(Company, user.company_id)
    if company is None:
        raise NotFound("Company not found")
    if company.status != "active":
        raise Forbidden("Company account is suspended. Please contact support.")

    # Naive UTC to match TIMESTAMP WITHOUT TIME ZONE
    user.last_login_at = datetime.utcnow()
    await db.flush()

    logger.info("user_logged_in", user_id=str(user.id), role=user.role)

    return {
        "success": True,
        "message": "Login successful",
        "user": _user_response(user),
        "company": _company_response(company),
        "tokens": _tokens(user),
    }


@router.post("/refresh")
async def refresh(body: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """Refresh access token using a valid refresh token."""
    try:
        payload = verify_refresh_token(body.refresh_token)
    except JWTError:
        raise Unauthorized("Invalid or expired refresh token")

    user = await _get_user(db, payload.get("sub"))
    if user is None or user.status != "active":
        raise Unauthorized("User not found")

    return {
        "success": True,
        "message": "Tokens refreshed successfully",
        "tokens": _tokens(user),
    }


@router.get("/me")
async def get_me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get current authenticated user profile."""
    user = await _get_user(db, current_user["user_id"])
    if user is None:
        raise NotFound("User not found")
    company = await db.get(Company, user.company_id)
    return {
        "success": True,
        "user": _user_response(user),
        "company": _company_response(company) if company else None,
    }


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the authenticated user's password."""
    user = await _get_user(db, current_user["user_id"])
    if user is None or user.status != "active":
        raise NotFound("User not found")

    if not verify_password(body.current_password, user.password_hash):
        raise Unauthorized("Current password is incorrect")

    user.password_hash = hash_password(body.new_password)
    await db.flush()

    logger.info("password_changed", user_id=str(user.id))
    return {"success": True, "message": "Password changed successfully"}
