from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.database import get_db
from talenthr.errors import Conflict, Forbidden, NotFound, ValidationError
from talenthr.middleware.authorization import ADMIN_ROLES, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.company import Company
from talenthr.models.invitation import Invitation
from talenthr.models.user import User
from talenthr.schemas.common import UserRef
from talenthr.schemas.invitation import InvitationCreate, InvitationResponse
from talenthr.services import invitation_service, resources
from talenthr.services.notification_service import send_notification

logger = structlog.get_logger()
router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_invitation(
    body: InvitationCreate,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to create invitations")
    ),
):
    db = ctx.db
    if ctx.role == "hr_manager" and body.role == "hr_manager":
        raise Forbidden("HR Managers cannot invite other HR Managers")

    existing_user = await db.execute(
        select(User.id).where(User.email == body.email, User.company_id == ctx.company_id)
    )
    if existing_user.first() is not None:
        raise Conflict("User with this email already exists in your company")

    pending = await invitation_service.find_pending(db, ctx.company_id, body.email)
    if pending is not None:
        if not pending.is_expired:
            raise Conflict("A pending invitation already exists for this email")
        pending.status = "expired"
        await db.flush()

    invitation, raw_token = invitation_service.new_invitation(
        ctx.company_id, body.email, body.role, ctx.user_id
    )
    db.add(invitation)
    await db.flush()

    company = await db.get(Company, ctx.company_id)
    inviter = await db.get(User, ctx.user_id)
    link = invitation_service.invitation_link(raw_token)

    # Delivery failures are logged by the email service; the invitation stands.
    background_tasks.add_task(
        send_notification,
        "invitation",
        [invitation.email],
        {
            "invitation_link": link,
            "role": invitation.role,
            "company_name": company.name,
            "inviter_name": (inviter.name if inviter else None) or ctx.email,
            "expires_at": invitation.expires_at.strftime("%B %d, %Y"),
        },
    )
    logger.info(
        "invitation_created",
        invitation_id=str(invitation.id),
        role=invitation.role,
        invited_by=str(ctx.user_id),
    )

    return {
        "success": True,
        "message": "Invitation created and sent successfully",
        "invitation": {
            "id": str(invitation.id),
            "email": invitation.email,
            "role": invitation.role,
            "link": link,
            "expiresAt": invitation.expires_at,
        },
    }


@router.get("")
async def list_invitations(
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to view invitations")
    ),
):
    db = ctx.db
    await invitation_service.expire_stale(db, ctx.company_id)

    result = await db.execute(
        select(Invitation, User)
        .outerjoin(User, Invitation.invited_by == User.id)
        .where(Invitation.company_id == ctx.company_id)
        .order_by(Invitation.created_at.desc())
    )
    invitations = [
        InvitationResponse(
            id=str(inv.id),
            email=inv.email,
            role=inv.role,
            status=inv.status,
            invited_by=(
                UserRef(id=str(inviter.id), name=inviter.name, email=inviter.email)
                if inviter else None
            ),
            expires_at=inv.expires_at,
            accepted_at=inv.accepted_at,
            created_at=inv.created_at,
        )
        for inv, inviter in result.all()
    ]
    return {"success": True, "invitations": invitations, "total": len(invitations)}


@router.get("/validate")
async def validate_invitation(
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Public: check an invitation link before showing the signup form."""
    if not token:
        raise ValidationError("Invitation token is required", valid=False)

    invitation = await invitation_service.find_by_token(db, token)
    if invitation is None:
        raise ValidationError("Invalid invitation token", valid=False)
    if invitation.status == "accepted":
        raise ValidationError("This invitation has already been accepted", valid=False)
    if invitation.status == "cancelled":
        raise ValidationError("This invitation has been cancelled", valid=False)
    if invitation.status == "expired" or invitation.is_expired:
        if invitation.status != "expired":
            invitation.status = "expired"
            await db.commit()
        raise ValidationError("This invitation has expired", valid=False)

    company = await db.get(Company, invitation.company_id)
    if company is None:
        raise NotFound("Company not found", valid=False)

    return {
        "success": True,
        "valid": True,
        "invitation": {
            "email": invitation.email,
            "role": invitation.role,
            "company": {"id": str(company.id), "name": company.name, "slug": company.slug},
            "expiresAt": invitation.expires_at,
        },
    }


@router.delete("/{invitation_id}")
async def cancel_invitation(
    invitation_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to cancel invitations")
    ),
):
    invitation = await resources.invitations(ctx.db).get(
        invitation_id, ctx.company_id, action="cancel"
    )
    if invitation.status == "accepted":
        raise ValidationError("Cannot cancel an accepted invitation")

    invitation.status = "cancelled"
    await ctx.db.flush()
    logger.info("invitation_cancelled", invitation_id=str(invitation.id))

    return {"success": True, "message": "Invitation cancelled successfully"}
