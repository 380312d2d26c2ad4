from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
import structlog

from talenthr.errors import ValidationError
from talenthr.middleware.authorization import ADMIN_ROLES, check_hr_role_limits, require_roles
from talenthr.middleware.tenant import TenantContext, get_tenant_context
from talenthr.models.user import User
from talenthr.schemas.auth import UserResponse
from talenthr.schemas.common import supplied
from talenthr.schemas.user import UserUpdate
from talenthr.services import resources
from talenthr.services.auth_service import hash_password
from talenthr.services.guards import merge_partial, soft_delete

logger = structlog.get_logger()
router = APIRouter()


def _to_response(u: User) -> UserResponse:
    return UserResponse(
        id=str(u.id),
        email=u.email,
        name=u.name,
        role=u.role,
        status=u.status,
        company_id=str(u.company_id),
        last_login_at=u.last_login_at,
        created_at=u.created_at,
    )


@router.get("")
async def list_users(
    role: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to view users")
    ),
):
    q = select(User).where(User.company_id == ctx.company_id)
    if role:
        q = q.where(User.role == role)
    if status_filter:
        q = q.where(User.status == status_filter)
    if search:
        term = f"%{search.strip()}%"
        q = q.where(or_(User.name.ilike(term), User.email.ilike(term)))

    result = await ctx.db.execute(q.order_by(User.created_at.desc()))
    users = [_to_response(u) for u in result.scalars().all()]
    return {"success": True, "users": users, "total": len(users)}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to view user details")
    ),
):
    user = await resources.users(ctx.db).get(user_id, ctx.company_id, action="view")
    return {"success": True, "user": _to_response(user)}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to update users")
    ),
):
    user = await resources.users(ctx.db).get(user_id, ctx.company_id, action="update")
    changes = supplied(body)

    if changes.get("role"):
        check_hr_role_limits(
            ctx.role, changes["role"], "HR Managers cannot assign admin or HR manager roles"
        )
    check_hr_role_limits(ctx.role, user.role, "You don't have permission to modify this user")

    password = changes.pop("password", None)
    changed = merge_partial(user, changes)
    if password:
        user.password_hash = hash_password(password)
        changed.append("password")
    await ctx.db.flush()

    logger.info("user_updated", user_id=str(user.id), changed=changed)
    return {
        "success": True,
        "message": "User updated successfully",
        "user": _to_response(user),
    }


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    _auth: None = Depends(
        require_roles(*ADMIN_ROLES, message="You don't have permission to deactivate users")
    ),
):
    user = await resources.users(ctx.db).get(user_id, ctx.company_id, action="deactivate")
    if user.id == ctx.user_id:
        raise ValidationError("You cannot deactivate your own account")
    check_hr_role_limits(ctx.role, user.role, "You don't have permission to deactivate this user")

    soft_delete(user, "inactive")
    await ctx.db.flush()
    logger.info("user_deactivated", user_id=str(user.id), by=str(ctx.user_id))

    return {"success": True, "message": "User deactivated successfully"}
