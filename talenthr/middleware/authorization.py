from typing import Optional

from fastapi import Depends

from talenthr.errors import Forbidden
from talenthr.middleware.auth import get_current_user

ADMIN_ROLES = ("company_admin", "hr_manager")
RECRUITING_ROLES = ("company_admin", "hr_manager", "recruiter")


def require_roles(*allowed_roles: str, message: Optional[str] = None):
    """
    FastAPI dependency factory for role-based access control.

    Usage:
        @router.post("")
        async def create_department(
            ctx: TenantContext = Depends(get_tenant_context),
            _auth: None = Depends(require_roles(
                "company_admin", "hr_manager",
                message="You don't have permission to create departments",
            )),
        ):
    """
    async def check_role(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            raise Forbidden(message)
        return None

    return check_role


def check_hr_role_limits(actor_role: str, target_role: str, message: str) -> None:
    """HR managers may not grant, modify or retire admin/HR level accounts."""
    if actor_role == "hr_manager" and target_role in ADMIN_ROLES:
        raise Forbidden(message)
