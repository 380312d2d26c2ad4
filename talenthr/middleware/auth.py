from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.database import get_db
from talenthr.errors import Forbidden, Unauthorized
from talenthr.models.user import User
from talenthr.services.auth_service import verify_access_token
from talenthr.services.guards import parse_uuid

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    FastAPI dependency: verify the JWT and reload the caller.

    The token only identifies the user; role, company and status come from
    the users row so a demotion or deactivation applies on the next request.
    """
    if credentials is None:
        raise Unauthorized("Authentication required")
    try:
        payload = verify_access_token(credentials.credentials)
        user_id = parse_uuid(payload["sub"])
    except (JWTError, KeyError) as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise Unauthorized("Invalid or expired token")

    user = await db.get(User, user_id) if user_id else None
    if user is None:
        logger.warning("auth_user_missing", user_id=payload.get("sub"))
        raise Unauthorized("User not found")
    if user.status != "active":
        logger.warning("auth_user_not_active", user_id=str(user.id), status=user.status)
        raise Forbidden("Account is deactivated. Please contact support.")

    structlog.contextvars.bind_contextvars(
        user_id=str(user.id), company_id=str(user.company_id)
    )
    return {
        "user_id": str(user.id),
        "company_id": str(user.company_id),
        "role": user.role,
        "email": user.email,
    }
