from dataclasses import dataclass
import uuid

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from talenthr.database import get_db
from talenthr.middleware.auth import get_current_user


@dataclass
class TenantContext:
    """Per-request bundle of DB session, caller identity and company."""

    db: AsyncSession
    current_user: dict

    @property
    def company_id(self) -> uuid.UUID:
        return uuid.UUID(self.current_user["company_id"])

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.current_user["user_id"])

    @property
    def role(self) -> str:
        return self.current_user["role"]

    @property
    def email(self) -> str:
        return self.current_user["email"]


async def get_tenant_context(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TenantContext:
    """FastAPI dependency: DB session plus the authenticated caller's tenant."""
    return TenantContext(db=db, current_user=current_user)
