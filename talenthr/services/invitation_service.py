import hashlib
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from talenthr.config import settings
from talenthr.models.invitation import Invitation

logger = structlog.get_logger()


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


def invitation_link(raw_token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/signup?token={raw_token}"


def new_invitation(company_id: uuid.UUID, email: str, role: str, invited_by: uuid.UUID) -> tuple[Invitation, str]:
    """Build a pending invitation. Returns it with the raw token, which is never stored."""
    raw = generate_token()
    invitation = Invitation(
        company_id=company_id,
        email=email,
        role=role,
        invited_by=invited_by,
        token_hash=hash_token(raw),
        status="pending",
        expires_at=datetime.utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
    )
    return invitation, raw


async def find_by_token(
    db: AsyncSession, raw_token: str, status: Optional[str] = None
) -> Optional[Invitation]:
    query = select(Invitation).where(Invitation.token_hash == hash_token(raw_token))
    if status:
        query = query.where(Invitation.status == status)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def find_pending(db: AsyncSession, company_id: uuid.UUID, email: str) -> Optional[Invitation]:
    result = await db.execute(
        select(Invitation).where(
            Invitation.company_id == company_id,
            Invitation.email == email,
            Invitation.status == "pending",
        )
    )
    return result.scalar_one_or_none()


async def expire_stale(db: AsyncSession, company_id: uuid.UUID) -> int:
    """Flip pending invitations past their expiry to ``expired``."""
    result = await db.execute(
        update(Invitation)
        .where(
            Invitation.company_id == company_id,
            Invitation.status == "pending",
            Invitation.expires_at < datetime.utcnow(),
        )
        .values(status="expired", updated_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount:
        logger.info("invitations_expired", company_id=str(company_id), count=result.rowcount)
    return result.rowcount
