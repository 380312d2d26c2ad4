from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
import structlog

from talenthr.config import settings

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ---------- password helpers ----------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ---------- JWT key loading ----------

_private_key: Optional[str] = None
_public_key: Optional[str] = None


def _signing_key() -> str:
    """RS* algorithms read PEM files; HS* algorithms sign with the shared secret."""
    global _private_key
    if not settings.JWT_ALGORITHM.startswith("RS"):
        return settings.JWT_SECRET_KEY
    if _private_key is None:
        with open(settings.JWT_PRIVATE_KEY_PATH, "r") as f:
            _private_key = f.read()
    return _private_key


def _verification_key() -> str:
    global _public_key
    if not settings.JWT_ALGORITHM.startswith("RS"):
        return settings.JWT_SECRET_KEY
    if _public_key is None:
        with open(settings.JWT_PUBLIC_KEY_PATH, "r") as f:
            _public_key = f.read()
    return _public_key


# ---------- token generation ----------

def create_access_token(
    user_id: str,
    company_id: str,
    role: str,
    email: str,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "company_id": str(company_id),
        "role": role,
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "type": "access",
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str, company_id: str) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "company_id": str(company_id),
        "iat": now,
        "exp": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        "type": "refresh",
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.JWT_ALGORITHM)


def create_token_pair(user) -> dict:
    return {
        "access_token": create_access_token(
            str(user.id), str(user.company_id), user.role, user.email
        ),
        "refresh_token": create_refresh_token(str(user.id), str(user.company_id)),
    }


# ---------- token verification ----------

def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises JWTError on failure."""
    return jwt.decode(token, _verification_key(), algorithms=[settings.JWT_ALGORITHM])


def verify_access_token(token: str) -> dict:
    """Verify an access token and return its claims."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload


def verify_refresh_token(token: str) -> dict:
    """Verify a refresh token and return its claims."""
    payload = decode_token(token)
    if payload.get("type") != "refresh":
        raise JWTError("Not a refresh token")
    return payload
