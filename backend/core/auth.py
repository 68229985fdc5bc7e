"""
Authentication and authorization for the canteen API.

Issues JWT bearer tokens at login and resolves them back into a ``Caller``
on every request. Admin-only endpoints depend on ``require_admin`` rather
than re-checking the role inline.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

# Argon2 for new hashes; bcrypt hashes from older seeds still verify
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """Token payload data."""

    user_id: int
    email: Optional[str] = None
    is_admin: bool = False


class Caller(BaseModel):
    """Identity and role of whoever is invoking a workflow operation."""

    id: int
    email: str
    name: str
    is_admin: bool = False
    is_active: bool = True

    class Config:
        from_attributes = True


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    to_encode.update(
        {
            "exp": expire,
            "iat": int(now.timestamp()),
            "iss": settings.jwt_issuer,
            "type": "access",
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Optional[TokenData]:
    """
    Verify and decode a JWT access token.

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if payload.get("type") != "access":
        logger.warning(f"Token type mismatch: got {payload.get('type')}")
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    return TokenData(
        user_id=user_id,
        email=payload.get("email"),
        is_admin=bool(payload.get("is_admin", False)),
    )


def _load_caller(db: Session, token_data: TokenData) -> Optional[Caller]:
    # Imported lazily so core does not depend on module import order
    from modules.auth.models.user_models import User

    user = db.query(User).filter(User.id == token_data.user_id).first()
    if user is None or not user.is_active:
        return None
    return Caller.model_validate(user)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[Caller]:
    if not credentials:
        return None
    token_data = verify_token(credentials.credentials)
    if token_data is None:
        return None
    return _load_caller(db, token_data)


async def get_current_user(
    caller: Optional[Caller] = Depends(get_current_user_optional),
) -> Caller:
    """Resolve the bearer token into an active caller or reject with 401."""
    if caller is None:
        raise AuthenticationError("Unauthorized")
    return caller


def ensure_admin(caller: Optional[Caller]) -> Caller:
    """Single capability check shared by every admin-only operation."""
    if caller is None:
        raise AuthenticationError("Unauthorized")
    if not caller.is_admin:
        raise AuthorizationError("Admin access required")
    return caller


async def require_admin(caller: Caller = Depends(get_current_user)) -> Caller:
    return ensure_admin(caller)
