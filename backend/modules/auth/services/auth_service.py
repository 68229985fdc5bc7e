# backend/modules/auth/services/auth_service.py

"""
Account registration, login and admin user management.
"""

from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from core.auth import (
    Caller,
    create_access_token,
    ensure_admin,
    get_password_hash,
    verify_password,
)
from core.config import settings
from core.database_utils import atomic
from core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..models.user_models import User
from ..schemas.auth_schemas import RegisterRequest, Token, UserOut

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Service for accounts and sessions"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def register(self, data: RegisterRequest, is_admin: bool = False) -> User:
        """Create a customer account; emails are unique case-insensitively."""
        if self.get_user_by_email(data.email):
            raise ConflictError("User already exists")

        user = User(
            email=normalize_email(data.email),
            hashed_password=get_password_hash(data.password),
            name=data.name.strip(),
            is_admin=is_admin,
            is_active=True,
        )
        with atomic(self.db, "register user"):
            self.db.add(user)
        self.db.refresh(user)
        logger.info(f"Registered user {user.email} (id={user.id})")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for {email}")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            logger.warning(f"Login attempt for deactivated account {email}")
            raise AuthenticationError("Account is deactivated")
        return user

    def login(self, email: str, password: str) -> Token:
        user = self.authenticate(email, password)
        access_token = create_access_token(
            {"sub": str(user.id), "email": user.email, "is_admin": user.is_admin}
        )
        logger.info(f"Issued access token for {user.email}")
        return Token(
            access_token=access_token,
            expires_in=settings.jwt_access_token_expire_minutes * 60,
            user=UserOut.model_validate(user),
        )

    # ========== Admin user management ==========

    def list_users(self, caller: Caller) -> List[User]:
        ensure_admin(caller)
        return self.db.query(User).order_by(User.created_at.desc()).all()

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def set_active(self, caller: Caller, user_id: int, is_active: Optional[bool] = None) -> User:
        """Set or toggle the active flag of another account."""
        ensure_admin(caller)
        user = self._get_user(user_id)
        new_value = (not user.is_active) if is_active is None else is_active
        if user.id == caller.id and not new_value:
            raise ValidationError("You cannot deactivate your own account")

        with atomic(self.db, "update user"):
            user.is_active = new_value
        self.db.refresh(user)
        logger.info(
            f"Admin {caller.email} set is_active={new_value} for user {user.email}"
        )
        return user

    def set_admin(self, caller: Caller, user_id: int, is_admin: bool) -> User:
        ensure_admin(caller)
        user = self._get_user(user_id)
        if user.id == caller.id and not is_admin:
            raise ValidationError("You cannot remove your own admin access")

        with atomic(self.db, "update user role"):
            user.is_admin = is_admin
        self.db.refresh(user)
        logger.info(f"Admin {caller.email} set is_admin={is_admin} for user {user.email}")
        return user

    def ensure_admin_account(self, email: str, password: str, name: str) -> User:
        """Create the admin account if it does not exist yet (idempotent)."""
        existing = self.get_user_by_email(email)
        if existing:
            return existing
        user = User(
            email=normalize_email(email),
            hashed_password=get_password_hash(password),
            name=name,
            is_admin=True,
            is_active=True,
        )
        with atomic(self.db, "create admin user"):
            self.db.add(user)
        self.db.refresh(user)
        logger.info(f"Created admin account {user.email}")
        return user
