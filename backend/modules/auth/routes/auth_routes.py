"""
Authentication routes: registration, login and the caller's profile.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.auth import Caller, get_current_user
from core.database import get_db
from ..models.user_models import User
from ..schemas.auth_schemas import LoginRequest, RegisterRequest, Token, UserOut
from ..services.auth_service import AuthService


router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Create a customer account.

    - **email**: unique login email
    - **password**: at least 6 characters
    - **name**: display name
    """
    user = auth_service.register(data)
    return {"success": True, "user": UserOut.model_validate(user)}


@router.post("/login", response_model=Token)
async def login(
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Exchange email and password for a bearer token."""
    return auth_service.login(data.email, data.password)


@router.get("/me", response_model=UserOut)
async def read_users_me(
    current_user: Caller = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return db.query(User).filter(User.id == current_user.id).first()
