from typing import List

from fastapi import APIRouter, Depends

from core.auth import Caller, require_admin
from ..schemas.auth_schemas import UserActiveUpdate, UserOut, UserRoleUpdate
from ..services.auth_service import AuthService
from .auth_routes import get_auth_service


router = APIRouter(prefix="/admin/users", tags=["User Management"])


@router.get("", response_model=List[UserOut])
async def list_users(
    current_user: Caller = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    return auth_service.list_users(current_user)


@router.patch("/{user_id}/active")
async def update_user_active(
    user_id: int,
    data: UserActiveUpdate,
    current_user: Caller = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Activate or deactivate an account; an empty body toggles it."""
    user = auth_service.set_active(current_user, user_id, data.is_active)
    return {"success": True, "user": UserOut.model_validate(user)}


@router.patch("/{user_id}/role")
async def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    current_user: Caller = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = auth_service.set_admin(current_user, user_id, data.is_admin)
    return {"success": True, "user": UserOut.model_validate(user)}
