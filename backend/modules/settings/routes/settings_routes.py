from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Caller, require_admin
from core.database import get_db
from ..schemas.settings_schemas import (
    CanteenSettingsUpdate,
    PaymentConfig,
    UpiIdUpdate,
)
from ..services.settings_service import SettingsService


router = APIRouter(prefix="/admin/settings", tags=["Settings"])


def get_settings_service(db: Session = Depends(get_db)) -> SettingsService:
    return SettingsService(db)


def get_payment_config(
    settings_service: SettingsService = Depends(get_settings_service),
) -> PaymentConfig:
    """Per-request snapshot of the payee details used at checkout."""
    return settings_service.get_payment_config()


@router.get("")
async def get_settings(
    current_user: Caller = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    data = settings_service.get_all()
    return {"success": True, "settings": data.model_dump(by_alias=True)}


@router.put("")
async def update_settings(
    data: CanteenSettingsUpdate,
    current_user: Caller = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    updated = settings_service.upsert(data)
    return {"success": True, "settings": updated.model_dump(by_alias=True)}


@router.get("/upi")
async def get_upi_id(
    current_user: Caller = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    return {"success": True, "upiId": settings_service.get_value("upiId") or ""}


@router.put("/upi")
async def update_upi_id(
    data: UpiIdUpdate,
    current_user: Caller = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
):
    upi_id = settings_service.update_upi_id(data.upi_id)
    return {"success": True, "upiId": upi_id}
