# backend/modules/reporting/routes/report_routes.py

from typing import Optional
import hmac
import logging

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from core.auth import Caller, ensure_admin, get_current_user_optional, require_admin, security
from core.config import settings
from core.database import get_db
from modules.settings.services.settings_service import SettingsService
from ..services.report_service import DailyReportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/reports", tags=["Reports"])


def get_report_service(db: Session = Depends(get_db)) -> DailyReportService:
    return DailyReportService(db)


async def authorize_report_trigger(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    caller: Optional[Caller] = Depends(get_current_user_optional),
) -> str:
    """
    Allow the scheduler holding ``CRON_SECRET`` or any admin.

    Returns who triggered the report, for the log.
    """
    if settings.cron_secret and credentials and hmac.compare_digest(
        credentials.credentials, settings.cron_secret
    ):
        return "cron"
    admin = ensure_admin(caller)
    return admin.email


@router.get("/daily")
async def send_daily_report(
    triggered_by: str = Depends(authorize_report_trigger),
    report_service: DailyReportService = Depends(get_report_service),
    db: Session = Depends(get_db),
):
    """Email yesterday's sales summary to the configured report address."""
    mail_config = SettingsService(db).get_report_mail_config()
    logger.info(f"Daily report requested by {triggered_by}")
    report = report_service.send_daily_report(mail_config)
    return {"success": True, "message": "Daily report sent", "report": report}


@router.post("/test-email")
async def send_test_email(
    current_user: Caller = Depends(require_admin),
    report_service: DailyReportService = Depends(get_report_service),
    db: Session = Depends(get_db),
):
    mail_config = SettingsService(db).get_report_mail_config()
    report_service.send_test_email(mail_config, settings.business_timezone)
    return {"success": True, "message": f"Test email sent to {mail_config.report_email}"}
