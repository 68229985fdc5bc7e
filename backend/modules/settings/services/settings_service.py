# backend/modules/settings/services/settings_service.py

from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from core.config import settings as app_settings
from core.database_utils import atomic
from ..models.settings_models import Setting
from ..schemas.settings_schemas import (
    CanteenSettings,
    CanteenSettingsUpdate,
    PaymentConfig,
    ReportMailConfig,
)

logger = logging.getLogger(__name__)


class SettingsService:
    """Reads and writes the canteen key/value settings"""

    def __init__(self, db: Session):
        self.db = db

    def _stored(self) -> Dict[str, str]:
        return {s.key: s.value for s in self.db.query(Setting).all()}

    def get_value(self, key: str) -> Optional[str]:
        setting = self.db.query(Setting).filter(Setting.key == key).first()
        return setting.value if setting else None

    def get_all(self) -> CanteenSettings:
        """Every known setting, with defaults for keys never saved."""
        stored = self._stored()
        defaults = CanteenSettings(business_name=app_settings.default_business_name)
        values = defaults.model_dump(by_alias=True)
        values.update({k: v for k, v in stored.items() if k in values and v is not None})
        return CanteenSettings(**values)

    def upsert(self, data: CanteenSettingsUpdate) -> CanteenSettings:
        """Partial update: only the keys present in the request are written."""
        changes = data.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        if changes:
            existing = {
                s.key: s
                for s in self.db.query(Setting).filter(Setting.key.in_(changes)).all()
            }
            with atomic(self.db, "save settings"):
                for key, value in changes.items():
                    if key in existing:
                        existing[key].value = value.strip()
                    else:
                        self.db.add(Setting(key=key, value=value.strip()))
            # Secrets stay out of the log
            logger.info(f"Updated settings: {sorted(changes)}")
        return self.get_all()

    def update_upi_id(self, upi_id: str) -> str:
        self.upsert(CanteenSettingsUpdate(upi_id=upi_id))
        return self.get_all().upi_id

    def get_payment_config(self) -> PaymentConfig:
        stored = self._stored()
        return PaymentConfig(
            upi_id=stored.get("upiId") or app_settings.default_upi_id,
            payee_name=stored.get("businessName") or app_settings.default_business_name,
        )

    def get_report_mail_config(self) -> ReportMailConfig:
        stored = self._stored()
        try:
            port = int(stored.get("smtpPort") or 587)
        except ValueError:
            logger.warning(f"Ignoring invalid smtpPort setting {stored.get('smtpPort')!r}")
            port = 587
        return ReportMailConfig(
            report_email=stored.get("reportEmail", ""),
            smtp_host=stored.get("smtpHost", ""),
            smtp_port=port,
            smtp_user=stored.get("smtpUser", ""),
            smtp_pass=stored.get("smtpPass", ""),
            business_name=stored.get("businessName") or app_settings.default_business_name,
        )
