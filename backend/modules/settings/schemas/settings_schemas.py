from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CanteenSettings(BaseModel):
    """All canteen settings; serialized with the camelCase keys they are stored under."""

    upi_id: str = ""
    business_name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    opening_time: str = "09:00"
    closing_time: str = "21:00"
    report_email: str = ""
    smtp_host: str = ""
    smtp_port: str = "587"
    smtp_user: str = ""
    smtp_pass: str = ""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CanteenSettingsUpdate(BaseModel):
    upi_id: Optional[str] = None
    business_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    opening_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    closing_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    report_email: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: Optional[str] = Field(None, pattern=r"^\d{1,5}$")
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UpiIdUpdate(BaseModel):
    upi_id: str = Field(..., alias="upiId", min_length=3, max_length=100)

    class Config:
        populate_by_name = True


class PaymentConfig(BaseModel):
    """Payee details injected into checkout for one request"""

    upi_id: str
    payee_name: str


class ReportMailConfig(BaseModel):
    report_email: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    business_name: str = ""

    @property
    def is_complete(self) -> bool:
        return all([self.report_email, self.smtp_host, self.smtp_user, self.smtp_pass])
