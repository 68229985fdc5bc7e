# backend/modules/reporting/services/mailer.py

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
import logging
import smtplib

from fastapi import status

from core.config import settings
from core.exceptions import APIError, ValidationError
from modules.settings.schemas.settings_schemas import ReportMailConfig

logger = logging.getLogger(__name__)


class EmailDeliveryError(APIError):
    """SMTP server refused or could not be reached"""

    def __init__(self, detail: str = "Failed to send email"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="EMAIL_DELIVERY_FAILED",
        )


class SmtpMailer:
    """Sends mail with the SMTP credentials stored in canteen settings."""

    def __init__(self, config: ReportMailConfig):
        if not config.is_complete:
            raise ValidationError("Email settings not configured")
        self.config = config

    def _open(self) -> smtplib.SMTP:
        timeout = settings.smtp_timeout_seconds
        if self.config.smtp_port == 465:
            return smtplib.SMTP_SSL(self.config.smtp_host, self.config.smtp_port, timeout=timeout)
        return smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=timeout)

    def send(
        self,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        to_email: Optional[str] = None,
    ) -> None:
        to_email = to_email or self.config.report_email

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{self.config.business_name}" <{self.config.smtp_user}>'
        msg["To"] = to_email
        if text_content:
            msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            with self._open() as server:
                if self.config.smtp_port != 465:
                    server.starttls()
                server.login(self.config.smtp_user, self.config.smtp_pass)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise EmailDeliveryError(f"Failed to send email: {e}")

        logger.info(f"Email '{subject}' sent to {to_email}")
