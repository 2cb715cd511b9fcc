"""
SMTP delivery for portal notifications.

Only the admin "test email" action sends mail today; the server-wide SMTP
credentials come from the environment, per-request overrides from the
settings screen.
"""
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from grantsportal.core.config import settings
from grantsportal.core.logging_config import logger


class EmailService:
    """Async email service using SMTP"""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        use_tls: bool = True,
    ):
        self.smtp_host = smtp_host or settings.SMTP_HOST
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.smtp_user = smtp_user or settings.SMTP_USER
        self.smtp_password = smtp_password or settings.SMTP_PASSWORD
        self.use_tls = use_tls
        self.from_email = settings.EMAIL_FROM

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(self, to_email: str, subject: str, text_content: str) -> None:
        """Send a plain-text email; raises aiosmtplib.SMTPException on failure"""
        message = MIMEMultipart("alternative")
        message["From"] = self.from_email
        message["To"] = to_email
        message["Subject"] = subject
        message.attach(MIMEText(text_content, "plain"))

        # Port 465 speaks TLS from the first byte, others upgrade with STARTTLS
        implicit_tls = self.use_tls and self.smtp_port == 465
        await aiosmtplib.send(
            message,
            hostname=self.smtp_host,
            port=self.smtp_port,
            username=self.smtp_user,
            password=self.smtp_password,
            use_tls=implicit_tls,
            start_tls=self.use_tls and not implicit_tls,
            timeout=settings.SMTP_TIMEOUT,
        )
        logger.info(f"[Email/SMTP] Sent '{subject}' to {to_email}")

    async def send_test_email(self, to_email: str) -> None:
        await self.send_email(
            to_email,
            subject=f"{settings.APP_NAME}: SMTP configuration test",
            text_content="This message confirms that the portal can deliver email with the configured SMTP server.",
        )
