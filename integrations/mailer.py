"""
SMTP Mailer
============

Delivers a finished HTML report to a recipient list over SMTP SSL.

Setup:
1. For Gmail create an app password (Google Account -> Security)
2. Set EMAIL_USER, EMAIL_PASSWORD and DIGEST_RECIPIENTS in .env
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from typing import List, Optional, Sequence

from scripts.lib.errors import EmailDeliveryError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)


class SMTPMailer:
    """Sends HTML email through an SMTP SSL server."""

    def __init__(
        self,
        smtp_server: str,
        smtp_port: int,
        email_address: Optional[str],
        email_password: Optional[str],
        sender_name: str = "Pipedrive Daily Digest",
        timeout: float = 30,
    ):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.email_address = email_address
        self.email_password = email_password
        self.sender_name = sender_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "SMTPMailer":
        return cls(
            smtp_server=settings.smtp_server,
            smtp_port=settings.smtp_port,
            email_address=settings.email_user,
            email_password=settings.email_password,
            sender_name=settings.sender_name,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.email_address and self.email_password)

    def build_message(self, subject: str, html_body: str,
                      recipients: Sequence[str]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.sender_name} <{self.email_address}>"
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def send_html(self, subject: str, html_body: str,
                  recipients: Sequence[str]) -> str:
        """Send an HTML email.

        Args:
            subject: Email subject line.
            html_body: Complete HTML document.
            recipients: Destination addresses.

        Returns:
            The Message-ID of the sent email.

        Raises:
            EmailDeliveryError: If credentials or recipients are missing or
                the SMTP exchange fails.
        """
        recipients: List[str] = [r for r in recipients if r]
        if not self.is_configured:
            raise EmailDeliveryError("Cannot send email: credentials not configured")
        if not recipients:
            raise EmailDeliveryError("Cannot send email: no recipients configured")

        msg = self.build_message(subject, html_body, recipients)
        try:
            with smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
                server.login(self.email_address, self.email_password)
                server.send_message(msg, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", recipients, exc)
            raise EmailDeliveryError(f"SMTP delivery failed: {exc}", recipients=recipients)

        logger.info("Email sent to %s: %s", ", ".join(recipients), subject)
        return msg["Message-ID"]
