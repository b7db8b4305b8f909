"""
Outgoing email over SMTP
"""
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from halal_tools.core.config import Settings, get_settings
from halal_tools.core.errors import UpstreamUnavailable
from halal_tools.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

OTP_SUBJECT = "Your Password Reset OTP"

OTP_HTML = """
<div style="font-family: Arial, sans-serif; padding: 10px;">
  <h2>Password Reset Request</h2>
  <p>Your OTP is:</p>
  <h1 style="color: #4285f4;">{otp}</h1>
  <p>This OTP is valid for {ttl_minutes} minutes. Do not share it with anyone.</p>
</div>
"""


class EmailService:
    """Sends transactional mail; blocking, call from a worker thread"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def send_password_reset_otp(self, to_address: str, otp: str) -> None:
        ttl = self.settings.otp_ttl_minutes
        self.send(
            to_address,
            OTP_SUBJECT,
            text=f"Your OTP is: {otp}\nThis OTP is valid for {ttl} minutes. Do not share it with anyone.",
            html=OTP_HTML.format(otp=otp, ttl_minutes=ttl),
        )

    def send(self, to_address: str, subject: str, text: str, html: Optional[str] = None) -> None:
        """
        Send one message

        Raises:
            UpstreamUnavailable: SMTP is not configured or the server failed
        """
        settings = self.settings
        if not settings.smtp_configured:
            raise UpstreamUnavailable(
                "SMTP credentials are not configured",
                public_message="Server error. Please try again later.",
            )

        message = EmailMessage()
        message["From"] = formataddr((settings.email_from_name, settings.smtp_user))
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
                if settings.smtp_use_tls:
                    smtp.starttls()
                smtp.login(settings.smtp_user, settings.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            raise UpstreamUnavailable(
                f"SMTP delivery failed: {e}",
                public_message="Server error. Please try again later.",
            ) from e

        logger.info(f"Sent email '{subject}'")
