"""
SMTP mailer behind the notification service.

Sends plain-text + HTML email through aiosmtplib using the SMTP settings
from the environment (EMAIL_USER / EMAIL_PASS / SMTP_HOST / SMTP_PORT).
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
import logging

import aiosmtplib

from nodeflow.config import Settings, settings as default_settings


logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Sending or verification failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class MailerNotConfigured(MailerError):
    """EMAIL_USER / EMAIL_PASS are not set."""

    def __init__(self):
        super().__init__(
            "Email server not configured. Please set EMAIL_USER and EMAIL_PASS environment variables.",
            code="ENOTCONFIGURED",
        )


def _describe_failure(error: Exception) -> MailerError:
    if isinstance(error, aiosmtplib.SMTPAuthenticationError):
        return MailerError(
            "Authentication failed. Check EMAIL_USER and EMAIL_PASS credentials.",
            code="EAUTH",
        )
    if isinstance(error, (aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected, OSError)):
        return MailerError("Connection failed. Check SMTP server settings.", code="ECONNECTION")
    return MailerError(str(error) or "Unknown error occurred", code=type(error).__name__)


class Mailer:
    """
    Sends email over SMTP.

    Usage:
        mailer = Mailer()
        info = await mailer.send(to="ops@example.com", subject="Hi", body="Hello")
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def is_configured(self) -> bool:
        return self.config.email_configured

    def _connection_options(self) -> Dict[str, Any]:
        secure = self.config.SMTP_SECURE
        return {
            "hostname": self.config.SMTP_HOST,
            "port": self.config.SMTP_PORT,
            "username": self.config.EMAIL_USER,
            "password": self.config.EMAIL_PASS,
            "use_tls": secure,
            "start_tls": False if secure else None,
            "timeout": 30,
        }

    def build_message(
        self,
        to: str,
        subject: str,
        body: str,
        from_name: Optional[str] = None,
        from_email: Optional[str] = None,
        to_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> EmailMessage:
        sender = from_email or self.config.EMAIL_USER
        message = EmailMessage()
        message["From"] = formataddr((from_name or self.config.EMAIL_FROM_NAME, sender))
        message["To"] = formataddr((to_name, to)) if to_name else to
        message["Subject"] = subject
        message["Reply-To"] = reply_to or from_email or self.config.EMAIL_USER
        message["Message-ID"] = make_msgid(domain=sender.split("@")[-1] if sender else None)
        message.set_content(body)
        message.add_alternative(body.replace("\n", "<br>"), subtype="html")
        return message

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        from_name: Optional[str] = None,
        from_email: Optional[str] = None,
        to_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one email.

        Returns:
            Dict with messageId, accepted/rejected recipients and envelope

        Raises:
            MailerNotConfigured: If SMTP credentials are missing
            MailerError: If the SMTP exchange fails
        """
        if not self.is_configured:
            raise MailerNotConfigured()

        message = self.build_message(to, subject, body, from_name, from_email, to_name, reply_to)
        sender = from_email or self.config.EMAIL_USER
        recipients: List[str] = [to]

        logger.info(f"Sending email to: {to}")
        logger.info(f"Subject: {subject}")
        try:
            errors, _response = await aiosmtplib.send(message, **self._connection_options())
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email sending failed: {e}")
            raise _describe_failure(e) from e

        rejected = sorted(errors or {})
        message_id = str(message["Message-ID"])
        logger.info(f"Email sent successfully: {message_id}")

        return {
            "messageId": message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "accepted": [r for r in recipients if r not in rejected],
            "rejected": rejected,
            "envelope": {"from": sender, "to": recipients},
        }

    async def verify(self) -> Dict[str, Any]:
        """
        Connect and authenticate without sending anything.

        Raises:
            MailerNotConfigured: If SMTP credentials are missing
            MailerError: If the server rejects the connection or credentials
        """
        if not self.is_configured:
            raise MailerNotConfigured()

        options = self._connection_options()
        client = aiosmtplib.SMTP(
            hostname=options["hostname"],
            port=options["port"],
            use_tls=options["use_tls"],
            start_tls=options["start_tls"],
            timeout=options["timeout"],
        )
        try:
            await client.connect()
            await client.login(options["username"], options["password"])
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Email config test failed: {e}")
            raise _describe_failure(e) from e
        finally:
            if client.is_connected:
                await client.quit()

        return {
            "host": self.config.SMTP_HOST,
            "port": self.config.SMTP_PORT,
            "user": self.config.EMAIL_USER,
        }
