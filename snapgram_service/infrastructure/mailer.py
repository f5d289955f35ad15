"""
Outbound email through the SMTP relay
"""
from email.message import EmailMessage
from typing import Optional
import logging
import smtplib

from ..config import settings

logger = logging.getLogger(__name__)


RESET_PASSWORD_SUBJECT = "Reset your password on Snapgram"

RESET_PASSWORD_HTML = """
<p>Hello {name}, reset your user password</p>
<p>Enter the following link to generate your new password: <a href="{link}">Change Password</a></p>
<p>If you did not request this change, just ignore it.</p>
"""


class EmailSender:
    """Send transactional emails through SMTP"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls

    def send(self, to: str, subject: str, html: str, text: str = "") -> None:
        """
        Send one email

        Raises:
            smtplib.SMTPException: If the relay rejects the message
            OSError: If the relay is unreachable
        """
        message = EmailMessage()
        message["From"] = settings.EMAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or subject)
        message.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=settings.SMTP_TIMEOUT) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

        logger.info(f"Sent '{subject}' email to {to}")

    def send_password_reset(self, name: str, email: str, token: str) -> None:
        """Send the password reset link"""
        link = f"{settings.FRONTEND_URL.rstrip('/')}/auth/forget-password/{token}"
        self.send(
            to=email,
            subject=RESET_PASSWORD_SUBJECT,
            html=RESET_PASSWORD_HTML.format(name=name, link=link),
            text=RESET_PASSWORD_SUBJECT,
        )


def get_email_sender() -> EmailSender:
    """Dependency for getting the email sender"""
    return EmailSender()
