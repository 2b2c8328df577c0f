import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from medreminder.core.config import settings
from medreminder.models.delivery import DeliveryMessage

logger = logging.getLogger(__name__)


class MailSender(Protocol):
    def send(self, message: DeliveryMessage) -> None:
        """Deliver ``message`` or raise."""
        ...


class SmtpMailSender:
    def __init__(self):
        # Validate required email configuration
        if not settings.SMTP_SERVER:
            raise ValueError("SMTP_SERVER is required but not configured")
        if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
            raise ValueError("SMTP_USERNAME/SMTP_PASSWORD are required but not configured")
        if not settings.FROM_EMAIL:
            raise ValueError("FROM_EMAIL is required but not configured")

        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = int(settings.SMTP_PORT)
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL

    def send(self, message: DeliveryMessage) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = self.from_email
        msg["To"] = message.destination
        msg.attach(MIMEText(self._render_html(message), "html"))

        context = ssl.create_default_context()
        if self.smtp_port == 465:
            with smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, context=context) as server:
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        else:
            # STARTTLS for 587
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls(context=context)
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        logger.info(f"[Delivery] Email sent to {message.destination}: {message.subject}")

    @staticmethod
    def _render_html(message: DeliveryMessage) -> str:
        # Attachments are export URLs, sent as links
        links = "".join(
            f'<p><a href="{url}">{url}</a></p>' for url in (message.attachments or [])
        )
        return f"{message.body}{links}"


class LoggingMailSender:
    """Development sender: logs the message instead of sending it."""

    def send(self, message: DeliveryMessage) -> None:
        logger.info(f"📧 [DEV] Would send email to {message.destination}: {message.subject}")


def get_mail_sender() -> MailSender:
    if settings.smtp_configured:
        return SmtpMailSender()
    return LoggingMailSender()
