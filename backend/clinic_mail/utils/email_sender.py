"""
Email transport with pluggable backends.
Default 'console' backend prints messages to stdout for dev/testing.
Every backend raises TransportError when a message cannot be delivered.
"""
import os
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from abc import ABC, abstractmethod

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from clinic_mail.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT = 30


def _send_timeout():
    return float(os.getenv('EMAIL_SEND_TIMEOUT', DEFAULT_SEND_TIMEOUT))


class EmailBackend(ABC):
    """Abstract mail transport used by the dispatcher."""

    @abstractmethod
    def send(self, sender, to_email, subject, body_html, body_text=None):
        """Send one message or raise TransportError."""


class ConsoleBackend(EmailBackend):
    """Console backend that prints emails to stdout (for development/testing)."""

    def send(self, sender, to_email, subject, body_html, body_text=None):
        message = (
            f"\n{'='*50}\n"
            f"[EMAIL] From: {sender}\n"
            f"To: {to_email}\n"
            f"Subject: {subject}\n"
            f"{'='*50}\n"
            f"{body_text or body_html}\n"
            f"{'='*50}\n"
        )
        print(message)
        logger.info("Email sent via console backend to %s", to_email)


class SMTPBackend(EmailBackend):
    """SMTP backend with TLS support."""

    def __init__(self):
        self.host = os.getenv('SMTP_HOST')
        self.port = int(os.getenv('SMTP_PORT', '587'))
        self.user = os.getenv('SMTP_USER')
        self.password = os.getenv('SMTP_PASS')
        self.use_tls = os.getenv('SMTP_USE_TLS', 'true').lower() == 'true'
        self.timeout = _send_timeout()

        if not all([self.host, self.user, self.password]):
            raise ValueError(
                "SMTP backend requires SMTP_HOST, SMTP_USER, and SMTP_PASS environment variables"
            )

    def send(self, sender, to_email, subject, body_html, body_text=None):
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = sender
        msg['To'] = to_email

        if body_text:
            msg.attach(MIMEText(body_text, 'plain'))
        msg.attach(MIMEText(body_html or '', 'html'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.user, self.password)
                server.sendmail(sender, to_email, msg.as_string())
            logger.info("Email sent via SMTP to %s", to_email)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP error sending email to %s: %s", to_email, str(e))
            raise TransportError(str(e)) from e


class SendGridBackend(EmailBackend):
    """SendGrid backend using the sendgrid SDK."""

    def __init__(self):
        self.api_key = os.getenv('SENDGRID_API_KEY')
        self.timeout = _send_timeout()

        if not self.api_key:
            raise ValueError(
                "SendGrid backend requires SENDGRID_API_KEY environment variable"
            )

    def send(self, sender, to_email, subject, body_html, body_text=None):
        message = Mail(
            from_email=Email(sender),
            to_emails=To(to_email),
            subject=subject,
        )
        if body_text:
            message.add_content(Content("text/plain", body_text))
        message.add_content(Content("text/html", body_html or ''))

        try:
            sg = SendGridAPIClient(self.api_key)
            sg.client.timeout = self.timeout
            response = sg.send(message)
        except Exception as e:
            logger.error("SendGrid error sending email to %s: %s", to_email, str(e))
            raise TransportError(str(e)) from e

        if response.status_code >= 400:
            raise TransportError(f'SendGrid rejected message (status {response.status_code})')
        logger.info(
            "Email sent via SendGrid to %s (status: %s)",
            to_email,
            response.status_code
        )


def get_email_backend():
    """Get the configured email backend instance."""
    backend_name = os.getenv('EMAIL_BACKEND', 'console').lower()

    if backend_name == 'console':
        return ConsoleBackend()
    elif backend_name == 'smtp':
        return SMTPBackend()
    elif backend_name == 'sendgrid':
        return SendGridBackend()
    else:
        raise ValueError(f"Unknown EMAIL_BACKEND: {backend_name}")
