"""
Outbound email over SMTP
"""

from __future__ import annotations

from dataclasses import dataclass
from email.message import EmailMessage
from html import escape

import aiosmtplib

from .config import settings
from .errors import StorefrontError
from .logging import get_logger

logger = get_logger(__name__)


class MailDeliveryError(StorefrontError):
    """Raised when the SMTP server refuses or fails a delivery."""

    pass


@dataclass
class DeliveryResult:
    """Outcome reported by the SMTP server for an accepted message."""

    recipient: str
    response: str


def make_a_nice_email(text: str) -> str:
    """Wrap a message body in the storefront's HTML email layout.

    ``text`` is inserted as-is so callers can embed links; escape any
    user-supplied values before passing them in.
    """
    return f"""
    <div className="email" style="
        border: 1px solid black;
        padding: 20px;
        font-family: sans-serif;
        line-height: 2;
        font-size: 20px;
    ">
        <h2>Hello There!</h2>
        <p>{text}</p>
        <p>The Sick Fits Team</p>
    </div>
    """


def make_reset_email(reset_url: str) -> str:
    """HTML body for the password reset email."""
    return make_a_nice_email(
        "Your Password Reset Token is here!\n\n"
        f'<a href="{escape(reset_url, quote=True)}">Click Here to Reset</a>'
    )


class Mailer:
    """Sends HTML email through an SMTP relay."""

    def __init__(
        self,
        hostname: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float = 30.0,
    ):
        self.hostname = hostname
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def send_mail(self, to: str, subject: str, html: str) -> DeliveryResult:
        """Deliver a single HTML message.

        Raises:
            MailDeliveryError: If the relay rejects the message or cannot be reached
        """
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(html, subtype="html")

        try:
            errors, response = await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.use_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"Could not deliver email: {e}") from e

        if to in errors:
            raise MailDeliveryError(f"Recipient refused: {errors[to]}")

        logger.info("Email sent", subject=subject)
        return DeliveryResult(recipient=to, response=response)


def get_mailer() -> Mailer:
    """Build a mailer from the current settings."""
    return Mailer(
        hostname=settings.mail_host,
        port=settings.mail_port,
        sender=settings.mail_from,
        username=settings.mail_user,
        password=settings.mail_password,
        use_tls=settings.mail_use_tls,
        timeout=settings.mail_timeout,
    )
