"""Email backends and transactional email templates."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import aiosmtplib
import httpx

from notehub.config import settings
from notehub.services.resilience import with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    """A rendered email ready to hand to a backend."""

    subject: str
    html: str
    text: str | None = None


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML content
            text: Plain text content (optional)

        Returns:
            True if the provider accepted the message. Backends log failures
            and return False rather than raising.
        """


class ConsoleEmailBackend(EmailBackend):
    """Email backend that logs to console (for development)."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        logger.info(
            f"\n{'='*60}\n"
            f"EMAIL (console backend - not sent)\n"
            f"{'='*60}\n"
            f"To: {to}\n"
            f"Subject: {subject}\n"
            f"{'='*60}\n"
            f"{text or html}\n"
            f"{'='*60}\n"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """Email backend using SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.timeout = timeout

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject

        if text:
            message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        try:
            await with_retry(
                aiosmtplib.send,
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                timeout=self.timeout,
            )
            logger.info(f"Email sent via SMTP to {to}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e}")
            return False


class ResendEmailBackend(EmailBackend):
    """Email backend using Resend API."""

    def __init__(self, api_key: str, from_address: str, timeout: float = 30.0):
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self.from_address,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                    timeout=self.timeout,
                )
                response.raise_for_status()
                logger.info(f"Email sent via Resend to {to}")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
                return False
            except Exception as e:
                logger.error(f"Failed to send email via Resend to {to}: {e}")
                return False


def get_email_backend() -> EmailBackend:
    """Get the configured email backend."""
    if settings.email_backend == "console":
        return ConsoleEmailBackend()
    elif settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.email_from,
            timeout=settings.dependency_timeout_seconds,
        )
    elif settings.email_backend == "resend":
        return ResendEmailBackend(
            api_key=settings.resend_api_key,
            from_address=settings.email_from,
            timeout=settings.dependency_timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown email backend: {settings.email_backend}")


def _render(
    heading: str,
    greeting_name: str | None,
    intro: str,
    button_label: str,
    button_color: str,
    url: str,
    expiry: str,
    ignore_note: str,
) -> str:
    hello = f"Hello {escape(greeting_name)}," if greeting_name else "Hello,"
    href = escape(url, quote=True)
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{heading}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="text-align: center; margin-bottom: 30px;">
        <h1 style="color: #1a1a1a; margin: 0;">{heading}</h1>
    </div>

    <div style="background: #f9fafb; border-radius: 8px; padding: 30px; margin-bottom: 30px;">
        <p>{hello}</p>
        <p>{intro}</p>

        <div style="text-align: center; margin: 30px 0;">
            <a href="{href}"
               style="background: {button_color}; color: white; padding: 12px 30px; border-radius: 6px; text-decoration: none; font-weight: 500; display: inline-block;">
                {button_label}
            </a>
        </div>

        <p>This link will expire in {expiry} for security reasons.</p>
        <p style="color: #666; font-size: 14px;">{ignore_note}</p>
    </div>

    <div style="text-align: center; color: #666; font-size: 12px;">
        <p>
            If the button doesn't work, copy and paste this link into your browser:<br>
            <a href="{href}" style="color: {button_color}; word-break: break-all;">{href}</a>
        </p>
        <p>This email was sent from an automated system. Please do not reply.</p>
    </div>
</body>
</html>
"""


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def verification_email(url: str, name: str | None = None) -> EmailMessage:
    """Email asking a new user to confirm their address."""
    expiry = _plural(settings.verification_token_ttl_hours, "hour")
    html = _render(
        heading="Verify your email address",
        greeting_name=name,
        intro="Thanks for signing up! Please verify your email address by clicking the button below.",
        button_label="Verify Email Address",
        button_color="#2563eb",
        url=url,
        expiry=expiry,
        ignore_note="If you didn't create an account, you can safely ignore this email.",
    )
    text = f"""
Verify your email address
=========================

Thanks for signing up! Open the link below to verify your email address.
This link will expire in {expiry}.

{url}

If you didn't create an account, you can safely ignore this email.
"""
    return EmailMessage(subject="Verify your email address", html=html, text=text)


def password_reset_email(url: str, name: str | None = None) -> EmailMessage:
    """Email carrying a password reset link."""
    expiry = _plural(settings.reset_token_ttl_minutes, "minute")
    html = _render(
        heading="Reset your password",
        greeting_name=name,
        intro="We received a request to reset your password. Click the button below to choose a new one.",
        button_label="Reset Password",
        button_color="#dc2626",
        url=url,
        expiry=expiry,
        ignore_note=(
            "If you didn't request a password reset, you can safely ignore this email. "
            "Your password will remain unchanged."
        ),
    )
    text = f"""
Reset your password
===================

We received a request to reset your password. Open the link below to choose a new one.
This link will expire in {expiry}.

{url}

If you didn't request a password reset, you can safely ignore this email.
"""
    return EmailMessage(subject="Reset your password", html=html, text=text)


def magic_link_email(url: str, name: str | None = None) -> EmailMessage:
    """Email carrying a one-time sign-in link."""
    expiry = _plural(settings.magic_link_expiration_minutes, "minute")
    html = _render(
        heading="Sign in to Notehub",
        greeting_name=name,
        intro="Click the button below to sign in to your account.",
        button_label="Sign In",
        button_color="#16a34a",
        url=url,
        expiry=expiry,
        ignore_note="If you didn't request this sign-in link, you can safely ignore this email.",
    )
    text = f"""
Sign in to Notehub
==================

Open the link below to sign in to your account.
This link will expire in {expiry}.

{url}

If you didn't request this email, you can safely ignore it.
"""
    return EmailMessage(subject="Sign in to Notehub", html=html, text=text)
