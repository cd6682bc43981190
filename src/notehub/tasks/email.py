"""Background email delivery."""

import logging
from typing import Any

from notehub.config import settings
from notehub.services.email import get_email_backend
from notehub.services.notifications import EMAIL_JOB_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The email backend did not accept the message. Raised so SAQ retries the job."""


async def deliver_email(
    ctx: dict[str, Any],
    *,
    to: str,
    subject: str,
    html: str,
    text: str | None = None,
) -> dict[str, Any]:
    """Send one email through the configured backend.

    Args:
        ctx: SAQ context
        to: Recipient email address
        subject: Email subject
        html: HTML body
        text: Plain text body

    Returns:
        Dict with delivery result
    """
    job = ctx.get("job")
    attempt = job.attempts if job else 1

    backend = get_email_backend()
    sent = await backend.send(to=to, subject=subject, html=html, text=text)
    if not sent:
        logger.warning(f"Email '{subject}' to {to} not accepted (attempt {attempt})")
        raise EmailDeliveryError(
            f"{settings.email_backend} backend did not accept email to {to}"
        )

    logger.info(f"Delivered email '{subject}' to {to}")
    return {"success": True, "to": to, "attempt": attempt}


# Set SAQ job timeout
deliver_email.timeout = EMAIL_JOB_TIMEOUT_SECONDS  # type: ignore[attr-defined]
