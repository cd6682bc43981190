"""Outbound notification delivery.

Account flows hand rendered messages to a Notifier. The queued notifier
defers delivery to the background worker so a slow or failing mail provider
never holds up the request that triggered it.
"""

import logging
from abc import ABC, abstractmethod

from notehub.config import settings
from notehub.services.email import EmailBackend, EmailMessage, get_email_backend

logger = logging.getLogger(__name__)

# SAQ job settings for deliver_email
EMAIL_JOB_TIMEOUT_SECONDS = 60
EMAIL_JOB_RETRIES = 3
EMAIL_JOB_RETRY_DELAY_SECONDS = 5.0


class Notifier(ABC):
    """Accepts a message for a recipient and reports whether it was accepted."""

    @abstractmethod
    async def send(self, to: str, message: EmailMessage) -> bool:
        """Deliver or schedule delivery of a message."""


class InlineNotifier(Notifier):
    """Sends through the email backend within the calling request."""

    def __init__(self, backend: EmailBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    async def send(self, to: str, message: EmailMessage) -> bool:
        return await self.backend.send(
            to=to,
            subject=message.subject,
            html=message.html,
            text=message.text,
        )


class QueuedNotifier(Notifier):
    """Enqueues a retryable deliver_email job on the task queue."""

    async def send(self, to: str, message: EmailMessage) -> bool:
        # Import here to avoid circular imports
        from notehub.tasks.queue import queue

        job = await queue.enqueue(
            "deliver_email",
            to=to,
            subject=message.subject,
            html=message.html,
            text=message.text,
            timeout=EMAIL_JOB_TIMEOUT_SECONDS,
            retries=EMAIL_JOB_RETRIES,
            retry_delay=EMAIL_JOB_RETRY_DELAY_SECONDS,
            retry_backoff=True,
        )
        if job is None:
            logger.warning(f"Email job for {to} was not enqueued")
            return False
        logger.debug(f"Queued email job {job.id} for {to}")
        return True


def get_notifier() -> Notifier:
    """Get the notifier for the configured delivery mode."""
    if settings.email_delivery == "inline":
        return InlineNotifier()
    return QueuedNotifier()
