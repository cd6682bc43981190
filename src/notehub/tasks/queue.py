"""SAQ queue configuration for background tasks."""

from saq import CronJob, Queue

from notehub.config import settings

# Main task queue
queue = Queue.from_url(settings.redis_url)


def get_queue_settings() -> dict:
    """Get SAQ queue settings for the worker."""
    # Import here to avoid circular imports
    from notehub.tasks.accounts import send_password_reset
    from notehub.tasks.email import deliver_email
    from notehub.tasks.maintenance import purge_expired_tokens

    return {
        "queue": queue,
        "functions": [
            deliver_email,
            purge_expired_tokens,
            send_password_reset,
        ],
        "cron_jobs": [
            # Hourly sweep of expired verification/reset/magic link tokens
            CronJob(purge_expired_tokens, cron="0 * * * *"),
        ],
        "concurrency": 10,  # Mostly waiting on SMTP/HTTP
        "startup": startup,
        "shutdown": shutdown,
    }


async def startup(_ctx: dict) -> None:
    """Called when worker starts."""
    from notehub.logging import setup_logging

    setup_logging()


async def shutdown(_ctx: dict) -> None:
    """Called when worker shuts down."""
    from notehub.database import close_db

    await close_db()
